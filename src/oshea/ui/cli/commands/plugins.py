"""``oshea plugin``: inspect the plugin registry."""

from __future__ import annotations

import typer

from oshea.core.config.resolver import ConfigResolver
from oshea.core.diagnostics import format_event_message

from .._options import ConfigPathOption, FactoryDefaultsOption
from ..diagnostics import CliEmitter
from ..state import debug_enabled, get_cli_state


plugin_app = typer.Typer(help="Inspect registered plugins.", no_args_is_help=True)


@plugin_app.command("list")
def list_plugins(
    config: ConfigPathOption = None,
    factory_defaults: FactoryDefaultsOption = False,
) -> None:
    """Print a table of registered and available plugins."""
    from rich import box
    from rich.table import Table

    state = get_cli_state()
    resolver = ConfigResolver(
        config,
        factory_defaults_only=factory_defaults,
        emitter=CliEmitter(state, debug_enabled=debug_enabled()),
    )
    details = resolver.get_all_plugin_details()

    table = Table(
        title="Plugins",
        box=box.SQUARE,
        show_edge=True,
        header_style="bold cyan",
    )
    table.add_column("Name", style="magenta", no_wrap=True)
    table.add_column("Status", style="green", no_wrap=True)
    table.add_column("Source")
    table.add_column("Description")

    built = state.consume_events("registry_built")
    if built:
        table.caption = format_event_message("registry_built", built[-1])

    if not details:
        table.add_row("-", "-", "-", "No plugins found")
    for entry in details:
        table.add_row(entry.name, entry.status, entry.source_display, entry.description)

    state.console.print(table)


__all__ = ["list_plugins", "plugin_app"]
