"""Typer application wiring for the oshea CLI."""

from __future__ import annotations

import typer

from oshea.core.exceptions import OsheaError, exception_hint
from oshea.ui.cli.commands.config import show_config
from oshea.ui.cli.commands.plugins import plugin_app

from ._options import DebugOption, VerbosityOption
from .state import debug_enabled, emit_error, set_cli_state


app = typer.Typer(
    help="Inspect the oshea configuration and plugin registry.",
    context_settings={"help_option_names": ["--help"]},
    no_args_is_help=True,
)


@app.callback()
def _configure(
    ctx: typer.Context,
    verbose: VerbosityOption = 0,
    debug: DebugOption = False,
) -> None:
    set_cli_state(ctx=ctx, verbosity=verbose, debug=debug)


app.command("config")(show_config)
app.add_typer(plugin_app, name="plugin")


def main() -> None:
    """Entry point compatible with console scripts."""
    try:
        app()
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Operation cancelled by user.", exception=exc)
        raise typer.Exit(code=1) from exc
    except SystemExit:
        raise
    except OsheaError as exc:
        if debug_enabled():
            raise
        emit_error(str(exc) or exception_hint(exc) or type(exc).__name__, exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["app", "main"]
