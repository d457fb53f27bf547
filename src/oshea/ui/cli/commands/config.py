"""``oshea config``: explain where the active configuration comes from."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import typer
import yaml

from oshea.core.config.resolver import ConfigResolver
from oshea.core.exceptions import OsheaConfigError
from oshea.core.plugins.determiner import determine_plugin

from .._options import (
    ConfigPathOption,
    FactoryDefaultsOption,
    MarkdownOption,
    PluginOption,
    PureOption,
)
from ..diagnostics import CliEmitter
from ..state import debug_enabled, emit_error, get_cli_state


def _dump_yaml(payload: Mapping[str, Any]) -> str:
    return yaml.safe_dump(dict(payload), sort_keys=False, allow_unicode=True, default_flow_style=False)


def _print_heading(title: str) -> None:
    console = get_cli_state().console
    console.print(f"[bold cyan]# {title}[/]")


def _print_lines(lines: list[str]) -> None:
    console = get_cli_state().console
    for line in lines:
        console.print(line, markup=False, highlight=False, soft_wrap=True)


def _print_yaml(payload: Mapping[str, Any]) -> None:
    console = get_cli_state().console
    console.print(_dump_yaml(payload).rstrip(), markup=False, highlight=False, soft_wrap=True)


def _show_global(resolver: ConfigResolver, *, pure: bool) -> None:
    primary = resolver.primary_main_config
    if pure:
        typer.echo(_dump_yaml(primary.config), nl=False)
        return

    loader = resolver.main_config_loader
    _print_heading("Global configuration")
    lines = [
        f"Primary main config: {primary.path or '<none>'} ({primary.reason})",
        f"XDG main config: {loader.xdg_config_path}"
        + ("" if loader.xdg_config_path.is_file() else " (not found)"),
    ]
    if resolver.project_manifest_path is not None:
        lines.append(f"Project main config: {resolver.project_manifest_path}")
    lines.append(f"Collections root: {resolver.get_resolved_collections_root()}")
    _print_lines(lines)
    _print_heading("Contents")
    _print_yaml(primary.config)


def _show_plugin(
    resolver: ConfigResolver,
    plugin: str | None,
    markdown: Path | None,
    *,
    pure: bool,
) -> None:
    local_overrides = None
    spec = plugin or ""
    if markdown is not None:
        determination = determine_plugin(markdown, plugin)
        spec = determination.plugin_spec
        local_overrides = determination.local_overrides

    effective = resolver.get_effective_config(
        spec, local_overrides, markdown, allow_cwd_relative=True
    )
    if pure:
        typer.echo(_dump_yaml(effective.plugin_specific_config), nl=False)
        return

    sources = resolver.get_config_file_sources()
    _print_heading(f"Effective configuration for plugin '{effective.plugin_name}'")
    lines = [
        f"Plugin base path: {effective.plugin_base_path}",
        f"Handler script: {effective.handler_script_path}",
        f"Primary main config: {sources.main_config_path or '<none>'}",
    ]
    if effective.was_factory_defaults:
        lines.append("Factory defaults only: yes")
    _print_lines(lines)

    _print_heading("Contributing sources (in merge order)")
    _print_lines([f"  - {entry}" for entry in sources.plugin_config_paths] or ["  (none)"])
    _print_heading("Stylesheets")
    _print_lines([f"  - {path}" for path in sources.css_files] or ["  (none)"])
    if effective.warnings:
        _print_heading("Warnings")
        _print_lines([f"  - {warning}" for warning in effective.warnings])
    _print_heading("Merged configuration")
    _print_yaml(effective.plugin_specific_config)


def show_config(
    plugin: PluginOption = None,
    config: ConfigPathOption = None,
    factory_defaults: FactoryDefaultsOption = False,
    pure: PureOption = False,
    markdown: MarkdownOption = None,
) -> None:
    """Show the global configuration or the effective configuration of a plugin."""
    state = get_cli_state()
    resolver = ConfigResolver(
        config,
        factory_defaults_only=factory_defaults,
        emitter=CliEmitter(state, debug_enabled=debug_enabled()),
    )
    try:
        if plugin is None and markdown is None:
            _show_global(resolver, pure=pure)
        else:
            _show_plugin(resolver, plugin, markdown, pure=pure)
    except OsheaConfigError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["show_config"]
