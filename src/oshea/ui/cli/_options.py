"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


CONFIG_PANEL = "Configuration"
OUTPUT_PANEL = "Output"
DIAGNOSTICS_PANEL = "Diagnostics"

ConfigPathOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="Project main configuration file (takes precedence over the XDG config).",
        dir_okay=False,
        resolve_path=True,
        rich_help_panel=CONFIG_PANEL,
    ),
]

FactoryDefaultsOption = Annotated[
    bool,
    typer.Option(
        "--factory-defaults",
        help="Ignore user and project configuration and use bundled defaults only.",
        rich_help_panel=CONFIG_PANEL,
    ),
]

PluginOption = Annotated[
    str | None,
    typer.Option(
        "--plugin",
        "-p",
        help="Plugin name or path whose effective configuration should be shown.",
        rich_help_panel=CONFIG_PANEL,
    ),
]

MarkdownOption = Annotated[
    Path | None,
    typer.Option(
        "--markdown",
        help="Markdown document whose front matter and local config apply.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
        rich_help_panel=CONFIG_PANEL,
    ),
]

PureOption = Annotated[
    bool,
    typer.Option(
        "--pure",
        help="Print only the resolved YAML, without provenance details.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

VerbosityOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase diagnostic detail (repeatable).",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks on failure.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]


__all__ = [
    "ConfigPathOption",
    "DebugOption",
    "FactoryDefaultsOption",
    "MarkdownOption",
    "PluginOption",
    "PureOption",
    "VerbosityOption",
]
