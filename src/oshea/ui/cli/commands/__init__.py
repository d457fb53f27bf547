"""CLI command implementations exposed via `oshea.ui.cli`."""

from __future__ import annotations

from .config import show_config
from .plugins import list_plugins, plugin_app


__all__ = ["list_plugins", "plugin_app", "show_config"]
