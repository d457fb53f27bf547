"""Primary public API for oshea."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from oshea.core.config import (
    ConfigFileSources,
    EffectiveConfig,
    LoadReason,
    PluginOptions,
    SourceTier,
    deep_merge,
)
from oshea.core.config.resolver import ConfigResolver
from oshea.core.exceptions import (
    HandlerError,
    HandlerScriptMissingError,
    OsheaConfigError,
    OsheaError,
    PluginConfigError,
    PluginNotFoundError,
    PluginSpecError,
)
from oshea.core.plugins import (
    DocumentHandler,
    HandlerRegistry,
    HandlerRequest,
    PluginDetermination,
    determine_plugin,
)
from oshea.core.user_dir import OsheaUserDir, configure_user_dir, get_user_dir, user_dir_context


try:
    __version__ = _pkg_version("oshea")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    "ConfigFileSources",
    "ConfigResolver",
    "DocumentHandler",
    "EffectiveConfig",
    "HandlerError",
    "HandlerRegistry",
    "HandlerRequest",
    "HandlerScriptMissingError",
    "LoadReason",
    "OsheaConfigError",
    "OsheaError",
    "OsheaUserDir",
    "PluginConfigError",
    "PluginDetermination",
    "PluginNotFoundError",
    "PluginOptions",
    "PluginSpecError",
    "SourceTier",
    "__version__",
    "configure_user_dir",
    "deep_merge",
    "determine_plugin",
    "get_user_dir",
    "user_dir_context",
]
