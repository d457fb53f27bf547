"""Configuration documents, merge primitives and override layers.

The resolver lives in :mod:`oshea.core.config.resolver`; it is not re-exported
here because it depends on :mod:`oshea.core.plugins`, which itself builds on
the modules below.
"""

from __future__ import annotations

from .models import (
    ConfigFileSources,
    EffectiveConfig,
    LoadReason,
    MainConfigSource,
    OverrideResult,
    PluginRegistryEntry,
    RawPluginLayer,
    SourceTier,
)
from .utils import deep_merge, expand_home, is_mapping, load_yaml_config
from .main_loader import MainConfigLoader
from .options import MathOptions, PageMargin, PdfOptions, PluginOptions, TocOptions
from .plugin_loader import PluginConfigLoader
from .schema import PluginSchemaValidator, SchemaIssue


__all__ = [
    "ConfigFileSources",
    "EffectiveConfig",
    "LoadReason",
    "MainConfigLoader",
    "MainConfigSource",
    "MathOptions",
    "OverrideResult",
    "PageMargin",
    "PdfOptions",
    "PluginConfigLoader",
    "PluginOptions",
    "PluginRegistryEntry",
    "PluginSchemaValidator",
    "RawPluginLayer",
    "SchemaIssue",
    "SourceTier",
    "TocOptions",
    "deep_merge",
    "expand_home",
    "is_mapping",
    "load_yaml_config",
]
