"""Plugin discovery, determination and handler loading."""

from __future__ import annotations

from .collections import (
    AvailablePlugin,
    CollectionsManager,
    EnabledPlugin,
    ManifestCollectionsManager,
)
from .determiner import PluginDetermination, determine_plugin, split_front_matter
from .handlers import ConversionPipeline, DocumentHandler, HandlerRegistry, HandlerRequest
from .registry import PluginDetails, PluginRegistryBuilder


__all__ = [
    "AvailablePlugin",
    "CollectionsManager",
    "ConversionPipeline",
    "DocumentHandler",
    "EnabledPlugin",
    "HandlerRegistry",
    "HandlerRequest",
    "ManifestCollectionsManager",
    "PluginDetails",
    "PluginDetermination",
    "PluginRegistryBuilder",
    "determine_plugin",
    "split_front_matter",
]
