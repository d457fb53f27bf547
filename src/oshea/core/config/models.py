"""Data model shared by the configuration loaders and the resolver."""

from __future__ import annotations

from collections.abc import Mapping
import copy
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from .options import PluginOptions


class LoadReason(str, Enum):
    """Why a given document was selected as the primary main config."""

    FACTORY_DEFAULT = "factory default"
    PROJECT = "project (from explicit flag)"
    XDG_GLOBAL = "XDG global"
    BUNDLED_MAIN = "bundled main"
    FACTORY_DEFAULT_FALLBACK = "factory default fallback"
    NONE_FOUND = "none found"

    def __str__(self) -> str:
        return self.value


class SourceTier(str, Enum):
    """Registration source of a plugin, in ascending precedence."""

    BUNDLED = "Bundled"
    COLLECTION_MANAGER = "CollectionManager"
    XDG_FILE = "XdgFile"
    PROJECT_FILE = "ProjectFile"

    def __str__(self) -> str:
        return self.value

    @property
    def precedence(self) -> int:
        return list(SourceTier).index(self)


@dataclass(slots=True)
class MainConfigSource:
    """A loaded main configuration document and where it came from."""

    config: dict[str, Any]
    path: Path | None
    base_dir: Path | None = None
    reason: LoadReason | None = None


@dataclass(frozen=True, slots=True)
class PluginRegistryEntry:
    """Where a registered plugin's base configuration lives."""

    config_path: Path
    source_tier: SourceTier
    defined_in: Path | None = None
    collection_name: str | None = None
    plugin_id: str | None = None
    added_on: str | None = None

    @property
    def source_display(self) -> str:
        if self.source_tier is SourceTier.COLLECTION_MANAGER and self.collection_name:
            return f"{self.source_tier} (CM: {self.collection_name}/{self.plugin_id})"
        if self.defined_in is not None and self.source_tier is not SourceTier.BUNDLED:
            return f"{self.source_tier} ({self.defined_in.name})"
        return str(self.source_tier)


@dataclass(slots=True)
class RawPluginLayer:
    """The unmerged content of a single plugin configuration file."""

    raw_config: dict[str, Any]
    resolved_css_paths: list[Path] = field(default_factory=list)
    inherit_css: bool = False
    actual_path: Path | None = None


@dataclass(slots=True)
class OverrideResult:
    """Outcome of applying the override layers on top of layer 0."""

    merged_config: dict[str, Any]
    merged_css_paths: list[Path]
    contributing_paths: list[str]


@dataclass(slots=True)
class ConfigFileSources:
    """Files and inline blocks that produced the latest effective configuration."""

    main_config_path: Path | None = None
    plugin_config_paths: list[str] = field(default_factory=list)
    css_files: list[Path] = field(default_factory=list)

    def watch_paths(self) -> list[Path]:
        """Return the on-disk files a watcher should monitor, in order."""
        paths: list[Path] = []
        if self.main_config_path is not None:
            paths.append(self.main_config_path)
        for entry in self.plugin_config_paths:
            candidate = Path(entry)
            if candidate.is_file():
                paths.append(candidate)
        paths.extend(self.css_files)
        unique: list[Path] = []
        for path in paths:
            if path not in unique:
                unique.append(path)
        return unique

    def copy(self) -> ConfigFileSources:
        return ConfigFileSources(
            main_config_path=self.main_config_path,
            plugin_config_paths=list(self.plugin_config_paths),
            css_files=list(self.css_files),
        )


@dataclass(frozen=True, slots=True)
class EffectiveConfig:
    """Fully merged, schema-checked configuration for one plugin invocation."""

    plugin_specific_config: Mapping[str, Any]
    main_config: Mapping[str, Any]
    plugin_base_path: Path
    handler_script_path: Path
    was_factory_defaults: bool = False
    warnings: tuple[str, ...] = ()
    plugin_name: str | None = None

    @property
    def css_files(self) -> list[Path]:
        return [Path(entry) for entry in self.plugin_specific_config.get("css_files", [])]

    @property
    def options(self) -> PluginOptions:
        """Return the typed view of the merged plugin configuration."""
        from .options import parse_plugin_options

        return parse_plugin_options(
            self.plugin_specific_config, plugin=self.plugin_name or self.plugin_base_path.name
        )

    def copy(self) -> EffectiveConfig:
        """Return a deep copy so callers cannot mutate cached state."""
        return EffectiveConfig(
            plugin_specific_config=copy.deepcopy(dict(self.plugin_specific_config)),
            main_config=copy.deepcopy(dict(self.main_config)),
            plugin_base_path=self.plugin_base_path,
            handler_script_path=self.handler_script_path,
            was_factory_defaults=self.was_factory_defaults,
            warnings=self.warnings,
            plugin_name=self.plugin_name,
        )


__all__ = [
    "ConfigFileSources",
    "EffectiveConfig",
    "LoadReason",
    "MainConfigSource",
    "OverrideResult",
    "PluginRegistryEntry",
    "RawPluginLayer",
    "SourceTier",
]
