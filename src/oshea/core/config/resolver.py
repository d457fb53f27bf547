"""Entry point that turns a plugin identifier into an effective configuration.

The resolver owns the whole cascade::

    bundled / collection / XDG / project registrations  -> config file
    config file (layer 0)                               -> schema check
    XDG file, XDG inline, project file, project inline  -> override layers
    per-document overrides                               -> local layer
    global pdf and math options                          -> defaults underneath

Every result is cached for the lifetime of the resolver. Reconfiguring means
building a new resolver through :meth:`ConfigResolver.with_options`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path
from typing import Any

from oshea.core.assets import AssetResolver, finalise_css_paths
from oshea.core.diagnostics import CollectingEmitter, DiagnosticEmitter, LoggingEmitter
from oshea.core.exceptions import (
    ConfigFileError,
    HandlerScriptMissingError,
    PluginConfigError,
    PluginNotFoundError,
    PluginSpecError,
)
from oshea.core.layout import BundledLayout, find_plugin_config_in_dir
from oshea.core.plugins.collections import CollectionsManager, ManifestCollectionsManager
from oshea.core.plugins.registry import PluginDetails, PluginRegistryBuilder
from oshea.core.user_dir import OsheaUserDir, get_user_dir

from .main_loader import MainConfigLoader
from .models import (
    ConfigFileSources,
    EffectiveConfig,
    MainConfigSource,
    PluginRegistryEntry,
    RawPluginLayer,
)
from .plugin_loader import PluginConfigLoader
from .schema import PluginSchemaValidator
from .utils import HANDLER_SCRIPT_KEY, deep_merge, expand_home, is_mapping, load_yaml_config


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PluginLocation:
    """Where a plugin specification points to."""

    plugin_name: str
    is_path_spec: bool
    config_path: Path
    base_path: Path


@dataclass(frozen=True, slots=True)
class EffectiveConfigKey:
    """Cache key of an effective configuration."""

    plugin_name: str
    is_path_spec: bool
    config_path: Path
    factory_defaults_only: bool
    primary_config_path: Path | None
    local_overrides: str
    markdown_file_path: Path | None


def is_path_spec(plugin_spec: str) -> bool:
    """Return True when ``plugin_spec`` designates a path rather than a name."""
    return (
        "/" in plugin_spec
        or os.sep in plugin_spec
        or plugin_spec.startswith((".", "~"))
    )


def _serialise_overrides(overrides: Mapping[str, Any] | None) -> str:
    if not overrides:
        return ""
    return json.dumps(overrides, sort_keys=True, default=str)


def _local_config_label(markdown_file_path: Path | None) -> str:
    if markdown_file_path is None:
        return "<filename>.config.yaml"
    return f"{markdown_file_path.stem}.config.yaml"


class ConfigResolver:
    """Resolve plugin specifications into :class:`EffectiveConfig` bundles.

    Main configuration documents and the plugin registry are loaded on first
    use. The shared plugin schema is loaded at construction time.
    """

    def __init__(
        self,
        project_manifest_path: Path | str | None = None,
        *,
        factory_defaults_only: bool = False,
        lazy_load_mode: bool = False,
        layout: BundledLayout | None = None,
        user_dir: OsheaUserDir | None = None,
        collections_manager: CollectionsManager | None = None,
        collections_root: Path | None = None,
        emitter: DiagnosticEmitter | None = None,
        registry_builder: PluginRegistryBuilder | None = None,
    ) -> None:
        self.project_manifest_path = (
            Path(project_manifest_path).expanduser() if project_manifest_path else None
        )
        self.factory_defaults_only = factory_defaults_only
        self.lazy_load_mode = lazy_load_mode
        self.layout = layout or BundledLayout.default()
        self.user_dir = user_dir or get_user_dir()
        self.emitter = emitter or LoggingEmitter(logger_obj=logger)
        self._diagnostics = CollectingEmitter(downstream=self.emitter)

        self.schema_validator = PluginSchemaValidator(self.layout.base_schema_path, self.emitter)
        self._registry_builder = registry_builder or PluginRegistryBuilder(
            self.layout, self.user_dir, emitter=self.emitter
        )
        self._collections_manager = collections_manager
        self._collections_root = Path(collections_root).expanduser() if collections_root else None

        self._main_loader: MainConfigLoader | None = None
        self._plugin_loader: PluginConfigLoader | None = None
        self._registry: dict[str, PluginRegistryEntry] | None = None
        self._locations: dict[tuple[str, bool, str | None], PluginLocation] = {}
        self._base_layers: dict[Path, tuple[RawPluginLayer, tuple[str, ...]]] = {}
        self._cache: dict[EffectiveConfigKey, tuple[EffectiveConfig, ConfigFileSources]] = {}
        self._last_sources: ConfigFileSources | None = None

    # Lazy collaborators -------------------------------------------------

    @property
    def main_config_loader(self) -> MainConfigLoader:
        if self._main_loader is None:
            self._main_loader = MainConfigLoader(
                self.layout,
                self.project_manifest_path,
                factory_defaults_only=self.factory_defaults_only,
                user_dir=self.user_dir,
                emitter=self._diagnostics,
            )
        return self._main_loader

    @property
    def primary_main_config(self) -> MainConfigSource:
        return self.main_config_loader.get_primary_main_config()

    @property
    def plugin_config_loader(self) -> PluginConfigLoader:
        if self._plugin_loader is None:
            loader = self.main_config_loader
            self._plugin_loader = PluginConfigLoader(
                loader.get_xdg_main_config(),
                loader.get_project_manifest_config(),
                self.user_dir,
                factory_defaults_only=self.factory_defaults_only,
                emitter=self._diagnostics,
            )
        return self._plugin_loader

    @property
    def collections_manager(self) -> CollectionsManager:
        if self._collections_manager is None:
            self._collections_manager = ManifestCollectionsManager(
                self.get_resolved_collections_root()
            )
        return self._collections_manager

    @property
    def registry(self) -> dict[str, PluginRegistryEntry]:
        """Return the plugin registry, building it on first access."""
        if self._registry is None:
            builder = self._registry_builder
            self._registry = builder.build_registry(
                **self._registry_options(), emitter=self.emitter
            )
            # A shared builder may serve this call from its memo.
            self._diagnostics.absorb(builder.build_warnings)
        return self._registry

    def _registry_options(self) -> dict[str, Any]:
        return {
            "project_manifest_path": self.project_manifest_path,
            "factory_defaults_only": self.factory_defaults_only,
            "lazy_load_mode": self.lazy_load_mode,
            "primary_load_reason": self.primary_main_config.reason,
            "collections_manager": self.collections_manager,
        }

    def get_resolved_collections_root(self) -> Path:
        """Return the collections root used to discover collection plugins."""
        if self._collections_root is not None:
            return self._collections_root
        primary = self.primary_main_config
        declared = primary.config.get("plugins_root")
        if isinstance(declared, str) and declared.strip():
            candidate = expand_home(declared.strip())
            if not candidate.is_absolute() and primary.base_dir is not None:
                candidate = (primary.base_dir / candidate).resolve()
            if candidate.is_absolute():
                self._collections_root = candidate
                return candidate
        self._collections_root = self.user_dir.collections_root
        return self._collections_root

    def get_all_plugin_details(self) -> list[PluginDetails]:
        """Describe registered and available plugins for listing commands."""
        self.registry
        return self._registry_builder.get_all_plugin_details(
            **self._registry_options(), emitter=self.emitter
        )

    def with_options(
        self,
        *,
        factory_defaults_only: bool | None = None,
        lazy_load_mode: bool | None = None,
    ) -> ConfigResolver:
        """Return a new resolver sharing this one's collaborators."""
        return ConfigResolver(
            self.project_manifest_path,
            factory_defaults_only=(
                self.factory_defaults_only
                if factory_defaults_only is None
                else factory_defaults_only
            ),
            lazy_load_mode=self.lazy_load_mode if lazy_load_mode is None else lazy_load_mode,
            layout=self.layout,
            user_dir=self.user_dir,
            collections_manager=self._collections_manager,
            collections_root=self._collections_root,
            emitter=self.emitter,
            registry_builder=self._registry_builder,
        )

    # Spec resolution -----------------------------------------------------

    def _locate_path_spec(self, plugin_spec: str, *, allow_cwd_relative: bool) -> PluginLocation:
        candidate = expand_home(plugin_spec)
        if not candidate.is_absolute():
            if not allow_cwd_relative:
                raise PluginSpecError(
                    f"Relative plugin path specification '{plugin_spec}' is ambiguous; "
                    "use an absolute path or a registered plugin name."
                )
            candidate = Path.cwd() / candidate
        candidate = candidate.resolve()

        if candidate.is_dir():
            config_path = find_plugin_config_in_dir(candidate)
            if config_path is None:
                raise PluginSpecError(
                    f"Plugin directory '{candidate}' specified, but no *.config.yaml file found within it."
                )
            return PluginLocation(candidate.name, True, config_path, candidate)
        if candidate.is_file():
            return PluginLocation(candidate.parent.name, True, candidate, candidate.parent)
        raise PluginNotFoundError(
            f"Plugin configuration file or directory specified by path not found: '{candidate}'."
        )

    def _locate_name_spec(self, plugin_spec: str) -> PluginLocation:
        entry = self.registry.get(plugin_spec)
        if entry is None:
            raise PluginNotFoundError(
                f"Plugin '{plugin_spec}' is not registered or its configuration path "
                "could not be resolved."
            )
        if not entry.config_path.is_file():
            raise PluginNotFoundError(
                f"Configuration file for plugin '{plugin_spec}' not found at registered path: "
                f"'{entry.config_path}'."
            )
        return PluginLocation(plugin_spec, False, entry.config_path, entry.config_path.parent)

    def locate_plugin(self, plugin_spec: str, *, allow_cwd_relative: bool = False) -> PluginLocation:
        """Resolve ``plugin_spec`` to its configuration file, memoized per spec."""
        if not isinstance(plugin_spec, str) or not plugin_spec.strip():
            raise PluginSpecError("Plugin specification must be a non-empty string.")
        plugin_spec = plugin_spec.strip()
        key = (plugin_spec, allow_cwd_relative, os.getcwd() if allow_cwd_relative else None)
        location = self._locations.get(key)
        if location is None:
            if is_path_spec(plugin_spec):
                location = self._locate_path_spec(plugin_spec, allow_cwd_relative=allow_cwd_relative)
            else:
                location = self._locate_name_spec(plugin_spec)
            self._locations[key] = location
        return location

    # Layer 0 ---------------------------------------------------------------

    def _load_base_layer(
        self, location: PluginLocation, emitter: CollectingEmitter
    ) -> RawPluginLayer:
        cached = self._base_layers.get(location.config_path)
        if cached is not None:
            layer, warnings = cached
            emitter.absorb(warnings)
            return layer
        try:
            raw_config = load_yaml_config(location.config_path)
        except ConfigFileError as exc:
            raise PluginConfigError(
                f"Failed to load base configuration for plugin '{location.plugin_name}' "
                f"from '{location.config_path}'."
            ) from exc

        # Validation warnings are replayed into every later result for this file.
        local = CollectingEmitter(downstream=emitter)
        self.schema_validator.validate(
            location.plugin_name, raw_config, location.config_path, emitter=local
        )
        layer = RawPluginLayer(
            raw_config=raw_config,
            resolved_css_paths=AssetResolver(local).resolve_css(
                raw_config.get("css_files"),
                location.base_path,
                plugin_name=location.plugin_name,
                source_description=str(location.config_path),
            ),
            inherit_css=raw_config.get("inherit_css") is True,
            actual_path=location.config_path,
        )
        self._base_layers[location.config_path] = (layer, tuple(local.warnings))
        return layer

    # Global option groups -------------------------------------------------

    @staticmethod
    def _merge_global_options(config: dict[str, Any], main_config: Mapping[str, Any]) -> None:
        global_pdf = main_config.get("global_pdf_options")
        if is_mapping(global_pdf):
            plugin_pdf = config.get("pdf_options")
            plugin_pdf = plugin_pdf if is_mapping(plugin_pdf) else {}
            pdf_options = deep_merge(global_pdf, plugin_pdf)
            if is_mapping(global_pdf.get("margin")) and is_mapping(plugin_pdf.get("margin")):
                pdf_options["margin"] = deep_merge(global_pdf["margin"], plugin_pdf["margin"])
            config["pdf_options"] = pdf_options

        global_math = main_config.get("math")
        global_math = global_math if is_mapping(global_math) else {}
        plugin_math = config.get("math")
        plugin_math = plugin_math if is_mapping(plugin_math) else {}
        math = deep_merge(global_math, plugin_math)
        global_katex = global_math.get("katex_options")
        plugin_katex = plugin_math.get("katex_options")
        if is_mapping(global_katex) or is_mapping(plugin_katex):
            math["katex_options"] = deep_merge(
                global_katex if is_mapping(global_katex) else {},
                plugin_katex if is_mapping(plugin_katex) else {},
            )
        config["math"] = math

    # Public API ------------------------------------------------------------

    def get_effective_config(
        self,
        plugin_spec: str,
        local_config_overrides: Mapping[str, Any] | None = None,
        markdown_file_path: Path | str | None = None,
        *,
        allow_cwd_relative: bool = False,
    ) -> EffectiveConfig:
        """Return the effective configuration for ``plugin_spec``.

        Raises :class:`~oshea.core.exceptions.OsheaConfigError` subclasses when
        the plugin cannot be located, when its base file omits
        ``handler_script`` or when the handler script is missing on disk.
        Everything else is reported through :attr:`EffectiveConfig.warnings`.
        """
        markdown_path = Path(markdown_file_path) if markdown_file_path else None
        location = self.locate_plugin(plugin_spec, allow_cwd_relative=allow_cwd_relative)
        primary = self.primary_main_config

        key = EffectiveConfigKey(
            plugin_name=location.plugin_name,
            is_path_spec=location.is_path_spec,
            config_path=location.config_path,
            factory_defaults_only=self.factory_defaults_only,
            primary_config_path=primary.path,
            local_overrides=_serialise_overrides(local_config_overrides),
            markdown_file_path=markdown_path,
        )
        cached = self._cache.get(key)
        if cached is not None:
            effective, sources = cached
            self._last_sources = sources.copy()
            return effective.copy()

        collector = CollectingEmitter(downstream=self.emitter)
        plugin_name = location.plugin_name
        sources = ConfigFileSources(main_config_path=primary.path)

        layer0 = self._load_base_layer(location, collector)
        handler_script = layer0.raw_config.get(HANDLER_SCRIPT_KEY)
        if not isinstance(handler_script, str) or not handler_script.strip():
            raise PluginConfigError(
                f"'handler_script' not defined in plugin '{plugin_name}'s own configuration "
                f"file: {location.config_path}."
            )

        result = self.plugin_config_loader.apply_override_layers(
            plugin_name, layer0, [str(location.config_path)], emitter=collector
        )
        merged = result.merged_config
        css_paths = result.merged_css_paths
        sources.plugin_config_paths = list(result.contributing_paths)

        if local_config_overrides:
            merged = deep_merge(merged, local_config_overrides)
            if local_config_overrides.get("css_files") is not None:
                css_paths = AssetResolver(collector).resolve_and_merge_css(
                    local_config_overrides.get("css_files"),
                    markdown_path.parent if markdown_path is not None else None,
                    css_paths,
                    local_config_overrides.get("inherit_css") is not False,
                    plugin_name=plugin_name,
                    source_description=_local_config_label(markdown_path),
                )
            sources.plugin_config_paths.append(
                f"Local file override from '{_local_config_label(markdown_path)}'"
            )

        merged[HANDLER_SCRIPT_KEY] = handler_script
        self._merge_global_options(merged, primary.config)

        css_files = finalise_css_paths(css_paths)
        merged["css_files"] = [str(path) for path in css_files]
        sources.css_files = list(css_files)

        handler_path = (location.base_path / handler_script).resolve()
        if not handler_path.is_file():
            collector.error(f"Handler script for plugin '{plugin_name}' not found at {handler_path}")
            raise HandlerScriptMissingError(
                f"Handler script '{handler_script}' for plugin '{plugin_name}' not found at "
                f"'{handler_path}'."
            )

        effective = EffectiveConfig(
            plugin_specific_config=merged,
            main_config=primary.config,
            plugin_base_path=location.base_path,
            handler_script_path=handler_path,
            was_factory_defaults=self.factory_defaults_only,
            warnings=tuple(self._diagnostics.warnings + collector.warnings),
            plugin_name=plugin_name,
        )
        self._cache[key] = (effective, sources)
        self._last_sources = sources.copy()
        return effective.copy()

    def get_config_file_sources(self) -> ConfigFileSources:
        """Return the files behind the most recent effective configuration."""
        if self._last_sources is None:
            return ConfigFileSources()
        return self._last_sources.copy()


__all__ = ["ConfigResolver", "EffectiveConfigKey", "PluginLocation", "is_path_spec"]
