"""Plugin registry assembled from the bundled, collection, XDG and project tiers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

from oshea.core.config.models import LoadReason, PluginRegistryEntry, SourceTier
from oshea.core.config.utils import expand_home, is_mapping, load_yaml_config
from oshea.core.diagnostics import (
    CollectingEmitter,
    DiagnosticEmitter,
    LoggingEmitter,
    warn_with_details,
)
from oshea.core.exceptions import ConfigFileError
from oshea.core.layout import PLUGIN_CONFIG_SUFFIX, BundledLayout, find_plugin_config_in_dir
from oshea.core.user_dir import OsheaUserDir, get_user_dir

from .collections import CollectionsManager


logger = logging.getLogger(__name__)

ALIASES_KEY = "plugin_directory_aliases"
PLUGINS_KEY = "plugins"


@dataclass(frozen=True, slots=True)
class RegistryBuildKey:
    """Inputs that invalidate a previously built registry."""

    factory_defaults_only: bool
    lazy_load_mode: bool
    primary_load_reason: LoadReason | None
    project_manifest_path: Path | None
    collections_manager: CollectionsManager | None = field(default=None, compare=False)

    def matches(self, other: RegistryBuildKey | None) -> bool:
        return (
            other is not None
            and self == other
            and self.collections_manager is other.collections_manager
        )


@dataclass(frozen=True, slots=True)
class PluginDetails:
    """Row of the plugin listing shown to users."""

    name: str
    description: str
    config_path: Path | None
    source_display: str
    status: str
    collection_name: str | None = None
    plugin_id: str | None = None
    invoke_name: str | None = None
    added_on: str | None = None


class PluginRegistryBuilder:
    """Build and memoize the plugin name to configuration file mapping.

    Tiers are merged last-writer-wins in ascending precedence: bundled
    plugins, collection-manager plugins, the XDG ``plugins`` map and the
    project ``plugins`` map. In factory-defaults mode only bundled plugins
    are registered.
    """

    def __init__(
        self,
        layout: BundledLayout | None = None,
        user_dir: OsheaUserDir | None = None,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.layout = layout or BundledLayout.default()
        self.user_dir = user_dir or get_user_dir()
        self.emitter = emitter or LoggingEmitter(logger_obj=logger)
        self.build_count = 0
        self.build_warnings: tuple[str, ...] = ()
        self._built_key: RegistryBuildKey | None = None
        self._registry: dict[str, PluginRegistryEntry] = {}

    def _register_bundled(self, emitter: DiagnosticEmitter) -> dict[str, PluginRegistryEntry]:
        plugins_dir = self.layout.plugins_dir
        registrations: dict[str, PluginRegistryEntry] = {}
        if not plugins_dir.is_dir():
            emitter.warning(
                f"Bundled plugins directory not found at {plugins_dir}; no bundled plugins registered."
            )
            return registrations

        for plugin_dir in sorted(child for child in plugins_dir.iterdir() if child.is_dir()):
            config_path = plugin_dir / f"{plugin_dir.name}{PLUGIN_CONFIG_SUFFIX}"
            if not config_path.is_file():
                logger.debug("Skipping bundled directory without config file: %s", plugin_dir)
                continue
            registrations[plugin_dir.name] = PluginRegistryEntry(
                config_path=config_path,
                source_tier=SourceTier.BUNDLED,
                defined_in=plugins_dir,
            )
        return registrations

    def _register_from_collections(
        self, manager: CollectionsManager, emitter: DiagnosticEmitter
    ) -> dict[str, PluginRegistryEntry]:
        registrations: dict[str, PluginRegistryEntry] = {}
        for entry in manager.enabled_plugins():
            if not entry.config_path.is_file():
                emitter.warning(
                    f"Config path for collection plugin '{entry.invoke_name}' does not exist: "
                    f"{entry.config_path}. Skipping registration."
                )
                continue
            registrations[entry.invoke_name] = PluginRegistryEntry(
                config_path=entry.config_path,
                source_tier=SourceTier.COLLECTION_MANAGER,
                defined_in=getattr(manager, "enabled_manifest_path", None),
                collection_name=entry.collection_name,
                plugin_id=entry.plugin_id,
                added_on=entry.added_on,
            )
        return registrations

    def _resolve_alias(
        self, alias: str, value: Any, base_dir: Path | None, emitter: DiagnosticEmitter
    ) -> Path | None:
        if not isinstance(value, str) or not value.strip():
            emitter.warning(f"Ignoring plugin directory alias '{alias}': empty or not a string.")
            return None
        candidate = expand_home(value.strip())
        if candidate.is_absolute():
            return candidate
        if base_dir is None:
            emitter.warning(
                f"Cannot resolve relative alias '{alias}' ({value}): base directory unknown."
            )
            return None
        return (base_dir / candidate).resolve()

    def _resolve_registration_path(
        self,
        name: str,
        raw: Any,
        base_dir: Path | None,
        aliases: Mapping[str, Path],
        emitter: DiagnosticEmitter,
    ) -> Path | None:
        if not isinstance(raw, str) or not raw.strip():
            emitter.warning(f"Ignoring registration for plugin '{name}': path must be a string.")
            return None

        raw = raw.strip()
        head, sep, tail = raw.partition(":")
        if sep and head in aliases:
            candidate = aliases[head] / tail
        else:
            candidate = expand_home(raw)

        if not candidate.is_absolute():
            if base_dir is None:
                emitter.warning(
                    f"Cannot resolve relative path '{raw}' for plugin '{name}': base directory unknown."
                )
                return None
            candidate = (base_dir / candidate).resolve()

        if candidate.is_file():
            return candidate
        if candidate.is_dir():
            config_path = find_plugin_config_in_dir(candidate)
            if config_path is None:
                emitter.warning(
                    f"Plugin directory '{candidate}' for '{name}' contains no "
                    f"*{PLUGIN_CONFIG_SUFFIX} file. Skipping registration."
                )
            return config_path
        emitter.warning(
            f"Plugin configuration path for '{name}' does not exist: {candidate}. Skipping registration."
        )
        return None

    def _register_from_document(
        self,
        document_path: Path,
        base_dir: Path | None,
        tier: SourceTier,
        emitter: DiagnosticEmitter,
    ) -> dict[str, PluginRegistryEntry]:
        registrations: dict[str, PluginRegistryEntry] = {}
        if not document_path.is_file():
            logger.debug("No %s registrations: %s does not exist", tier, document_path)
            return registrations
        try:
            document = load_yaml_config(document_path)
        except ConfigFileError as exc:
            warn_with_details(
                emitter, f"Error reading plugin registrations from {document_path}", exc
            )
            return registrations

        aliases: dict[str, Path] = {}
        raw_aliases = document.get(ALIASES_KEY)
        if is_mapping(raw_aliases):
            for alias, value in raw_aliases.items():
                target = self._resolve_alias(str(alias), value, base_dir, emitter)
                if target is not None:
                    aliases[str(alias)] = target

        plugins = document.get(PLUGINS_KEY)
        if not is_mapping(plugins):
            return registrations
        for name, raw in plugins.items():
            config_path = self._resolve_registration_path(
                str(name), raw, base_dir, aliases, emitter
            )
            if config_path is None:
                continue
            registrations[str(name)] = PluginRegistryEntry(
                config_path=config_path, source_tier=tier, defined_in=document_path
            )
        return registrations

    def build_registry(
        self,
        *,
        project_manifest_path: Path | None = None,
        factory_defaults_only: bool = False,
        lazy_load_mode: bool = False,
        primary_load_reason: LoadReason | None = None,
        collections_manager: CollectionsManager | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> dict[str, PluginRegistryEntry]:
        """Return the registry, rebuilding only when an invalidating input changed.

        Warnings raised by the last rebuild stay available in
        :attr:`build_warnings` for callers served from the memo.
        """
        key = RegistryBuildKey(
            factory_defaults_only=factory_defaults_only,
            lazy_load_mode=lazy_load_mode,
            primary_load_reason=primary_load_reason,
            project_manifest_path=project_manifest_path,
            collections_manager=collections_manager,
        )
        if key.matches(self._built_key):
            return dict(self._registry)

        collector = CollectingEmitter(downstream=emitter or self.emitter)
        registry = self._register_bundled(collector)
        if not factory_defaults_only:
            if collections_manager is not None:
                registry.update(self._register_from_collections(collections_manager, collector))
            registry.update(
                self._register_from_document(
                    self.user_dir.main_config_path,
                    self.user_dir.config_root,
                    SourceTier.XDG_FILE,
                    collector,
                )
            )
            if project_manifest_path is not None:
                project_path = Path(project_manifest_path)
                registry.update(
                    self._register_from_document(
                        project_path, project_path.parent, SourceTier.PROJECT_FILE, collector
                    )
                )

        self._registry = registry
        self._built_key = key
        self.build_count += 1
        self.build_warnings = tuple(collector.warnings)
        collector.event(
            "registry_built",
            {"count": len(registry), "factory_defaults_only": factory_defaults_only},
        )
        return dict(registry)

    def get_all_plugin_details(
        self,
        *,
        project_manifest_path: Path | None = None,
        factory_defaults_only: bool = False,
        lazy_load_mode: bool = False,
        primary_load_reason: LoadReason | None = None,
        collections_manager: CollectionsManager | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> list[PluginDetails]:
        """Describe every registered plugin plus collection plugins not yet enabled."""
        registry = self.build_registry(
            project_manifest_path=project_manifest_path,
            factory_defaults_only=factory_defaults_only,
            lazy_load_mode=lazy_load_mode,
            primary_load_reason=primary_load_reason,
            collections_manager=collections_manager,
            emitter=emitter,
        )
        details: dict[str, PluginDetails] = {}
        for name, entry in registry.items():
            try:
                description = load_yaml_config(entry.config_path).get("description") or "N/A"
            except ConfigFileError as exc:
                logger.warning("Could not read description for plugin '%s': %s", name, exc)
                description = f"Error loading config: {exc}"
            cm_entry = entry.source_tier is SourceTier.COLLECTION_MANAGER
            details[name] = PluginDetails(
                name=name,
                description=str(description),
                config_path=entry.config_path,
                source_display=entry.source_display,
                status="Enabled (CM)" if cm_entry else f"Registered ({entry.source_tier})",
                collection_name=entry.collection_name,
                plugin_id=entry.plugin_id,
                invoke_name=name if cm_entry else None,
                added_on=entry.added_on,
            )

        if collections_manager is not None and not factory_defaults_only:
            enabled_ids = {
                (entry.collection_name, entry.plugin_id)
                for entry in collections_manager.enabled_plugins()
            }
            for available in collections_manager.available_plugins():
                full_id = f"{available.collection_name}/{available.plugin_id}"
                if (available.collection_name, available.plugin_id) in enabled_ids:
                    continue
                if full_id in details or available.plugin_id in details:
                    continue
                details[full_id] = PluginDetails(
                    name=full_id,
                    description=available.description or "N/A",
                    config_path=available.config_path,
                    source_display=f"{SourceTier.COLLECTION_MANAGER} (CM: {full_id})",
                    status="Available (CM)",
                    collection_name=available.collection_name,
                    plugin_id=available.plugin_id,
                )

        return sorted(details.values(), key=lambda item: item.name)


__all__ = ["PluginDetails", "PluginRegistryBuilder", "RegistryBuildKey"]
