"""Read-only view over the plugins managed by the collections manager.

Cloning and updating collections is handled by a separate tool; the engine
only consumes its ``enabled.yaml`` manifest and the collection tree.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from oshea.core.config.utils import is_mapping, load_yaml_config
from oshea.core.exceptions import ConfigFileError
from oshea.core.layout import PLUGIN_CONFIG_SUFFIX


logger = logging.getLogger(__name__)

ENABLED_MANIFEST_FILENAME = "enabled.yaml"


@dataclass(frozen=True, slots=True)
class EnabledPlugin:
    """Entry of the collections manager's enabled-plugin manifest."""

    invoke_name: str
    collection_name: str
    plugin_id: str
    config_path: Path
    added_on: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> EnabledPlugin | None:
        invoke_name = payload.get("invoke_name")
        config_path = payload.get("config_path")
        if not invoke_name or not config_path:
            return None
        added_on = payload.get("added_on")
        return cls(
            invoke_name=str(invoke_name),
            collection_name=str(payload.get("collection_name") or ""),
            plugin_id=str(payload.get("plugin_id") or invoke_name),
            config_path=Path(str(config_path)).expanduser(),
            added_on=str(added_on) if added_on is not None else None,
        )


@dataclass(frozen=True, slots=True)
class AvailablePlugin:
    """Plugin present in a collection, whether enabled or not."""

    collection_name: str
    plugin_id: str
    config_path: Path
    description: str | None = None


@runtime_checkable
class CollectionsManager(Protocol):
    """Interface consumed by the plugin registry."""

    def enabled_plugins(self) -> list[EnabledPlugin]: ...

    def available_plugins(self) -> list[AvailablePlugin]: ...


class ManifestCollectionsManager:
    """Collections manager backed by a collections root on disk."""

    def __init__(self, collections_root: Path) -> None:
        self.collections_root = Path(collections_root)

    @property
    def enabled_manifest_path(self) -> Path:
        return self.collections_root / ENABLED_MANIFEST_FILENAME

    def enabled_plugins(self) -> list[EnabledPlugin]:
        manifest_path = self.enabled_manifest_path
        if not manifest_path.is_file():
            logger.debug("Collections manager manifest not found at %s", manifest_path)
            return []
        try:
            payload = load_yaml_config(manifest_path)
        except ConfigFileError as exc:
            logger.error("Error reading collections manager manifest: %s", exc)
            return []

        raw_entries = payload.get("enabled_plugins")
        if not isinstance(raw_entries, list):
            return []
        entries: list[EnabledPlugin] = []
        for raw in raw_entries:
            entry = EnabledPlugin.from_mapping(raw) if is_mapping(raw) else None
            if entry is None:
                logger.warning("Skipping invalid entry in %s: %r", manifest_path, raw)
                continue
            entries.append(entry)
        return entries

    def available_plugins(self) -> list[AvailablePlugin]:
        root = self.collections_root
        if not root.is_dir():
            return []
        available: list[AvailablePlugin] = []
        for collection in sorted(child for child in root.iterdir() if child.is_dir()):
            if collection.name.startswith("."):
                continue
            for plugin_dir in sorted(child for child in collection.iterdir() if child.is_dir()):
                config_path = plugin_dir / f"{plugin_dir.name}{PLUGIN_CONFIG_SUFFIX}"
                if not config_path.is_file():
                    continue
                description: str | None = None
                try:
                    description = load_yaml_config(config_path).get("description")
                except ConfigFileError as exc:
                    logger.debug("Could not read description from %s: %s", config_path, exc)
                available.append(
                    AvailablePlugin(
                        collection_name=collection.name,
                        plugin_id=plugin_dir.name,
                        config_path=config_path,
                        description=description,
                    )
                )
        return available


__all__ = [
    "ENABLED_MANIFEST_FILENAME",
    "AvailablePlugin",
    "CollectionsManager",
    "EnabledPlugin",
    "ManifestCollectionsManager",
]
