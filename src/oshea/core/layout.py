"""Locations of the configuration files shipped with oshea."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


PLUGIN_CONFIG_SUFFIX = ".config.yaml"
PLUGIN_CONTRACT_DIR = ".contract"

_DATA_ROOT = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True, slots=True)
class BundledLayout:
    """Conventional file layout of a bundled installation.

    ``root`` holds the bundled main documents, the bundled plugin directory
    and the shared plugin schema. Tests point it at a temporary tree.
    """

    root: Path

    @classmethod
    def default(cls) -> BundledLayout:
        return cls(_DATA_ROOT)

    @property
    def default_config_path(self) -> Path:
        return self.root / "config.yaml"

    @property
    def factory_default_config_path(self) -> Path:
        return self.root / "config.example.yaml"

    @property
    def plugins_dir(self) -> Path:
        return self.root / "plugins"

    @property
    def base_schema_path(self) -> Path:
        return self.root / "schemas" / "base-plugin.schema.json"


def plugin_schema_path(config_path: Path) -> Path:
    """Return the optional plugin-specific schema that sits beside ``config_path``."""
    stem = config_path.name
    if stem.endswith(PLUGIN_CONFIG_SUFFIX):
        stem = stem[: -len(PLUGIN_CONFIG_SUFFIX)]
    else:
        stem = config_path.stem
    return config_path.parent / PLUGIN_CONTRACT_DIR / f"{stem}.schema.json"


def find_plugin_config_in_dir(directory: Path) -> Path | None:
    """Return ``<dir>/<dirname>.config.yaml`` or the first ``*.config.yaml`` inside."""
    conventional = directory / f"{directory.name}{PLUGIN_CONFIG_SUFFIX}"
    if conventional.is_file():
        return conventional
    candidates = sorted(
        child for child in directory.iterdir() if child.name.endswith(PLUGIN_CONFIG_SUFFIX)
    )
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


__all__ = [
    "PLUGIN_CONFIG_SUFFIX",
    "PLUGIN_CONTRACT_DIR",
    "BundledLayout",
    "find_plugin_config_in_dir",
    "plugin_schema_path",
]
