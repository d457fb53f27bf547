"""Centralised resolution of the oshea configuration and data directories."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import os
from pathlib import Path
from threading import RLock


__all__ = [
    "APP_DIR_NAME",
    "OsheaUserDir",
    "configure_user_dir",
    "get_user_dir",
    "set_user_dir",
    "user_dir_context",
]

APP_DIR_NAME = "oshea"

_USER_DIR: OsheaUserDir | None = None
_LOCK: RLock = RLock()


def _resolve_config_root(root: str | Path | None) -> tuple[Path, bool]:
    if root is not None:
        return Path(root).expanduser(), True
    env_root = os.environ.get("OSHEA_CONFIG_DIR")
    if env_root:
        return Path(env_root).expanduser(), True
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config).expanduser() / APP_DIR_NAME, False
    return Path.home() / ".config" / APP_DIR_NAME, False


def _resolve_data_root(root: str | Path | None) -> tuple[Path, bool]:
    if root is not None:
        return Path(root).expanduser(), True
    env_root = os.environ.get("OSHEA_DATA_DIR")
    if env_root:
        return Path(env_root).expanduser(), True
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data).expanduser() / APP_DIR_NAME, False
    return Path.home() / ".local" / "share" / APP_DIR_NAME, False


@dataclass(frozen=True, slots=True)
class OsheaUserDir:
    """Resolved XDG-scope configuration and data roots."""

    config_root: Path
    data_root: Path
    config_is_explicit: bool = False
    data_is_explicit: bool = False

    @property
    def main_config_path(self) -> Path:
        """Return the XDG-scope main configuration document."""
        return self.config_root / "config.yaml"

    @property
    def collections_root(self) -> Path:
        """Return the directory managed by the collections manager."""
        return self.data_root / "collections"

    def plugin_override_dir(self, plugin_name: str) -> Path:
        """Return the directory holding XDG-scope overrides for ``plugin_name``."""
        return self.config_root / plugin_name


def configure_user_dir(
    *,
    config_root: str | Path | None = None,
    data_root: str | Path | None = None,
) -> OsheaUserDir:
    """Replace the global user dir singleton with a freshly resolved instance."""
    resolved_config, config_explicit = _resolve_config_root(config_root)
    resolved_data, data_explicit = _resolve_data_root(data_root)
    return set_user_dir(
        OsheaUserDir(
            config_root=resolved_config,
            data_root=resolved_data,
            config_is_explicit=config_explicit,
            data_is_explicit=data_explicit,
        )
    )


def get_user_dir() -> OsheaUserDir:
    """Return the lazily created user dir singleton.

    Roots that were not set explicitly follow the environment, so a change to
    ``XDG_CONFIG_HOME`` between calls yields a fresh instance.
    """
    global _USER_DIR
    with _LOCK:
        if _USER_DIR is None:
            _USER_DIR = configure_user_dir()
            return _USER_DIR
        current_config, config_explicit = _resolve_config_root(None)
        current_data, data_explicit = _resolve_data_root(None)
        if (not _USER_DIR.config_is_explicit and _USER_DIR.config_root != current_config) or (
            not _USER_DIR.data_is_explicit and _USER_DIR.data_root != current_data
        ):
            _USER_DIR = OsheaUserDir(
                config_root=current_config
                if not _USER_DIR.config_is_explicit
                else _USER_DIR.config_root,
                data_root=current_data if not _USER_DIR.data_is_explicit else _USER_DIR.data_root,
                config_is_explicit=_USER_DIR.config_is_explicit or config_explicit,
                data_is_explicit=_USER_DIR.data_is_explicit or data_explicit,
            )
        return _USER_DIR


def set_user_dir(user_dir: OsheaUserDir) -> OsheaUserDir:
    """Replace the current user dir singleton and return it."""
    global _USER_DIR
    with _LOCK:
        _USER_DIR = user_dir
        return _USER_DIR


@contextmanager
def user_dir_context(
    *,
    config_root: str | Path | None = None,
    data_root: str | Path | None = None,
) -> Iterator[OsheaUserDir]:
    """Temporarily override the global user dir singleton."""
    global _USER_DIR
    with _LOCK:
        previous = _USER_DIR
    current = configure_user_dir(config_root=config_root, data_root=data_root)
    try:
        yield current
    finally:
        with _LOCK:
            _USER_DIR = previous
