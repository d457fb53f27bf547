"""Selection and loading of the top-level (main) configuration documents."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from oshea.core.diagnostics import DiagnosticEmitter, LoggingEmitter, warn_with_details
from oshea.core.exceptions import ConfigFileError
from oshea.core.layout import BundledLayout
from oshea.core.user_dir import OsheaUserDir, get_user_dir

from .models import LoadReason, MainConfigSource
from .utils import load_yaml_config


logger = logging.getLogger(__name__)


class MainConfigLoader:
    """Pick the primary main config and expose the XDG and project documents.

    Every document is read at most once per loader. The primary document is
    chosen from a fixed chain: factory defaults (when requested), the explicit
    project manifest, the XDG global file, the bundled main file, and finally
    the bundled factory default.
    """

    def __init__(
        self,
        layout: BundledLayout | None = None,
        project_manifest_path: Path | None = None,
        *,
        factory_defaults_only: bool = False,
        user_dir: OsheaUserDir | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.layout = layout or BundledLayout.default()
        self.user_dir = user_dir or get_user_dir()
        self.project_manifest_path = (
            Path(project_manifest_path).expanduser() if project_manifest_path else None
        )
        self.factory_defaults_only = factory_defaults_only
        self.emitter = emitter or LoggingEmitter(logger_obj=logger)

        self._primary: MainConfigSource | None = None
        self._xdg: MainConfigSource | None = None
        self._project: MainConfigSource | None = None

    @property
    def xdg_config_path(self) -> Path:
        return self.user_dir.main_config_path

    @property
    def xdg_base_dir(self) -> Path:
        return self.user_dir.config_root

    def _select_primary_path(self) -> tuple[Path, LoadReason]:
        if self.factory_defaults_only:
            return self.layout.factory_default_config_path, LoadReason.FACTORY_DEFAULT
        if self.project_manifest_path is not None and self.project_manifest_path.is_file():
            return self.project_manifest_path, LoadReason.PROJECT
        if self.xdg_config_path.is_file():
            return self.xdg_config_path, LoadReason.XDG_GLOBAL
        if self.layout.default_config_path.is_file():
            return self.layout.default_config_path, LoadReason.BUNDLED_MAIN
        return self.layout.factory_default_config_path, LoadReason.FACTORY_DEFAULT_FALLBACK

    def _load_primary(self) -> MainConfigSource:
        path, reason = self._select_primary_path()
        if not path.is_file():
            self.emitter.warning(
                "Primary main configuration not found, using empty global settings."
            )
            return MainConfigSource(config={}, path=None, base_dir=None, reason=LoadReason.NONE_FOUND)

        try:
            config = load_yaml_config(path)
        except ConfigFileError as exc:
            warn_with_details(
                self.emitter, f"Failed to load primary main configuration {path}", exc
            )
            config = {}

        self.emitter.event("primary_config_selected", {"path": str(path), "reason": str(reason)})
        return MainConfigSource(config=config, path=path, base_dir=path.parent, reason=reason)

    def _load_secondary(self, path: Path, label: str) -> dict[str, Any]:
        primary = self.get_primary_main_config()
        if primary.path is not None and primary.path == path:
            return primary.config
        try:
            return load_yaml_config(path)
        except ConfigFileError as exc:
            warn_with_details(self.emitter, f"Could not load {label} {path}", exc)
            return {}

    def get_primary_main_config(self) -> MainConfigSource:
        """Return the primary main config, loading it on first use."""
        if self._primary is None:
            self._primary = self._load_primary()
        return self._primary

    def get_xdg_main_config(self) -> MainConfigSource:
        """Return the XDG-scope main document (empty in factory-defaults mode)."""
        if self._xdg is None:
            path = self.xdg_config_path
            config: dict[str, Any] = {}
            if not self.factory_defaults_only and path.is_file():
                config = self._load_secondary(path, "XDG main config")
            self._xdg = MainConfigSource(config=config, path=path, base_dir=self.xdg_base_dir)
        return self._xdg

    def get_project_manifest_config(self) -> MainConfigSource:
        """Return the project manifest passed explicitly (empty when absent)."""
        if self._project is None:
            path = self.project_manifest_path
            config: dict[str, Any] = {}
            base_dir: Path | None = None
            if not self.factory_defaults_only and path is not None:
                if path.is_file():
                    config = self._load_secondary(path, "project manifest")
                    base_dir = path.parent
                else:
                    self.emitter.warning(f"Project manifest not found at provided path: {path}")
            self._project = MainConfigSource(config=config, path=path, base_dir=base_dir)
        return self._project


__all__ = ["MainConfigLoader"]
