"""Override layers applied on top of a plugin's base configuration."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from pathlib import Path
from typing import Any

from oshea.core.assets import AssetResolver
from oshea.core.diagnostics import DiagnosticEmitter, LoggingEmitter, warn_with_details
from oshea.core.exceptions import ConfigFileError
from oshea.core.layout import PLUGIN_CONFIG_SUFFIX, find_plugin_config_in_dir
from oshea.core.user_dir import OsheaUserDir, get_user_dir

from .models import MainConfigSource, OverrideResult, RawPluginLayer
from .utils import deep_merge, is_mapping, load_yaml_config, resolve_declared_path


logger = logging.getLogger(__name__)

XDG_OVERRIDE_FILENAME = "default.yaml"


def _same_file(left: Path, right: Path | None) -> bool:
    return right is not None and left.resolve() == right.resolve()


def _inherit_flag(config: Mapping[str, Any]) -> bool:
    # Override layers append unless they opt out explicitly.
    return config.get("inherit_css") is not False


class PluginConfigLoader:
    """Apply the XDG and project override layers for a plugin.

    Layers are merged in a fixed order: XDG file, XDG inline block, project
    file (from the ``plugins`` map), project inline block. Stylesheets declared
    by a layer resolve against the directory of the document that declared them.
    """

    def __init__(
        self,
        xdg: MainConfigSource,
        project: MainConfigSource,
        user_dir: OsheaUserDir | None = None,
        *,
        factory_defaults_only: bool = False,
        emitter: DiagnosticEmitter | None = None,
        asset_resolver_factory: Callable[[DiagnosticEmitter | None], AssetResolver] = AssetResolver,
    ) -> None:
        self.xdg = xdg
        self.project = project
        self.user_dir = user_dir or get_user_dir()
        self.factory_defaults_only = factory_defaults_only
        self.emitter = emitter or LoggingEmitter(logger_obj=logger)
        self.asset_resolver_factory = asset_resolver_factory
        self._layer_cache: dict[tuple[Path, Path], RawPluginLayer] = {}

    def xdg_override_path(self, plugin_name: str) -> Path | None:
        """Return the XDG override file for ``plugin_name`` if one exists."""
        override_dir = self.user_dir.plugin_override_dir(plugin_name)
        for candidate in (
            override_dir / XDG_OVERRIDE_FILENAME,
            override_dir / f"{plugin_name}{PLUGIN_CONFIG_SUFFIX}",
        ):
            if candidate.is_file():
                return candidate
        return None

    def load_layer(
        self,
        config_path: Path,
        assets_base: Path,
        plugin_name: str,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> RawPluginLayer | None:
        """Load one override file, memoized on ``(config_path, assets_base)``."""
        key = (config_path, assets_base)
        cached = self._layer_cache.get(key)
        if cached is not None:
            return cached

        target = emitter or self.emitter
        if not config_path.is_file():
            target.warning(
                f"Override file for plugin '{plugin_name}' does not exist: {config_path}"
            )
            return None
        try:
            raw_config = load_yaml_config(config_path)
        except ConfigFileError as exc:
            warn_with_details(
                target,
                f"Failed to load override for plugin '{plugin_name}' from {config_path}",
                exc,
            )
            return RawPluginLayer(raw_config={}, actual_path=None)

        resolver = self.asset_resolver_factory(target)
        layer = RawPluginLayer(
            raw_config=raw_config,
            resolved_css_paths=resolver.resolve_css(
                raw_config.get("css_files"),
                assets_base,
                plugin_name=plugin_name,
                source_description=str(config_path),
            ),
            inherit_css=_inherit_flag(raw_config),
            actual_path=config_path,
        )
        self._layer_cache[key] = layer
        return layer

    def apply_override_layers(
        self,
        plugin_name: str,
        layer0: RawPluginLayer,
        contributing_paths: list[str],
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> OverrideResult:
        """Merge every applicable override layer on top of ``layer0``."""
        target = emitter or self.emitter
        merged: dict[str, Any] = dict(layer0.raw_config)
        css_paths = list(layer0.resolved_css_paths)
        paths = list(contributing_paths)

        if self.factory_defaults_only:
            return OverrideResult(merged_config=merged, merged_css_paths=css_paths, contributing_paths=paths)

        resolver = self.asset_resolver_factory(target)

        def apply(
            block: Mapping[str, Any], base_dir: Path | None, provenance: str, description: str
        ) -> None:
            nonlocal merged, css_paths
            merged = deep_merge(merged, block)
            paths.append(provenance)
            css_paths = resolver.resolve_and_merge_css(
                block.get("css_files"),
                base_dir,
                css_paths,
                _inherit_flag(block),
                plugin_name=plugin_name,
                source_description=description,
            )
            target.event("override_layer_applied", {"plugin": plugin_name, "source": provenance})

        xdg_file = self.xdg_override_path(plugin_name)
        if xdg_file is not None:
            layer = self.load_layer(xdg_file, xdg_file.parent, plugin_name, emitter=target)
            if layer is not None and layer.actual_path is not None:
                apply(layer.raw_config, xdg_file.parent, str(xdg_file), str(xdg_file))

        xdg_inline = self.xdg.config.get(plugin_name)
        if is_mapping(xdg_inline):
            report_path = self.xdg.path or self.user_dir.main_config_path
            apply(
                xdg_inline,
                self.xdg.base_dir,
                f"Inline override from XDG main config: {report_path}",
                f"{report_path} (inline block)",
            )

        project_base = self.project.base_dir
        if project_base is None:
            return OverrideResult(merged_config=merged, merged_css_paths=css_paths, contributing_paths=paths)

        plugins_map = self.project.config.get("plugins")
        declared = plugins_map.get(plugin_name) if is_mapping(plugins_map) else None
        if isinstance(declared, str) and declared.strip():
            override_path = resolve_declared_path(declared.strip(), project_base)
            if override_path is not None and override_path.is_dir():
                found = find_plugin_config_in_dir(override_path)
                if found is None:
                    target.warning(
                        f"Override directory for plugin '{plugin_name}' contains no "
                        f"*{PLUGIN_CONFIG_SUFFIX} file: {override_path}"
                    )
                override_path = found
            if override_path is not None and not _same_file(override_path, layer0.actual_path):
                layer = self.load_layer(override_path, override_path.parent, plugin_name, emitter=target)
                if layer is not None and layer.actual_path is not None:
                    if layer.raw_config:
                        apply(layer.raw_config, override_path.parent, str(override_path), str(override_path))
                    else:
                        paths.append(f"{override_path} (empty or no effective overrides)")

        project_inline = self.project.config.get(plugin_name)
        if is_mapping(project_inline):
            report_path = self.project.path
            apply(
                project_inline,
                project_base,
                f"Inline override from project main config: {report_path}",
                f"{report_path} (inline block)",
            )

        return OverrideResult(merged_config=merged, merged_css_paths=css_paths, contributing_paths=paths)


__all__ = ["XDG_OVERRIDE_FILENAME", "PluginConfigLoader"]
