"""Stylesheet resolution for plugin configuration layers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import logging
from pathlib import Path
from typing import Any

from oshea.core.config.utils import expand_home
from oshea.core.diagnostics import DiagnosticEmitter


logger = logging.getLogger(__name__)


def _normalise_declared(declared: Any) -> list[str]:
    if declared is None:
        return []
    if isinstance(declared, str):
        candidate = declared.strip()
        return [candidate] if candidate else []
    if isinstance(declared, Sequence) and not isinstance(declared, (str, bytes)):
        return [str(entry).strip() for entry in declared if str(entry).strip()]
    return []


class AssetResolver:
    """Resolve declared stylesheets and merge them into an accumulated list."""

    def __init__(self, emitter: DiagnosticEmitter | None = None) -> None:
        self.emitter = emitter

    def _warn(self, message: str) -> None:
        if self.emitter is not None:
            self.emitter.warning(message)
        else:
            logger.warning(message)

    def resolve_css(
        self,
        declared_files: Any,
        base_dir: Path | None,
        *,
        plugin_name: str | None = None,
        source_description: str | None = None,
    ) -> list[Path]:
        """Return the declared stylesheets as absolute paths."""
        resolved: list[Path] = []
        for entry in _normalise_declared(declared_files):
            candidate = expand_home(entry)
            if not candidate.is_absolute():
                if base_dir is None:
                    self._warn(
                        f"Cannot resolve relative stylesheet '{entry}' for plugin "
                        f"'{plugin_name}' declared in {source_description}: no base directory."
                    )
                    continue
                candidate = base_dir / candidate
            candidate = candidate.resolve()
            if not candidate.exists():
                self._warn(
                    f"Stylesheet '{entry}' for plugin '{plugin_name}' declared in "
                    f"{source_description} not found at {candidate}."
                )
            resolved.append(candidate)
        return resolved

    def resolve_and_merge_css(
        self,
        declared_files: Any,
        base_dir: Path | None,
        existing_resolved_paths: Iterable[Path],
        inherit_css: bool,
        plugin_name: str | None = None,
        source_description: str | None = None,
    ) -> list[Path]:
        """Merge newly declared stylesheets into ``existing_resolved_paths``.

        With ``inherit_css`` the new paths are appended, otherwise they replace
        the accumulated list. A layer that declares no stylesheets at all leaves
        the accumulated list untouched.
        """
        existing = list(existing_resolved_paths)
        if declared_files is None:
            return existing
        new_paths = self.resolve_css(
            declared_files,
            base_dir,
            plugin_name=plugin_name,
            source_description=source_description,
        )
        if not inherit_css:
            return new_paths
        return existing + new_paths


def finalise_css_paths(paths: Iterable[Path]) -> list[Path]:
    """Drop duplicates and entries absent from disk, keeping first occurrences."""
    seen: set[Path] = set()
    result: list[Path] = []
    for path in paths:
        if not path or path in seen:
            continue
        seen.add(path)
        if path.exists():
            result.append(path)
    return result


__all__ = ["AssetResolver", "finalise_css_paths"]
