"""Merge and YAML loading primitives for configuration documents."""

from __future__ import annotations

from collections.abc import Mapping
import copy
from pathlib import Path
from typing import Any

import yaml

from oshea.core.exceptions import ConfigFileError


HANDLER_SCRIPT_KEY = "handler_script"
VERBATIM_KEYS = frozenset({"css_files", "inherit_css"})


def is_mapping(value: Any) -> bool:
    """Return True for plain mapping values (lists and scalars excluded)."""
    return isinstance(value, Mapping)


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``target`` recursively merged with ``source``.

    Scalars and lists from ``source`` overwrite. ``handler_script`` keeps the
    first value seen, at any depth; ``css_files`` and ``inherit_css`` are copied
    verbatim because the asset resolver owns their semantics. Neither input is
    mutated.
    """
    output: dict[str, Any] = copy.deepcopy(dict(target)) if is_mapping(target) else {}
    if not is_mapping(target) or not is_mapping(source):
        return output

    for key, value in source.items():
        if key == HANDLER_SCRIPT_KEY:
            if output.get(key) is None and value is not None:
                output[key] = value
        elif key in VERBATIM_KEYS:
            if value is not None:
                output[key] = copy.deepcopy(value)
        elif is_mapping(value) and is_mapping(output.get(key)):
            output[key] = deep_merge(output[key], value)
        else:
            output[key] = copy.deepcopy(value)
    return output


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from ``path``; empty documents yield ``{}``."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigFileError(f"Configuration file '{path}' could not be read: {exc}") from exc
    try:
        payload = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigFileError(f"Error parsing '{path}': {exc}") from exc
    if payload is None:
        return {}
    if not is_mapping(payload):
        raise ConfigFileError(
            f"Configuration file '{path}' must contain a mapping, got {type(payload).__name__}."
        )
    return dict(payload)


def expand_home(value: str) -> Path:
    """Expand a leading ``~/`` (or ``~\\``) into the user's home directory."""
    if value.startswith(("~/", "~\\")) or value == "~":
        return Path.home() / value[2:]
    return Path(value)


def resolve_declared_path(value: str, base_dir: Path | None) -> Path | None:
    """Resolve ``value`` with home expansion, relative to ``base_dir`` when needed."""
    candidate = expand_home(value)
    if candidate.is_absolute():
        return candidate
    if base_dir is None:
        return None
    return (base_dir / candidate).resolve()


__all__ = [
    "HANDLER_SCRIPT_KEY",
    "VERBATIM_KEYS",
    "deep_merge",
    "expand_home",
    "is_mapping",
    "load_yaml_config",
    "resolve_declared_path",
]
