"""Decide which plugin converts a given Markdown document."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

import yaml

from oshea.core.config.utils import load_yaml_config
from oshea.core.exceptions import ConfigFileError
from oshea.core.layout import PLUGIN_CONFIG_SUFFIX


logger = logging.getLogger(__name__)

FRONT_MATTER_PLUGIN_KEY = "oshea_plugin"
LOCAL_PLUGIN_KEY = "plugin"


@dataclass(slots=True)
class PluginDetermination:
    """Chosen plugin specification and where the choice came from."""

    plugin_spec: str
    source: str
    local_overrides: dict[str, Any] | None = None
    local_config_path: Path | None = None
    notes: list[str] = field(default_factory=list)


def split_front_matter(source: str) -> tuple[dict[str, Any], str]:
    """Split a leading YAML front matter block from ``source``."""
    candidate = source.lstrip("\ufeff")
    prefix_len = len(source) - len(candidate)
    lines = candidate.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, source

    front_matter_lines: list[str] = []
    closing_index: int | None = None
    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() in {"---", "..."}:
            closing_index = idx
            break
        front_matter_lines.append(line)

    if closing_index is None:
        return {}, source

    try:
        metadata = yaml.safe_load("\n".join(front_matter_lines)) or {}
    except yaml.YAMLError:
        return {}, source
    if not isinstance(metadata, dict):
        metadata = {}

    body = "\n".join(lines[closing_index + 1 :])
    if source.endswith("\n"):
        body += "\n"
    return metadata, source[:prefix_len] + body


def local_config_path_for(markdown_file: Path) -> Path:
    """Return the ``<stem>.config.yaml`` file that sits beside ``markdown_file``."""
    return markdown_file.with_name(f"{markdown_file.stem}{PLUGIN_CONFIG_SUFFIX}")


def _looks_like_path(spec: str) -> bool:
    return "/" in spec or "\\" in spec or spec.startswith((".", "~"))


def _self_activate(spec: str, markdown_dir: Path) -> tuple[str, str] | None:
    nested = markdown_dir / spec / f"{spec}{PLUGIN_CONFIG_SUFFIX}"
    if nested.is_file():
        return str(nested), "self-activated via dir path"
    direct = markdown_dir / f"{spec}{PLUGIN_CONFIG_SUFFIX}"
    if direct.is_file():
        return str(direct), "self-activated via direct path"
    return None


def determine_plugin(
    markdown_file: Path | str | None,
    cli_plugin: str | None = None,
    default_plugin: str = "default",
) -> PluginDetermination:
    """Pick the plugin for ``markdown_file``.

    Precedence is the command line, then the ``oshea_plugin`` front matter key,
    then the ``plugin`` key of the document's local ``<stem>.config.yaml``,
    then ``default_plugin``. The other keys of the local file are returned as
    per-document overrides.
    """
    front_matter_plugin: str | None = None
    local_plugin: str | None = None
    local_overrides: dict[str, Any] | None = None
    local_path: Path | None = None
    markdown_path: Path | None = None
    notes: list[str] = []

    if markdown_file is not None:
        markdown_path = Path(markdown_file).expanduser().resolve()
        if markdown_path.is_file():
            try:
                metadata, _ = split_front_matter(markdown_path.read_text(encoding="utf-8"))
            except OSError as exc:
                logger.warning("Could not read front matter from %s: %s", markdown_path, exc)
                metadata = {}
            value = metadata.get(FRONT_MATTER_PLUGIN_KEY)
            if isinstance(value, str) and value.strip():
                front_matter_plugin = value.strip()

            candidate = local_config_path_for(markdown_path)
            if candidate.is_file():
                local_path = candidate
                try:
                    local_config = load_yaml_config(candidate)
                except ConfigFileError as exc:
                    logger.warning("Could not read local config file %s: %s", candidate, exc)
                    local_config = {}
                value = local_config.pop(LOCAL_PLUGIN_KEY, None)
                if isinstance(value, str) and value.strip():
                    local_plugin = value.strip()
                if local_config:
                    local_overrides = local_config
        else:
            logger.warning(
                "Markdown file not found at %s. Cannot check front matter or local config.",
                markdown_path,
            )

    if cli_plugin:
        spec, source = cli_plugin, "CLI option"
        shadowed = front_matter_plugin or local_plugin
        if shadowed and shadowed != cli_plugin:
            notes.append(f"Plugin '{cli_plugin}' specified via CLI, overriding '{shadowed}'.")
    elif front_matter_plugin:
        spec = front_matter_plugin
        source = f"front matter in '{markdown_path.name if markdown_path else ''}'"
        if local_plugin and local_plugin != front_matter_plugin:
            notes.append(
                f"Plugin '{front_matter_plugin}' from front matter, overriding local config "
                f"plugin '{local_plugin}'."
            )
    elif local_plugin:
        spec = local_plugin
        source = f"local '{local_path.name if local_path else ''}'"
    else:
        spec, source = default_plugin, "default"

    from_document = source.startswith(("front matter", "local"))
    if markdown_path is not None and from_document and not _looks_like_path(spec):
        activated = _self_activate(spec, markdown_path.parent)
        if activated is not None:
            spec, how = activated
            source = f"{source} ({how})"

    if spec.startswith(("./", "../")):
        base = markdown_path.parent if markdown_path is not None else Path.cwd()
        spec = str((base / spec).resolve())

    for note in notes:
        logger.info(note)
    logger.info("Using plugin '%s' (determined via %s)", spec, source)
    return PluginDetermination(
        plugin_spec=spec,
        source=source,
        local_overrides=local_overrides,
        local_config_path=local_path,
        notes=notes,
    )


__all__ = [
    "FRONT_MATTER_PLUGIN_KEY",
    "LOCAL_PLUGIN_KEY",
    "PluginDetermination",
    "determine_plugin",
    "local_config_path_for",
    "split_front_matter",
]
