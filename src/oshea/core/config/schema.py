"""JSON-schema validation of plugin base configurations.

Validation never blocks resolution: every problem is reported as a warning.
The shared base schema is loaded once; a plugin may extend it with its own
schema stored in ``.contract/<name>.schema.json`` beside its config file.
Selected option groups are closed (``additionalProperties: false``) so that
misspelt keys surface as unknown properties.
"""

from __future__ import annotations

from collections.abc import Mapping
import copy
from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Any, Literal

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError, ValidationError

from oshea.core.diagnostics import DiagnosticEmitter
from oshea.core.layout import plugin_schema_path

from .utils import deep_merge


logger = logging.getLogger(__name__)

RESTRICTED_OPTION_GROUPS = ("pdf_options", "params", "math", "toc_options")


@dataclass(frozen=True, slots=True)
class SchemaIssue:
    """A single schema violation found in a plugin configuration."""

    kind: Literal["unknown_property", "invalid"]
    path: str
    message: str


def _format_path(parts: Any) -> str:
    return ".".join(str(part) for part in parts)


def _unknown_properties(error: ValidationError) -> list[str]:
    instance = error.instance if isinstance(error.instance, Mapping) else {}
    schema = error.schema if isinstance(error.schema, Mapping) else {}
    known = set(schema.get("properties", {}) or {})
    return sorted(key for key in instance if key not in known)


class PluginSchemaValidator:
    """Compose and apply plugin configuration schemas."""

    def __init__(self, base_schema_path: Path, emitter: DiagnosticEmitter | None = None) -> None:
        self.base_schema_path = base_schema_path
        self.emitter = emitter
        self.base_schema: dict[str, Any] | None = None
        self._validators: dict[Path, Draft7Validator] = {}

        if not base_schema_path.is_file():
            logger.critical(
                "Base plugin schema not found at %s. Validation will not work.", base_schema_path
            )
            return
        try:
            payload = json.loads(base_schema_path.read_text(encoding="utf-8"))
            Draft7Validator.check_schema(payload)
        except (OSError, json.JSONDecodeError, SchemaError) as exc:
            logger.critical(
                "Base plugin schema at %s is unusable (%s). Validation will not work.",
                base_schema_path,
                exc,
            )
            return
        self.base_schema = payload

    @property
    def enabled(self) -> bool:
        return self.base_schema is not None

    def _warn(self, message: str, emitter: DiagnosticEmitter | None) -> None:
        target = emitter or self.emitter
        if target is not None:
            target.warning(message)
        else:
            logger.warning(message)

    def compose(
        self, config_path: Path, emitter: DiagnosticEmitter | None = None
    ) -> dict[str, Any] | None:
        """Return the base schema merged with the plugin schema, groups closed."""
        if self.base_schema is None:
            return None
        specific: dict[str, Any] = {}
        schema_path = plugin_schema_path(config_path)
        if schema_path.is_file():
            try:
                specific = json.loads(schema_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                self._warn(
                    f"Could not read or parse plugin schema file {schema_path}: {exc}", emitter
                )
                specific = {}

        strict = deep_merge(copy.deepcopy(self.base_schema), specific)
        properties = strict.get("properties")
        if isinstance(properties, dict):
            for key in RESTRICTED_OPTION_GROUPS:
                group = properties.get(key)
                if isinstance(group, dict) and group.get("type") == "object":
                    group["additionalProperties"] = False
        return strict

    def _validator_for(
        self, config_path: Path, emitter: DiagnosticEmitter | None
    ) -> Draft7Validator | None:
        cached = self._validators.get(config_path)
        if cached is not None:
            return cached
        schema = self.compose(config_path, emitter)
        if schema is None:
            return None
        try:
            Draft7Validator.check_schema(schema)
            validator = Draft7Validator(schema)
        except SchemaError as exc:
            self._warn(f"Composed schema for {config_path} is invalid: {exc.message}", emitter)
            return None
        self._validators[config_path] = validator
        return validator

    def validate(
        self,
        plugin_name: str,
        config: Mapping[str, Any],
        config_path: Path,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> list[SchemaIssue]:
        """Validate ``config`` and report every issue as a warning."""
        validator = self._validator_for(config_path, emitter)
        if validator is None:
            return []

        issues: list[SchemaIssue] = []
        errors = sorted(
            validator.iter_errors(dict(config)), key=lambda e: [str(part) for part in e.path]
        )
        for error in errors:
            if error.validator == "additionalProperties":
                prefix = _format_path(error.absolute_path)
                for name in _unknown_properties(error):
                    path = f"{prefix}.{name}" if prefix else name
                    issues.append(SchemaIssue("unknown_property", path, "unknown property"))
            else:
                issues.append(
                    SchemaIssue("invalid", _format_path(error.absolute_path) or "/", error.message)
                )

        typos = [issue for issue in issues if issue.kind == "unknown_property"]
        others = [issue for issue in issues if issue.kind == "invalid"]
        for issue in typos:
            self._warn(
                f"Plugin '{plugin_name}': unknown property '{issue.path}' in {config_path} "
                "(possible typo).",
                emitter,
            )
        if typos:
            logger.debug(
                "To see the final applied settings, run: oshea config --plugin %s", plugin_name
            )
        for issue in others:
            self._warn(
                f"Plugin '{plugin_name}': validation error at '{issue.path}': {issue.message}",
                emitter,
            )
        return issues


__all__ = ["RESTRICTED_OPTION_GROUPS", "PluginSchemaValidator", "SchemaIssue"]
