"""Diagnostic abstractions shared across the configuration engine."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import logging
from typing import Any, Protocol, runtime_checkable

from oshea.core.exceptions import exception_hint, exception_messages


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that ignores every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter that forwards diagnostics to the standard logging module."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.warning(message, exc_info=exc)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.error(message, exc_info=exc)
        else:
            self._logger.error(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            self._logger.info(message)
            return
        self._logger.debug("diagnostic event %s: %s", name, dict(payload))


@dataclass(slots=True)
class CollectingEmitter:
    """Record diagnostics for a single operation and forward them downstream.

    The resolver wraps its long-lived emitter in one of these for every
    effective configuration it builds, so that the warnings produced along the
    way can be attached to the returned bundle.
    """

    downstream: DiagnosticEmitter | None = None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    @property
    def debug_enabled(self) -> bool:
        return bool(self.downstream is not None and self.downstream.debug_enabled)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)
        if self.downstream is not None:
            self.downstream.warning(message, exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append(message)
        if self.downstream is not None:
            self.downstream.error(message, exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))
        if self.downstream is not None:
            self.downstream.event(name, payload)

    def absorb(self, warnings: Iterable[str]) -> None:
        """Record warnings that were already reported downstream."""
        self.warnings.extend(warnings)


def warn_with_details(emitter: DiagnosticEmitter, summary: str, exc: BaseException) -> None:
    """Report a recoverable failure, with its cause chain when debugging."""
    if emitter.debug_enabled:
        chain = exception_messages(exc)
        detail_block = ""
        if chain:
            detail_lines = "\n".join(f"- {line}" for line in chain)
            detail_block = f"\nDetails:\n{detail_lines}"
        emitter.warning(f"{summary}{detail_block}", exc)
        return

    hint = exception_hint(exc)
    detail = f" ({hint})" if hint else ""
    emitter.warning(f"{summary}{detail}. Run with --debug for technical details.")


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a human-friendly summary for selected diagnostic events."""
    data = dict(payload)

    if name == "registry_built":
        count = data.get("count", 0)
        mode = " (factory defaults only)" if data.get("factory_defaults_only") else ""
        return f"Plugin registry built with {count} plugin(s){mode}"

    if name == "primary_config_selected":
        path = data.get("path") or "<none>"
        reason = data.get("reason") or "unknown"
        return f"Primary main config: {path} ({reason})"

    if name == "override_layer_applied":
        plugin = data.get("plugin") or "<unknown>"
        source = data.get("source") or "<unknown>"
        return f"Applied override for '{plugin}' from {source}"

    return None


__all__ = [
    "CollectingEmitter",
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "format_event_message",
    "warn_with_details",
]
