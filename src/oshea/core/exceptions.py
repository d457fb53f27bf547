"""Custom exception hierarchy for the configuration and plugin engine."""

from __future__ import annotations


class OsheaError(RuntimeError):
    """Base exception for oshea failures."""


class ConfigFileError(OsheaError):
    """Raised when a YAML configuration document cannot be read or parsed."""


class OsheaConfigError(OsheaError):
    """Base exception for fatal configuration resolution failures."""


class PluginNotFoundError(OsheaConfigError):
    """Raised when a plugin name is not registered or its files are gone."""


class PluginSpecError(OsheaConfigError):
    """Raised when a path-style plugin specification cannot be resolved."""


class PluginConfigError(OsheaConfigError):
    """Raised when a plugin's base configuration is unusable."""


class HandlerScriptMissingError(OsheaConfigError):
    """Raised when the resolved handler script does not exist on disk."""


class HandlerError(OsheaError):
    """Raised when a handler script cannot be loaded or does not honour the protocol."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "ConfigFileError",
    "HandlerError",
    "HandlerScriptMissingError",
    "OsheaConfigError",
    "OsheaError",
    "PluginConfigError",
    "PluginNotFoundError",
    "PluginSpecError",
    "exception_hint",
    "exception_messages",
]
