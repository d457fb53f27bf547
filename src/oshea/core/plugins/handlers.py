"""Explicit plugin handler interface and the registry that loads handlers.

A handler script is a Python module exposing a module-level ``create_handler``
factory. The factory returns an object implementing :class:`DocumentHandler`.
Rendering itself is delegated to a :class:`ConversionPipeline` supplied by the
caller, keeping handlers free of any HTML or PDF backend.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import importlib.util
import logging
from pathlib import Path
import sys
from typing import Any, Protocol, runtime_checkable

from oshea.core.config.models import EffectiveConfig
from oshea.core.exceptions import HandlerError


logger = logging.getLogger(__name__)

HANDLER_FACTORY = "create_handler"


@runtime_checkable
class ConversionPipeline(Protocol):
    """Rendering services consumed by handlers."""

    def render_html(
        self, markdown: str, *, css_files: list[Path], options: Mapping[str, Any]
    ) -> str: ...

    def write_pdf(self, html: str, destination: Path, *, pdf_options: Mapping[str, Any]) -> Path: ...


@dataclass(slots=True)
class HandlerRequest:
    """Everything a handler needs to produce one document."""

    markdown_path: Path
    config: EffectiveConfig
    output_dir: Path
    output_filename: str
    pipeline: ConversionPipeline
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def destination(self) -> Path:
        return self.output_dir / self.output_filename


@runtime_checkable
class DocumentHandler(Protocol):
    """Generate a document from a request and return the written path."""

    def generate(self, request: HandlerRequest) -> Path: ...


HandlerFactory = Callable[[], DocumentHandler]


def _coerce_handler(candidate: Any, origin: str) -> DocumentHandler:
    if not isinstance(candidate, DocumentHandler):
        raise HandlerError(
            f"Handler provided by {origin} does not implement 'generate(request)'."
        )
    return candidate


def load_handler_module(script_path: Path) -> Any:
    """Import the handler script at ``script_path`` under a private module name."""
    resolved = script_path.resolve()
    if not resolved.is_file():
        raise HandlerError(f"Handler script not found: '{resolved}'.")
    module_name = f"_oshea_handler_{hash(resolved) & 0xFFFFFFFF:x}"
    spec = importlib.util.spec_from_file_location(module_name, resolved)
    if spec is None or spec.loader is None:
        raise HandlerError(f"Handler script '{resolved}' cannot be imported.")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        raise HandlerError(f"Failed to import handler script '{resolved}': {exc}") from exc
    return module


class HandlerRegistry:
    """Look up document handlers by explicit name or by handler script path."""

    def __init__(self) -> None:
        self._factories: dict[str, HandlerFactory] = {}
        self._loaded: dict[Path, DocumentHandler] = {}

    def register(self, name: str, factory: HandlerFactory) -> None:
        """Register ``factory`` under ``name``, replacing any previous one."""
        self._factories[name] = factory

    def registered(self) -> list[str]:
        return sorted(self._factories)

    def get(self, name: str) -> DocumentHandler:
        factory = self._factories.get(name)
        if factory is None:
            raise HandlerError(f"No handler registered under '{name}'.")
        return _coerce_handler(factory(), f"registered factory '{name}'")

    def load(self, script_path: Path) -> DocumentHandler:
        """Load the handler exposed by ``script_path``, once per resolved path."""
        resolved = script_path.resolve()
        handler = self._loaded.get(resolved)
        if handler is not None:
            return handler

        module = load_handler_module(resolved)
        factory = getattr(module, HANDLER_FACTORY, None)
        if not callable(factory):
            raise HandlerError(
                f"Handler script '{resolved}' must define a '{HANDLER_FACTORY}()' function."
            )
        handler = _coerce_handler(factory(), f"'{resolved}'")
        self._loaded[resolved] = handler
        logger.debug("Loaded handler from %s", resolved)
        return handler

    def for_config(self, config: EffectiveConfig) -> DocumentHandler:
        """Return the handler for an effective configuration.

        An explicitly registered handler named after the plugin takes
        precedence over the handler script declared by the configuration.
        """
        if config.plugin_name and config.plugin_name in self._factories:
            return self.get(config.plugin_name)
        return self.load(config.handler_script_path)

    def generate(
        self,
        config: EffectiveConfig,
        markdown_path: Path,
        output_dir: Path,
        pipeline: ConversionPipeline,
        *,
        output_filename: str | None = None,
    ) -> Path:
        """Run the handler for ``config`` and return the generated file."""
        request = HandlerRequest(
            markdown_path=Path(markdown_path),
            config=config,
            output_dir=Path(output_dir),
            output_filename=output_filename or f"{Path(markdown_path).stem}.pdf",
            pipeline=pipeline,
        )
        request.output_dir.mkdir(parents=True, exist_ok=True)
        return self.for_config(config).generate(request)


__all__ = [
    "HANDLER_FACTORY",
    "ConversionPipeline",
    "DocumentHandler",
    "HandlerRegistry",
    "HandlerRequest",
    "load_handler_module",
]
