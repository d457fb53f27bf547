"""Typed views over the option groups of a merged plugin configuration.

The merged configuration stays a plain mapping so that it can be dumped and
diffed; these models validate it at the boundary where handlers consume it.
Unknown keys are accepted here because typo detection is the schema
validator's job, which only warns.

PdfOptions

`format` (`str`)
: Paper format understood by the PDF backend, e.g. ``A4`` or ``Letter``.

`landscape` (`bool`)
: Rotate the page.

`margin` (`PageMargin`)
: CSS lengths for each side of the page.

`print_background` (`bool`)
: Keep CSS backgrounds when rasterising. Read from ``printBackground``.

MathOptions

`enabled` (`bool`)
: Render TeX math spans.

`engine` (`str`)
: Math renderer, only ``katex`` is recognised by the bundled plugins.

`katex_options` (`dict`)
: Options forwarded verbatim to the renderer.

TocOptions

`enabled` (`bool`)
: Insert a table of contents.

`level` (`list[int]`)
: Heading levels listed in the table of contents.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from oshea.core.exceptions import PluginConfigError


class PageMargin(BaseModel):
    """Page margins expressed as CSS lengths."""

    model_config = ConfigDict(extra="allow")

    top: str | None = None
    right: str | None = None
    bottom: str | None = None
    left: str | None = None


class PdfOptions(BaseModel):
    """Page options handed to the PDF backend."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    format: str = "A4"
    landscape: bool = False
    margin: PageMargin = Field(default_factory=PageMargin)
    print_background: bool = Field(default=True, alias="printBackground")
    scale: float | None = None


class MathOptions(BaseModel):
    """Math rendering options."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = False
    engine: str = "katex"
    katex_options: dict[str, Any] = Field(default_factory=dict)


class TocOptions(BaseModel):
    """Table-of-contents options."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = False
    level: list[int] = Field(default_factory=lambda: [1, 2, 3])


class PluginOptions(BaseModel):
    """Typed projection of a merged plugin configuration."""

    model_config = ConfigDict(extra="allow")

    handler_script: str
    description: str | None = None
    css_files: list[str] = Field(default_factory=list)
    inherit_css: bool = False
    pdf_options: PdfOptions = Field(default_factory=PdfOptions)
    math: MathOptions = Field(default_factory=MathOptions)
    toc_options: TocOptions = Field(default_factory=TocOptions)
    params: dict[str, Any] = Field(default_factory=dict)


def parse_plugin_options(payload: Mapping[str, Any], *, plugin: str) -> PluginOptions:
    """Validate ``payload`` into :class:`PluginOptions`, naming ``plugin`` on failure."""
    try:
        return PluginOptions.model_validate(dict(payload))
    except ValidationError as exc:
        raise PluginConfigError(
            f"Configuration for plugin '{plugin}' does not match the expected option types: "
            f"{exc.error_count()} error(s)."
        ) from exc


__all__ = [
    "MathOptions",
    "PageMargin",
    "PdfOptions",
    "PluginOptions",
    "TocOptions",
    "parse_plugin_options",
]
