"""Handler for the bundled ``default`` plugin."""

from __future__ import annotations

from pathlib import Path

from oshea.core.plugins.determiner import split_front_matter
from oshea.core.plugins.handlers import HandlerRequest


class DefaultHandler:
    """Render the document body with the merged stylesheets and page options."""

    def generate(self, request: HandlerRequest) -> Path:
        source = request.markdown_path.read_text(encoding="utf-8")
        metadata, body = split_front_matter(source)
        options = request.config.options
        if metadata.get("title") and not body.lstrip().startswith("#"):
            body = f"# {metadata['title']}\n\n{body}"

        html = request.pipeline.render_html(
            body,
            css_files=request.config.css_files,
            options={
                "math": options.math.model_dump(),
                "toc": options.toc_options.model_dump(),
                "params": options.params,
            },
        )
        return request.pipeline.write_pdf(
            html,
            request.destination,
            pdf_options=options.pdf_options.model_dump(by_alias=True, exclude_none=True),
        )


def create_handler() -> DefaultHandler:
    return DefaultHandler()
