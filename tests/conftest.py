from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
import shutil
from typing import Any

import pytest
import yaml

from oshea.core.config.resolver import ConfigResolver
from oshea.core.layout import BundledLayout
from oshea.core.user_dir import OsheaUserDir, user_dir_context


HANDLER_SOURCE = '''\
from pathlib import Path


class EchoHandler:
    def generate(self, request):
        html = request.pipeline.render_html(
            request.markdown_path.read_text(encoding="utf-8"),
            css_files=request.config.css_files,
            options={},
        )
        return request.pipeline.write_pdf(html, request.destination, pdf_options={})


def create_handler():
    return EchoHandler()
'''

FACTORY_MAIN_CONFIG = {
    "global_pdf_options": {
        "format": "Letter",
        "printBackground": True,
        "margin": {"top": "1cm", "right": "1cm", "bottom": "1cm", "left": "1cm"},
    },
    "math": {"enabled": True, "engine": "katex", "katex_options": {"throwOnError": False}},
}


def write_yaml(path: Path, payload: Mapping[str, Any] | None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = "" if payload is None else yaml.safe_dump(dict(payload), sort_keys=False)
    path.write_text(text, encoding="utf-8")
    return path


def make_plugin(
    root: Path,
    name: str,
    config: Mapping[str, Any] | None = None,
    *,
    css: tuple[str, ...] = (),
    handler: str | None = "handler.py",
) -> Path:
    """Create ``<root>/<name>/<name>.config.yaml`` with a working handler."""
    plugin_dir = root / name
    plugin_dir.mkdir(parents=True, exist_ok=True)
    payload: dict[str, Any] = {"description": f"{name} plugin"}
    if handler is not None:
        payload["handler_script"] = handler
        (plugin_dir / handler).write_text(HANDLER_SOURCE, encoding="utf-8")
    if css:
        payload["css_files"] = list(css)
        for entry in css:
            (plugin_dir / entry).write_text("body {}\n", encoding="utf-8")
    payload.update(config or {})
    return write_yaml(plugin_dir / f"{name}.config.yaml", payload)


@dataclass
class Workspace:
    root: Path
    layout: BundledLayout
    user_dir: OsheaUserDir

    @property
    def bundled_plugins(self) -> Path:
        return self.layout.plugins_dir

    @property
    def xdg_root(self) -> Path:
        return self.user_dir.config_root

    @property
    def xdg_config(self) -> Path:
        return self.user_dir.main_config_path

    def resolver(self, project: Path | None = None, **kwargs: Any) -> ConfigResolver:
        return ConfigResolver(project, layout=self.layout, user_dir=self.user_dir, **kwargs)


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Workspace]:
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-home"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data-home"))
    monkeypatch.delenv("OSHEA_CONFIG_DIR", raising=False)
    monkeypatch.delenv("OSHEA_DATA_DIR", raising=False)

    bundled = tmp_path / "bundled"
    schemas = bundled / "schemas"
    schemas.mkdir(parents=True)
    shutil.copy(BundledLayout.default().base_schema_path, schemas / "base-plugin.schema.json")
    (bundled / "plugins").mkdir()
    write_yaml(bundled / "config.example.yaml", FACTORY_MAIN_CONFIG)

    with user_dir_context(
        config_root=tmp_path / "xdg", data_root=tmp_path / "data"
    ) as user_dir:
        yield Workspace(root=tmp_path, layout=BundledLayout(bundled), user_dir=user_dir)
