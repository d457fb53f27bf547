from __future__ import annotations

import json
from pathlib import Path

import pytest

from oshea.core.config.schema import PluginSchemaValidator
from oshea.core.diagnostics import CollectingEmitter
from oshea.core.layout import BundledLayout


@pytest.fixture
def validator() -> PluginSchemaValidator:
    return PluginSchemaValidator(BundledLayout.default().base_schema_path)


def _config_path(tmp_path: Path, name: str = "memo") -> Path:
    plugin_dir = tmp_path / name
    plugin_dir.mkdir(parents=True, exist_ok=True)
    return plugin_dir / f"{name}.config.yaml"


def test_valid_config_has_no_issues(validator: PluginSchemaValidator, tmp_path: Path) -> None:
    emitter = CollectingEmitter()
    config = {
        "description": "Memo",
        "handler_script": "handler.py",
        "css_files": ["memo.css"],
        "pdf_options": {"format": "A4", "margin": {"top": "1cm"}},
        "math": {"enabled": True, "engine": "katex"},
        "toc_options": {"enabled": True, "level": [1, 2]},
    }

    issues = validator.validate("memo", config, _config_path(tmp_path), emitter=emitter)

    assert issues == []
    assert emitter.warnings == []


def test_misspelt_option_is_an_unknown_property(
    validator: PluginSchemaValidator, tmp_path: Path
) -> None:
    emitter = CollectingEmitter()

    issues = validator.validate(
        "memo",
        {"handler_script": "handler.py", "pdf_options": {"fromat": "A4"}},
        _config_path(tmp_path),
        emitter=emitter,
    )

    assert [(issue.kind, issue.path) for issue in issues] == [
        ("unknown_property", "pdf_options.fromat")
    ]
    assert "possible typo" in emitter.warnings[0]


def test_type_errors_and_missing_handler_are_warnings(
    validator: PluginSchemaValidator, tmp_path: Path
) -> None:
    emitter = CollectingEmitter()

    issues = validator.validate(
        "memo", {"inherit_css": "yes"}, _config_path(tmp_path), emitter=emitter
    )

    kinds = {issue.kind for issue in issues}
    assert kinds == {"invalid"}
    assert len(issues) == 2
    assert len(emitter.warnings) == 2


def test_plugin_schema_extends_the_base(validator: PluginSchemaValidator, tmp_path: Path) -> None:
    config_path = _config_path(tmp_path)
    contract = config_path.parent / ".contract"
    contract.mkdir()
    (contract / "memo.schema.json").write_text(
        json.dumps({"properties": {"params": {"type": "object", "properties": {"tone": {"type": "string"}}}}}),
        encoding="utf-8",
    )

    issues = validator.validate(
        "memo",
        {"handler_script": "handler.py", "params": {"tone": "dry", "tine": "wet"}},
        config_path,
        emitter=CollectingEmitter(),
    )

    assert [issue.path for issue in issues] == ["params.tine"]


def test_unreadable_plugin_schema_falls_back_to_base(
    validator: PluginSchemaValidator, tmp_path: Path
) -> None:
    config_path = _config_path(tmp_path)
    contract = config_path.parent / ".contract"
    contract.mkdir()
    (contract / "memo.schema.json").write_text("{not json", encoding="utf-8")
    emitter = CollectingEmitter()

    issues = validator.validate(
        "memo", {"handler_script": "handler.py"}, config_path, emitter=emitter
    )

    assert issues == []
    assert any("memo.schema.json" in warning for warning in emitter.warnings)


def test_bundled_cv_schema_accepts_its_params(validator: PluginSchemaValidator) -> None:
    layout = BundledLayout.default()
    config_path = layout.plugins_dir / "cv" / "cv.config.yaml"

    issues = validator.validate(
        "cv",
        {"handler_script": "../default/handler.py", "params": {"show_photo": True}},
        config_path,
        emitter=CollectingEmitter(),
    )

    assert issues == []


def test_missing_base_schema_disables_validation(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level("CRITICAL"):
        validator = PluginSchemaValidator(tmp_path / "absent.json")

    assert not validator.enabled
    assert "Validation will not work" in caplog.text
    assert validator.validate("memo", {"bogus": 1}, _config_path(tmp_path)) == []
