from __future__ import annotations

from pathlib import Path

from conftest import write_yaml
from oshea.core.config.models import MainConfigSource, RawPluginLayer
from oshea.core.config.plugin_loader import PluginConfigLoader
from oshea.core.diagnostics import CollectingEmitter


def _css(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("body {}\n", encoding="utf-8")
    return path.resolve()


def _layer0(workspace, config=None, css=()) -> RawPluginLayer:
    base = workspace.root / "base" / "memo"
    base.mkdir(parents=True, exist_ok=True)
    return RawPluginLayer(
        raw_config={"handler_script": "handler.py", **(config or {})},
        resolved_css_paths=[_css(base / name) for name in css],
        actual_path=base / "memo.config.yaml",
    )


def _loader(workspace, xdg=None, project=None, project_path=None, **kwargs) -> PluginConfigLoader:
    xdg_source = MainConfigSource(
        config=xdg or {}, path=workspace.xdg_config, base_dir=workspace.xdg_root
    )
    project_source = MainConfigSource(
        config=project or {},
        path=project_path,
        base_dir=project_path.parent if project_path is not None else None,
    )
    return PluginConfigLoader(xdg_source, project_source, workspace.user_dir, **kwargs)


def test_no_layers_returns_layer0(workspace) -> None:
    layer0 = _layer0(workspace, {"params": {"a": 1}}, css=("base.css",))

    result = _loader(workspace).apply_override_layers("memo", layer0, ["memo.config.yaml"])

    assert result.merged_config == layer0.raw_config
    assert result.merged_css_paths == layer0.resolved_css_paths
    assert result.contributing_paths == ["memo.config.yaml"]


def test_layers_apply_in_order(workspace) -> None:
    xdg_file = write_yaml(
        workspace.xdg_root / "memo" / "default.yaml", {"params": {"order": ["xdg-file"], "x": 1}}
    )
    project_path = workspace.root / "project" / "oshea.yaml"
    project_file = write_yaml(
        workspace.root / "project" / "overrides" / "memo.yaml",
        {"params": {"order": ["project-file"], "p": 1}},
    )
    loader = _loader(
        workspace,
        xdg={"memo": {"params": {"order": ["xdg-inline"], "i": 1}}},
        project={
            "plugins": {"memo": "overrides/memo.yaml"},
            "memo": {"params": {"order": ["project-inline"]}},
        },
        project_path=project_path,
    )

    result = loader.apply_override_layers("memo", _layer0(workspace), ["layer0"])

    assert result.merged_config["params"] == {
        "order": ["project-inline"],
        "x": 1,
        "i": 1,
        "p": 1,
    }
    assert result.merged_config["handler_script"] == "handler.py"
    assert result.contributing_paths == [
        "layer0",
        str(xdg_file),
        f"Inline override from XDG main config: {workspace.xdg_config}",
        str(project_file.resolve()),
        f"Inline override from project main config: {project_path}",
    ]


def test_override_cannot_replace_handler_script(workspace) -> None:
    write_yaml(workspace.xdg_root / "memo" / "default.yaml", {"handler_script": "evil.py"})

    result = _loader(workspace).apply_override_layers("memo", _layer0(workspace), [])

    assert result.merged_config["handler_script"] == "handler.py"


def test_xdg_override_falls_back_to_plugin_named_file(workspace) -> None:
    fallback = write_yaml(workspace.xdg_root / "memo" / "memo.config.yaml", {"params": {"a": 2}})
    loader = _loader(workspace)

    assert loader.xdg_override_path("memo") == fallback
    result = loader.apply_override_layers("memo", _layer0(workspace), [])
    assert result.merged_config["params"] == {"a": 2}


def test_override_stylesheets_append_by_default(workspace) -> None:
    layer0 = _layer0(workspace, css=("base.css",))
    extra = _css(workspace.xdg_root / "memo" / "extra.css")
    write_yaml(workspace.xdg_root / "memo" / "default.yaml", {"css_files": ["extra.css"]})

    result = _loader(workspace).apply_override_layers("memo", layer0, [])

    assert result.merged_css_paths == [*layer0.resolved_css_paths, extra]


def test_override_stylesheets_replace_when_inherit_is_false(workspace) -> None:
    layer0 = _layer0(workspace, css=("base.css",))
    theme = _css(workspace.xdg_root / "theme.css")
    loader = _loader(
        workspace, xdg={"memo": {"css_files": ["theme.css"], "inherit_css": False}}
    )

    result = loader.apply_override_layers("memo", layer0, [])

    assert result.merged_css_paths == [theme]


def test_project_stylesheets_resolve_against_project_directory(workspace) -> None:
    project_path = workspace.root / "project" / "oshea.yaml"
    project_css = _css(workspace.root / "project" / "brand.css")
    loader = _loader(
        workspace,
        project={"memo": {"css_files": ["brand.css"]}},
        project_path=project_path,
    )

    result = loader.apply_override_layers("memo", _layer0(workspace), [])

    assert result.merged_css_paths == [project_css]


def test_project_layers_need_a_project_manifest(workspace) -> None:
    loader = _loader(workspace, project={"memo": {"params": {"a": 1}}}, project_path=None)

    result = loader.apply_override_layers("memo", _layer0(workspace), [])

    assert "params" not in result.merged_config


def test_project_file_equal_to_layer0_is_skipped(workspace) -> None:
    layer0 = _layer0(workspace)
    write_yaml(layer0.actual_path, {"handler_script": "handler.py", "params": {"dup": True}})
    project_path = workspace.root / "project" / "oshea.yaml"
    loader = _loader(
        workspace,
        project={"plugins": {"memo": str(layer0.actual_path)}},
        project_path=project_path,
    )

    result = loader.apply_override_layers("memo", layer0, ["layer0"])

    assert result.contributing_paths == ["layer0"]
    assert "params" not in result.merged_config


def test_empty_project_file_is_recorded(workspace) -> None:
    project_path = workspace.root / "project" / "oshea.yaml"
    empty = write_yaml(workspace.root / "project" / "memo.yaml", None)
    loader = _loader(
        workspace, project={"plugins": {"memo": "memo.yaml"}}, project_path=project_path
    )

    result = loader.apply_override_layers("memo", _layer0(workspace), [])

    assert result.contributing_paths == [f"{empty.resolve()} (empty or no effective overrides)"]


def test_missing_project_file_is_a_warning(workspace) -> None:
    project_path = workspace.root / "project" / "oshea.yaml"
    emitter = CollectingEmitter()
    loader = _loader(
        workspace, project={"plugins": {"memo": "missing.yaml"}}, project_path=project_path
    )

    result = loader.apply_override_layers("memo", _layer0(workspace), [], emitter=emitter)

    assert result.contributing_paths == []
    assert any("missing.yaml" in warning for warning in emitter.warnings)


def test_unparsable_override_is_a_warning_and_skipped(workspace) -> None:
    broken = workspace.xdg_root / "memo" / "default.yaml"
    broken.parent.mkdir(parents=True)
    broken.write_text("params: [oops\n", encoding="utf-8")
    emitter = CollectingEmitter()

    result = _loader(workspace).apply_override_layers(
        "memo", _layer0(workspace), [], emitter=emitter
    )

    assert result.contributing_paths == []
    assert not emitter.errors
    assert any(str(broken) in warning for warning in emitter.warnings)


def test_factory_defaults_skip_every_layer(workspace) -> None:
    write_yaml(workspace.xdg_root / "memo" / "default.yaml", {"params": {"a": 1}})
    loader = _loader(
        workspace, xdg={"memo": {"params": {"b": 1}}}, factory_defaults_only=True
    )

    result = loader.apply_override_layers("memo", _layer0(workspace), ["layer0"])

    assert result.contributing_paths == ["layer0"]
    assert "params" not in result.merged_config


def test_layers_are_loaded_once(workspace) -> None:
    write_yaml(workspace.xdg_root / "memo" / "default.yaml", {"params": {"a": 1}})
    loader = _loader(workspace)
    path = workspace.xdg_root / "memo" / "default.yaml"

    first = loader.load_layer(path, path.parent, "memo")
    second = loader.load_layer(path, path.parent, "memo")

    assert first is second


def test_layer_events_are_emitted(workspace) -> None:
    write_yaml(workspace.xdg_root / "memo" / "default.yaml", {"params": {"a": 1}})
    emitter = CollectingEmitter()

    _loader(workspace).apply_override_layers("memo", _layer0(workspace), [], emitter=emitter)

    assert [name for name, _ in emitter.events] == ["override_layer_applied"]


def test_project_registration_directory_resolves_to_its_config_file(workspace) -> None:
    project_path = workspace.root / "project" / "oshea.yaml"
    override = write_yaml(
        workspace.root / "project" / "overrides" / "memo" / "memo.config.yaml",
        {"params": {"from": "directory"}},
    )
    emitter = CollectingEmitter()
    loader = _loader(
        workspace, project={"plugins": {"memo": "overrides/memo"}}, project_path=project_path
    )

    result = loader.apply_override_layers("memo", _layer0(workspace), [], emitter=emitter)

    assert result.merged_config["params"] == {"from": "directory"}
    assert result.contributing_paths == [str(override.resolve())]
    assert emitter.warnings == []


def test_project_registration_directory_without_config_is_skipped(workspace) -> None:
    project_path = workspace.root / "project" / "oshea.yaml"
    (workspace.root / "project" / "overrides" / "memo").mkdir(parents=True)
    emitter = CollectingEmitter()
    loader = _loader(
        workspace, project={"plugins": {"memo": "overrides/memo"}}, project_path=project_path
    )

    result = loader.apply_override_layers("memo", _layer0(workspace), [], emitter=emitter)

    assert result.contributing_paths == []
    assert len(emitter.warnings) == 1
    assert "contains no *.config.yaml file" in emitter.warnings[0]
