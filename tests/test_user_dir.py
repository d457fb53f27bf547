from __future__ import annotations

from pathlib import Path

import pytest

from oshea.core.user_dir import OsheaUserDir, get_user_dir, set_user_dir, user_dir_context


def test_user_dir_respects_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("OSHEA_CONFIG_DIR", str(tmp_path / "config-root"))
    monkeypatch.setenv("OSHEA_DATA_DIR", str(tmp_path / "data-root"))

    with user_dir_context() as user_dir:
        assert user_dir.main_config_path == tmp_path / "config-root" / "config.yaml"
        assert user_dir.collections_root == tmp_path / "data-root" / "collections"


def test_xdg_variables_are_used_when_no_override(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("OSHEA_CONFIG_DIR", raising=False)
    monkeypatch.delenv("OSHEA_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))

    with user_dir_context() as user_dir:
        assert user_dir.config_root == tmp_path / "xdg-config" / "oshea"
        assert user_dir.data_root == tmp_path / "xdg-data" / "oshea"
        assert user_dir.plugin_override_dir("cv") == tmp_path / "xdg-config" / "oshea" / "cv"


def test_home_fallback(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ("OSHEA_CONFIG_DIR", "OSHEA_DATA_DIR", "XDG_CONFIG_HOME", "XDG_DATA_HOME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    with user_dir_context() as user_dir:
        assert user_dir.config_root == tmp_path / ".config" / "oshea"
        assert user_dir.data_root == tmp_path / ".local" / "share" / "oshea"


def test_singleton_follows_environment_changes(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("OSHEA_CONFIG_DIR", raising=False)
    monkeypatch.delenv("OSHEA_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "first"))

    with user_dir_context():
        set_user_dir(OsheaUserDir(config_root=tmp_path / "first" / "oshea", data_root=tmp_path / "data"))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "second"))
        assert get_user_dir().config_root == tmp_path / "second" / "oshea"


def test_explicit_roots_are_kept(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    with user_dir_context(config_root=tmp_path / "cfg", data_root=tmp_path / "data"):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "other"))
        assert get_user_dir().config_root == tmp_path / "cfg"
        assert get_user_dir().config_is_explicit


def test_context_restores_previous_instance(tmp_path: Path) -> None:
    before = get_user_dir()
    with user_dir_context(config_root=tmp_path / "cfg"):
        assert get_user_dir().config_root == tmp_path / "cfg"
    assert get_user_dir().config_root == before.config_root
