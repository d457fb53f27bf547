from __future__ import annotations

import logging

import pytest

from oshea.core.diagnostics import (
    CollectingEmitter,
    DiagnosticEmitter,
    LoggingEmitter,
    NullEmitter,
    format_event_message,
    warn_with_details,
)
from oshea.core.exceptions import PluginConfigError, exception_hint, exception_messages
from oshea.ui.cli.diagnostics import CliEmitter
from oshea.ui.cli.state import set_cli_state


def test_null_emitter_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    emitter = NullEmitter()
    with caplog.at_level(logging.WARNING):
        emitter.warning("nothing to see")
        emitter.error("still quiet")
    assert not caplog.records
    emitter.event("ignored", {"value": 1})
    assert emitter.debug_enabled is False


def test_logging_emitter_logs_messages(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(debug_enabled=True)
    with caplog.at_level(logging.INFO):
        emitter.error("boom")
        emitter.event("registry_built", {"count": 2, "factory_defaults_only": True})
    messages = [record.message for record in caplog.records]
    assert "boom" in messages
    assert "Plugin registry built with 2 plugin(s) (factory defaults only)" in messages
    assert emitter.debug_enabled is True


def test_collecting_emitter_records_and_forwards() -> None:
    downstream = CollectingEmitter()
    emitter = CollectingEmitter(downstream=downstream)

    emitter.warning("careful")
    emitter.error("broken")
    emitter.event("custom", {"flag": True})

    assert emitter.warnings == downstream.warnings == ["careful"]
    assert emitter.errors == downstream.errors == ["broken"]
    assert emitter.events == [("custom", {"flag": True})]
    assert isinstance(emitter, DiagnosticEmitter)


def test_unknown_events_have_no_summary() -> None:
    assert format_event_message("custom", {}) is None
    assert format_event_message(
        "override_layer_applied", {"plugin": "cv", "source": "x.yaml"}
    ) == "Applied override for 'cv' from x.yaml"


def test_cli_emitter_bridges_state(capsys: pytest.CaptureFixture[str]) -> None:
    state = set_cli_state(verbosity=1, debug=False)
    state.warning_count = 0
    emitter = CliEmitter(state=state)

    emitter.warning("Heads up", exc=None)
    emitter.error("Boom", exc=None)
    emitter.event("custom", {"flag": True})

    captured = capsys.readouterr()
    combined_output = f"{captured.out}\n{captured.err}"
    assert "Heads up" in combined_output
    assert "Boom" in combined_output
    assert state.warning_count == 1
    assert state.consume_events("custom") == [{"flag": True}]
    set_cli_state(verbosity=0)


def test_exception_hint_reports_root_cause() -> None:
    try:
        try:
            raise OSError("disk unplugged")
        except OSError as exc:
            raise PluginConfigError("cannot load plugin") from exc
    except PluginConfigError as error:
        assert exception_messages(error) == ["cannot load plugin", "disk unplugged"]
        assert exception_hint(error) == "disk unplugged"


def test_absorbed_warnings_are_not_forwarded() -> None:
    downstream = CollectingEmitter()
    emitter = CollectingEmitter(downstream=downstream)

    emitter.absorb(["already reported"])

    assert emitter.warnings == ["already reported"]
    assert downstream.warnings == []


def _broken_config_error() -> PluginConfigError:
    try:
        try:
            raise ValueError("mapping values are not allowed here")
        except ValueError as exc:
            raise PluginConfigError("Failed to parse oshea.yaml") from exc
    except PluginConfigError as error:
        return error


def test_warning_with_details_hints_at_debug_mode() -> None:
    emitter = CollectingEmitter(downstream=LoggingEmitter())

    warn_with_details(emitter, "Could not load project main config", _broken_config_error())

    assert emitter.warnings == [
        "Could not load project main config (mapping values are not allowed here). "
        "Run with --debug for technical details."
    ]


def test_warning_with_details_lists_cause_chain_in_debug_mode() -> None:
    emitter = CollectingEmitter(downstream=LoggingEmitter(debug_enabled=True))

    warn_with_details(emitter, "Could not load project main config", _broken_config_error())

    assert emitter.warnings == [
        "Could not load project main config\n"
        "Details:\n"
        "- Failed to parse oshea.yaml\n"
        "- mapping values are not allowed here"
    ]
