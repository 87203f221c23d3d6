from __future__ import annotations

import logging

import pytest

from latexforge.core.diagnostics import (
    LoggingEmitter,
    NullEmitter,
    RecordingEmitter,
    format_event_message,
)
from latexforge.core.exceptions import (
    MissingDirectoryError,
    ToolExecutionError,
    exception_hint,
    exception_messages,
)
from latexforge.ui.cli.diagnostics import CliEmitter
from latexforge.ui.cli.state import CLIState, set_cli_state


def _raise_nested_failure() -> None:
    try:
        raise FileNotFoundError("lualatex: command not found")
    except FileNotFoundError as exc:
        raise ToolExecutionError("Error running lualatex in /tmp/doc") from exc


def test_null_emitter_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    emitter = NullEmitter()
    with caplog.at_level(logging.DEBUG):
        emitter.warning("nothing to see")
        emitter.error("still quiet")
        emitter.event("rerun", {"document": "paper"})
    assert not caplog.records
    assert emitter.debug_enabled is False


def test_logging_emitter_logs_messages(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(debug_enabled=True)
    with caplog.at_level(logging.INFO):
        emitter.error("boom")
        emitter.event("delivered", {"target": "pdf", "count": 2})
    assert [record.getMessage() for record in caplog.records] == [
        "boom",
        "Delivered 2 file(s) for target 'pdf'",
    ]
    assert emitter.debug_enabled is True


def test_logging_emitter_attaches_exception(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter()
    error = MissingDirectoryError("gone")
    with caplog.at_level(logging.WARNING):
        emitter.warning("careful", error)
    assert caplog.records[0].exc_info is not None


def test_recording_emitter_keeps_order_and_forwards() -> None:
    inner = RecordingEmitter()
    emitter = RecordingEmitter(forward=inner)

    emitter.info("scanning")
    emitter.warning("odd file")
    emitter.error("tool failed")
    emitter.event("tool_run", {"command": "bibtex"})

    assert [record.level for record in emitter.records] == ["info", "warning", "error"]
    assert emitter.warnings == ["odd file"]
    assert emitter.errors == ["tool failed"]
    assert inner.records == emitter.records
    assert inner.events == [("tool_run", {"command": "bibtex"})]


@pytest.mark.parametrize(
    ("name", "payload", "expected"),
    [
        ("tool_run", {"command": "bibtex", "workdir": "/doc"}, "Running bibtex in /doc"),
        ("rerun", {"document": "paper"}, "Rerunning LaTeX on 'paper' (log requested rerun)"),
        ("delivered", {"target": "txt", "count": 1}, "Delivered 1 file(s) for target 'txt'"),
        ("unknown", {}, None),
    ],
)
def test_format_event_message(name: str, payload: dict, expected: str | None) -> None:
    assert format_event_message(name, payload) == expected


def test_exception_chain_helpers() -> None:
    with pytest.raises(ToolExecutionError) as info:
        _raise_nested_failure()

    assert exception_messages(info.value) == [
        "Error running lualatex in /tmp/doc",
        "lualatex: command not found",
    ]
    assert exception_hint(info.value) == "lualatex: command not found"


def test_cli_emitter_respects_verbosity(capsys: pytest.CaptureFixture[str]) -> None:
    set_cli_state(verbosity=0, debug=False)
    quiet = CliEmitter(CLIState(verbosity=0))
    quiet.info("hidden info")
    quiet.debug("hidden debug")
    assert capsys.readouterr().out == ""

    chatty = CliEmitter(CLIState(verbosity=2))
    chatty.info("shown info")
    chatty.debug("shown debug")
    out = capsys.readouterr().out
    assert "shown info" in out
    assert "shown debug" in out


def test_cli_emitter_writes_problems_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    set_cli_state(verbosity=1, debug=False)
    emitter = CliEmitter()

    capsys.readouterr()
    try:
        _raise_nested_failure()
    except ToolExecutionError as exc:
        emitter.error("Build failed", exc)
    emitter.warning("Bad boxes")

    err = capsys.readouterr().err
    assert "error: Build failed" in err
    assert "lualatex: command not found" in err
    assert "type: ToolExecutionError" in err
    assert "warning: Bad boxes" in err
    assert emitter.debug_enabled is False
