"""Helpers shared by the CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from latexforge.core.config import BuildSettings, load_settings
from latexforge.core.diagnostics import RecordingEmitter
from latexforge.core.exceptions import BuildFailureError

from ..diagnostics import CliEmitter
from ..state import emit_error, get_cli_state


def settings_from_cli(config: Path | None, **overrides: Any) -> BuildSettings:
    """Load the settings file and apply command line overrides, exiting on errors."""
    try:
        return load_settings(config, **overrides)
    except BuildFailureError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


def recording_emitter() -> RecordingEmitter:
    state = get_cli_state()
    return RecordingEmitter(forward=CliEmitter(state), debug_enabled=state.show_tracebacks)


def fail(exc: BuildFailureError) -> typer.Exit:
    """Report a fatal build error and return the exit to raise."""
    emit_error(str(exc), exception=exc)
    return typer.Exit(code=1)


__all__ = ["fail", "recording_emitter", "settings_from_cli"]
