"""Diagnostic abstractions shared across the build pipeline.

Every component reports through a :class:`DiagnosticEmitter` instead of
raising: tool failures, log findings and selection problems are errors or
warnings that never stop the build. Only :class:`BuildFailureError` and its
subclasses unwind.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
from typing import Any, Literal, Protocol, runtime_checkable


logger = logging.getLogger(__name__)

Level = Literal["debug", "info", "warning", "error"]


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface messages, warnings, errors and structured events."""

    debug_enabled: bool

    def debug(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that ignores every diagnostic."""

    debug_enabled: bool = False

    def debug(self, message: str) -> None:
        return

    def info(self, message: str) -> None:
        return

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter that forwards diagnostics to the standard logging module."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def debug(self, message: str) -> None:
        self._logger.debug(message)

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.warning(message, exc_info=exc)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.error(message, exc_info=exc)
        else:
            self._logger.error(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            self._logger.info(message)
            return
        self._logger.debug("diagnostic event %s: %s", name, dict(payload))


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Single message recorded by :class:`RecordingEmitter`."""

    level: Level
    message: str


@dataclass(slots=True)
class RecordingEmitter:
    """Emitter accumulating diagnostics, optionally forwarding them to another emitter."""

    forward: DiagnosticEmitter | None = None
    debug_enabled: bool = False
    records: list[Diagnostic] = field(default_factory=list)
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def _record(self, level: Level, message: str) -> None:
        self.records.append(Diagnostic(level, message))

    def debug(self, message: str) -> None:
        self._record("debug", message)
        if self.forward is not None:
            self.forward.debug(message)

    def info(self, message: str) -> None:
        self._record("info", message)
        if self.forward is not None:
            self.forward.info(message)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self._record("warning", message)
        if self.forward is not None:
            self.forward.warning(message, exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self._record("error", message)
        if self.forward is not None:
            self.forward.error(message, exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))
        if self.forward is not None:
            self.forward.event(name, payload)

    def messages(self, level: Level) -> list[str]:
        """Return the recorded messages of one level, in emission order."""
        return [record.message for record in self.records if record.level == level]

    @property
    def warnings(self) -> list[str]:
        return self.messages("warning")

    @property
    def errors(self) -> list[str]:
        return self.messages("error")


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a human-friendly summary for selected diagnostic events."""
    data = dict(payload)

    if name == "tool_run":
        command = data.get("command") or "<unknown>"
        workdir = data.get("workdir")
        suffix = f" in {workdir}" if workdir else ""
        return f"Running {command}{suffix}"

    if name == "rerun":
        document = data.get("document") or "<unknown>"
        reason = data.get("reason") or "log requested rerun"
        return f"Rerunning LaTeX on '{document}' ({reason})"

    if name == "delivered":
        target = data.get("target") or "<unknown>"
        count = data.get("count", 0)
        return f"Delivered {count} file(s) for target '{target}'"

    return None


__all__ = [
    "Diagnostic",
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "RecordingEmitter",
    "format_event_message",
]
