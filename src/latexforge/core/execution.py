"""Execution of external tools with output freshness checks."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
import os
from pathlib import Path
import shlex
import subprocess
import time
from typing import Protocol, runtime_checkable

from .diagnostics import DiagnosticEmitter, NullEmitter
from .exceptions import ToolExecutionError


# File systems with coarse timestamps cannot tell outputs written within the
# same second apart.
MTIME_RESOLUTION = 1.001


class ReturnCodePolicy(Enum):
    """Which return codes count as a failed invocation."""

    NEVER = "never"
    NONZERO = "nonzero"
    IS_ONE = "is_one"
    NOT_ZERO_OR_ONE = "not_zero_or_one"

    def failed(self, returncode: int) -> bool:
        if self is ReturnCodePolicy.NEVER:
            return False
        if self is ReturnCodePolicy.IS_ONE:
            return returncode == 1
        if self is ReturnCodePolicy.NOT_ZERO_OR_ONE:
            return returncode not in (0, 1)
        return returncode != 0


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of one tool invocation."""

    output: str
    succeeded: bool
    returncode: int


@runtime_checkable
class CommandRunner(Protocol):
    """Run a tool and report whether its expected outputs are fresh."""

    def run(
        self,
        workdir: Path,
        command: str,
        args: Sequence[str],
        *,
        tool_path: Path | None = None,
        expected: Sequence[Path] = (),
        policy: ReturnCodePolicy = ReturnCodePolicy.NONZERO,
    ) -> CommandResult: ...


def split_options(options: str) -> list[str]:
    """Split a configured option string into arguments."""
    return shlex.split(options) if options.strip() else []


def resolve_executable(command: str, tool_path: Path | None) -> str:
    if tool_path is None:
        return command
    return str(tool_path / command)


@dataclass(frozen=True, slots=True)
class _Stamp:
    path: Path
    mtime: float | None


def _stamp(path: Path) -> _Stamp:
    try:
        return _Stamp(path, path.stat().st_mtime)
    except OSError:
        return _Stamp(path, None)


class SubprocessRunner:
    """Run tools through :mod:`subprocess`, blocking until they exit."""

    def __init__(
        self,
        emitter: DiagnosticEmitter | None = None,
        *,
        env: dict[str, str] | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._emitter = emitter or NullEmitter()
        self._env = env
        self._clock = clock
        self._sleep = sleep

    def _wait_for_distinct_mtime(self, stamps: Sequence[_Stamp]) -> None:
        ages = [self._clock() - stamp.mtime for stamp in stamps if stamp.mtime is not None]
        if not ages:
            return
        youngest = min(ages)
        if youngest < MTIME_RESOLUTION:
            self._sleep(MTIME_RESOLUTION - max(youngest, 0.0))

    def run(
        self,
        workdir: Path,
        command: str,
        args: Sequence[str],
        *,
        tool_path: Path | None = None,
        expected: Sequence[Path] = (),
        policy: ReturnCodePolicy = ReturnCodePolicy.NONZERO,
    ) -> CommandResult:
        before = [_stamp(path) for path in expected]
        self._wait_for_distinct_mtime(before)

        argv = [resolve_executable(command, tool_path), *args]
        self._emitter.event("tool_run", {"command": shlex.join(argv), "workdir": str(workdir)})
        try:
            process = subprocess.run(
                argv,
                check=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                cwd=workdir,
                env=None if self._env is None else {**os.environ, **self._env},
            )
        except OSError as exc:
            raise ToolExecutionError(
                f"Error running {command} in '{workdir}': {exc.strerror or exc}"
            ) from exc

        output = process.stdout or ""
        if output:
            self._emitter.debug(output.rstrip())

        succeeded = True
        if policy.failed(process.returncode):
            self._emitter.error(
                f"Running {command} failed with return code {process.returncode}."
            )
            succeeded = False

        for stamp in before:
            after = _stamp(stamp.path)
            if after.mtime is None:
                self._emitter.error(
                    f"Running {command} failed: no target file '{stamp.path.name}' written."
                )
                succeeded = False
            elif stamp.mtime is not None and after.mtime <= stamp.mtime:
                self._emitter.error(
                    f"Running {command} failed: target file '{stamp.path.name}' not updated."
                )
                succeeded = False

        return CommandResult(output=output, succeeded=succeeded, returncode=process.returncode)


__all__ = [
    "MTIME_RESOLUTION",
    "CommandResult",
    "CommandRunner",
    "ReturnCodePolicy",
    "SubprocessRunner",
    "resolve_executable",
    "split_options",
]
