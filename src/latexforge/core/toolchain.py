"""Shared plumbing for steps that run tools and inspect their logs."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .config import BuildSettings, ToolSettings
from .diagnostics import DiagnosticEmitter, NullEmitter
from .execution import CommandResult, CommandRunner, ReturnCodePolicy, SubprocessRunner, split_options
from .logmatch import match_in_file


class ToolStep:
    """Base class holding the settings, the runner and the emitter of a build."""

    def __init__(
        self,
        settings: BuildSettings,
        runner: CommandRunner | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.settings = settings
        self.emitter = emitter or NullEmitter()
        self.runner = runner or SubprocessRunner(self.emitter)

    def run_tool(
        self,
        tool: ToolSettings,
        workdir: Path,
        args: Sequence[str],
        *,
        expected: Sequence[Path] = (),
        policy: ReturnCodePolicy = ReturnCodePolicy.NONZERO,
    ) -> CommandResult:
        return self.runner.run(
            workdir,
            tool.command,
            list(args),
            tool_path=self.settings.tex_path,
            expected=expected,
            policy=policy,
        )

    @staticmethod
    def arguments(options: str, *trailing: str) -> list[str]:
        """Return the configured options followed by ``trailing`` arguments."""
        return [*split_options(options), *trailing]

    def log_matches(self, log_file: Path, pattern: str, command: str) -> bool:
        """Return whether ``log_file`` matches; unreadable logs warn and count as no match."""
        result = match_in_file(log_file, pattern)
        if not result.readable:
            self.emitter.warning(
                f"Cannot read log file '{log_file.name}' of {command}; "
                "may hide warnings or errors."
            )
        return result.resolve(False)

    def needs_run(self, command: str, source: Path, pattern: str) -> bool:
        """Return whether ``source`` asks for ``command``; unreadable files warn and say no."""
        result = match_in_file(source, pattern)
        if not result.readable:
            self.emitter.warning(
                f"Cannot read '{source.name}'; not running {command} although it may be needed."
            )
        return result.resolve(False)

    def log_errors(self, log_file: Path, command: str, pattern: str | None) -> None:
        """Report a missing log, or a log matching the error pattern, as an error."""
        if not log_file.exists():
            self.emitter.error(f"Running {command} failed: no log file '{log_file.name}' written.")
            return
        if pattern and self.log_matches(log_file, pattern, command):
            self.emitter.error(f"Running {command} failed. Errors logged in '{log_file.name}'.")

    def log_warnings(self, log_file: Path, command: str, pattern: str | None) -> None:
        if pattern and log_file.exists() and self.log_matches(log_file, pattern, command):
            self.emitter.warning(
                f"Running {command} emitted warnings logged in '{log_file.name}'."
            )

    def log_errors_and_warnings(self, log_file: Path, tool: ToolSettings) -> None:
        self.log_errors(log_file, tool.command, tool.pattern_error)
        self.log_warnings(log_file, tool.command, tool.pattern_warning)


__all__ = ["ToolStep"]
