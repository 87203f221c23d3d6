"""Facade exposing the build pipeline as plain functions.

Usage Example
:
    >>> from pathlib import Path
    >>> from latexforge import BuildSettings, RecordingEmitter, clear_derived
    >>> emitter = RecordingEmitter()
    >>> clear_derived(Path("."), settings=BuildSettings(), emitter=emitter)  # doctest: +SKIP
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from latexforge.core.config import BuildSettings
from latexforge.core.diagnostics import DiagnosticEmitter, LoggingEmitter
from latexforge.core.execution import CommandRunner
from latexforge.core.preprocessor import PreprocessReport
from latexforge.core.processor import BuildReport, LatexBuilder
from latexforge.core.targets import Target


def _builder(
    source_root: Path,
    settings: BuildSettings | None,
    runner: CommandRunner | None,
    emitter: DiagnosticEmitter | None,
) -> LatexBuilder:
    base = settings or BuildSettings()
    return LatexBuilder(
        base.model_copy(update={"source_dir": Path(source_root)}),
        runner=runner,
        emitter=emitter or LoggingEmitter(),
    )


def build(
    source_root: Path,
    targets: Iterable[Target | str] | None = None,
    *,
    settings: BuildSettings | None = None,
    runner: CommandRunner | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> BuildReport:
    """Build the main documents beneath ``source_root`` into ``targets``."""
    return _builder(source_root, settings, runner, emitter).build(targets)


def preprocess_graphics(
    source_root: Path,
    *,
    settings: BuildSettings | None = None,
    runner: CommandRunner | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> PreprocessReport:
    """Convert the graphic sources beneath ``source_root`` and keep the results."""
    return _builder(source_root, settings, runner, emitter).preprocess_graphics()


def clear_derived(
    source_root: Path,
    *,
    settings: BuildSettings | None = None,
    runner: CommandRunner | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> None:
    """Delete the files derived from the sources beneath ``source_root``."""
    _builder(source_root, settings, runner, emitter).clear_derived()


__all__ = ["build", "clear_derived", "preprocess_graphics"]
