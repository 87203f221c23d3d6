"""Primary public API for latexforge."""

from __future__ import annotations

from latexforge.api import build, clear_derived, preprocess_graphics
from latexforge.core.config import BuildSettings, ToolSettings, load_settings
from latexforge.core.diagnostics import LoggingEmitter, NullEmitter, RecordingEmitter
from latexforge.core.exceptions import BuildFailureError, LatexBuildError
from latexforge.core.processor import BuildReport, LatexBuilder
from latexforge.core.targets import Target
from latexforge.version import get_version


__version__ = get_version()

__all__ = [
    "BuildFailureError",
    "BuildReport",
    "BuildSettings",
    "LatexBuildError",
    "LatexBuilder",
    "LoggingEmitter",
    "NullEmitter",
    "RecordingEmitter",
    "Target",
    "ToolSettings",
    "__version__",
    "build",
    "clear_derived",
    "load_settings",
    "preprocess_graphics",
]
