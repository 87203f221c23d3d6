"""Implementation of the `latexforge clear` command."""

from __future__ import annotations

from pathlib import Path

from latexforge.core.exceptions import BuildFailureError
from latexforge.core.processor import LatexBuilder

from .._options import ConfigOption, SourceArgument
from ._common import fail, recording_emitter, settings_from_cli


def clear(
    source: SourceArgument = Path("."),
    config: ConfigOption = None,
) -> None:
    """Delete the files derived from the sources beneath SOURCE."""
    settings = settings_from_cli(config, source_dir=source)
    builder = LatexBuilder(settings, emitter=recording_emitter())
    try:
        builder.clear_derived()
    except BuildFailureError as exc:
        raise fail(exc) from exc


__all__ = ["clear"]
