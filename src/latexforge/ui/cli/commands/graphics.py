"""Implementation of the `latexforge graphics` command."""

from __future__ import annotations

from pathlib import Path

from latexforge.core.exceptions import BuildFailureError
from latexforge.core.processor import LatexBuilder

from .._options import ConfigOption, SourceArgument
from ..state import get_cli_state
from ._common import fail, recording_emitter, settings_from_cli


def graphics(
    source: SourceArgument = Path("."),
    config: ConfigOption = None,
) -> None:
    """Convert the graphic sources beneath SOURCE and keep the results."""
    settings = settings_from_cli(config, source_dir=source)
    builder = LatexBuilder(settings, emitter=recording_emitter())
    try:
        report = builder.preprocess_graphics()
    except BuildFailureError as exc:
        raise fail(exc) from exc

    console = get_cli_state().console
    for path in report.materialized:
        console.print(f"converted {path}", markup=False, highlight=False)
    for document in report.main_documents:
        console.print(f"main document {document.tex_file}", markup=False, highlight=False)


__all__ = ["graphics"]
