"""Implementation of the `latexforge build` command."""

from __future__ import annotations

from pathlib import Path

from rich.table import Table
import typer

from latexforge.core.exceptions import BuildFailureError
from latexforge.core.processor import BuildReport, LatexBuilder
from latexforge.core.targets import normalise_targets

from .._options import (
    CleanUpOption,
    ConfigOption,
    MaxRerunsOption,
    OutputDirOption,
    PdfViaDviOption,
    SourceArgument,
    StrictOption,
    TargetOption,
)
from ..state import get_cli_state
from ._common import fail, recording_emitter, settings_from_cli


def _present_report(report: BuildReport, warnings: int, errors: int) -> None:
    console = get_cli_state().console
    table = Table(title="Delivered artifacts", show_lines=False)
    table.add_column("Document")
    table.add_column("Files")
    for document in report.documents:
        files = report.delivered.get(document.tex_file, [])
        table.add_row(str(document.tex_file), "\n".join(str(path) for path in files) or "-")
    console.print(table)
    style = "red" if errors else "yellow" if warnings else "green"
    console.print(
        f"[{style}]{len(report.documents)} document(s) built, "
        f"{warnings} warning(s), {errors} error(s).[/]"
    )


def build(
    source: SourceArgument = Path("."),
    targets: TargetOption = None,
    config: ConfigOption = None,
    output_dir: OutputDirOption = None,
    max_reruns: MaxRerunsOption = None,
    pdf_via_dvi: PdfViaDviOption = None,
    clean_up: CleanUpOption = None,
    strict: StrictOption = False,
) -> None:
    """Build the main documents beneath SOURCE and deliver their artifacts."""
    settings = settings_from_cli(
        config,
        source_dir=source,
        output_dir=output_dir,
        max_reruns=max_reruns,
        pdf_via_dvi=pdf_via_dvi,
        clean_up=clean_up,
    )
    emitter = recording_emitter()
    builder = LatexBuilder(settings, emitter=emitter)
    try:
        requested = normalise_targets(targets) if targets else None
        report = builder.build(requested)
    except BuildFailureError as exc:
        raise fail(exc) from exc

    _present_report(report, len(emitter.warnings), len(emitter.errors))
    if strict and emitter.errors:
        raise typer.Exit(code=1)


__all__ = ["build"]
