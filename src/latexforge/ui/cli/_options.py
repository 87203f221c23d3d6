"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


INPUTS_PANEL = "Input Handling"
BUILD_PANEL = "Build"
OUTPUT_PANEL = "Output"
DIAGNOSTICS_PANEL = "Diagnostics"

SourceArgument = Annotated[
    Path,
    typer.Argument(
        metavar="SOURCE",
        help="Root directory of the LaTeX sources.",
        file_okay=False,
        dir_okay=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="YAML file with build settings.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

TargetOption = Annotated[
    list[str] | None,
    typer.Option(
        "--target",
        "-t",
        help="Target to build (chk, dvi, pdf, html, odt, docx, rtf, txt). Repeatable.",
        rich_help_panel=BUILD_PANEL,
    ),
]

MaxRerunsOption = Annotated[
    int | None,
    typer.Option(
        "--max-reruns",
        help="Maximum number of log-driven LaTeX reruns; -1 for no limit.",
        min=-1,
        rich_help_panel=BUILD_PANEL,
    ),
]

PdfViaDviOption = Annotated[
    bool | None,
    typer.Option(
        "--pdf-via-dvi/--pdf-direct",
        help="Produce PDF through DVI and dvipdfmx, or directly.",
        rich_help_panel=BUILD_PANEL,
    ),
]

OutputDirOption = Annotated[
    Path | None,
    typer.Option(
        "--output-dir",
        "-o",
        help="Directory receiving the delivered artifacts.",
        file_okay=False,
        dir_okay=True,
        rich_help_panel=OUTPUT_PANEL,
    ),
]

CleanUpOption = Annotated[
    bool | None,
    typer.Option(
        "--clean-up/--no-clean-up",
        help="Delete files created in the source tree once artifacts are delivered.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

StrictOption = Annotated[
    bool,
    typer.Option(
        "--strict",
        help="Exit with a non-zero status when any tool reported an error.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks when an unexpected error occurs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]


__all__ = [
    "CleanUpOption",
    "ConfigOption",
    "DebugOption",
    "MaxRerunsOption",
    "OutputDirOption",
    "PdfViaDviOption",
    "SourceArgument",
    "StrictOption",
    "TargetOption",
    "VerboseOption",
]
