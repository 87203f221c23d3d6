"""Implementation of the `latexforge config` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from rich.table import Table
import typer

from latexforge.core.config import describe_settings, render_settings_template

from .._options import ConfigOption
from ..state import emit_error, get_cli_state
from ._common import settings_from_cli


def config(
    config: ConfigOption = None,
    template: Annotated[
        Path | None,
        typer.Option(
            "--template",
            help="Print FILE with ${setting} placeholders replaced by setting values.",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
) -> None:
    """Show the effective build settings."""
    settings = settings_from_cli(config)
    console = get_cli_state().console
    if template is not None:
        try:
            text = template.read_text(encoding="utf-8")
        except OSError as exc:
            emit_error(f"Cannot read template '{template}'.", exception=exc)
            raise typer.Exit(code=1) from exc
        console.print(render_settings_template(text, settings), markup=False, highlight=False, end="")
        return

    table = Table(title="Build settings")
    table.add_column("Setting")
    table.add_column("Value", overflow="fold")
    for name, value in describe_settings(settings):
        table.add_row(name, value)
    console.print(table)


__all__ = ["config"]
