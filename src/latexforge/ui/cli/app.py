"""Typer application wiring for the latexforge CLI."""

from __future__ import annotations

import typer

from latexforge.version import get_version

from ._options import DebugOption, VerboseOption
from .commands import build, clear, config, graphics
from .state import debug_enabled, emit_error, get_cli_state, set_cli_state


app = typer.Typer(
    help="Build LaTeX documents, rerunning the compiler and auxiliary tools until they converge.",
    context_settings={"help_option_names": ["--help", "-h"]},
    no_args_is_help=True,
)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(get_version())
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    verbose: VerboseOption = 0,
    debug: DebugOption = False,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_print_version,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    set_cli_state(ctx=ctx, verbosity=verbose, debug=debug)


app.command()(build)
app.command()(graphics)
app.command()(clear)
app.command()(config)


def main() -> None:
    """Entry point compatible with console scripts."""
    try:
        app()
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Operation cancelled by user.", exception=exc)
        raise typer.Exit(code=1) from exc
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover - last resort reporting
        state = get_cli_state()
        if state.show_tracebacks:
            from rich.traceback import Traceback

            tb = Traceback.from_exception(
                type(exc),
                exc,
                exc.__traceback__,
                show_locals=state.verbosity >= 2,
            )
            state.err_console.print(tb)
        else:
            emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["app", "main"]
