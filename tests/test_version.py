from typer.testing import CliRunner

import latexforge
from latexforge.ui.cli import app
from latexforge.version import get_version


def test_get_version_matches_public_api() -> None:
    assert get_version() == latexforge.__version__
    assert isinstance(latexforge.__version__, str)


def test_cli_version_flag() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0, result.stdout
    assert result.stdout.strip() == get_version()
