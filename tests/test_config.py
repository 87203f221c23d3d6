from pathlib import Path

from pydantic import ValidationError
import pytest

from latexforge.core.config import (
    BuildSettings,
    describe_settings,
    load_settings,
    render_settings_template,
)
from latexforge.core.exceptions import SettingsError


def test_defaults_follow_tex_distribution_conventions() -> None:
    settings = BuildSettings()

    assert settings.tools.latex.command == "lualatex"
    assert "-interaction=nonstopmode" in settings.tools.latex.options
    assert settings.tools.makeindex.pattern_rerun
    assert settings.max_reruns == 5
    assert settings.targets == "chk,pdf,html"
    assert settings.tools.fig2dev.command == "fig2dev"
    assert settings.tools.tex4ht.sty_options == "html,2"


def test_load_settings_reads_yaml(tmp_path: Path) -> None:
    config = tmp_path / "latexforge.yml"
    config.write_text(
        "source_dir: src/tex\n"
        "max_reruns: -1\n"
        "main_files_excluded: draft notes\n"
        "tools:\n"
        "  latex:\n"
        "    command: pdflatex\n",
        encoding="utf-8",
    )

    settings = load_settings(config)

    assert settings.source_dir == Path("src/tex")
    assert settings.max_reruns == -1
    assert settings.main_files_excluded == ["draft", "notes"]
    assert settings.tools.latex.command == "pdflatex"
    # unspecified fields keep their defaults
    assert settings.tools.latex.pattern_error == r"(^! )"
    assert settings.tools.latex.options.startswith("-interaction")


def test_overrides_take_precedence_and_none_is_ignored(tmp_path: Path) -> None:
    config = tmp_path / "latexforge.yml"
    config.write_text("output_dir: site\nclean_up: false\n", encoding="utf-8")

    settings = load_settings(config, output_dir=Path("dist"), clean_up=None)

    assert settings.output_dir == Path("dist")
    assert settings.clean_up is False


@pytest.mark.parametrize(
    "content",
    [
        "targets: pdf,epub\n",
        "targets: pdf,pdf\n",
        "max_reruns: -2\n",
        "unknown_key: 1\n",
        "tools:\n  bibtex:\n    pattern_error: '(unclosed'\n",
        "doc_classes_to_targets: 'article pdf'\n",
        "check_diff: true\n",
        "- not a mapping\n",
        "key: [unbalanced\n",
    ],
)
def test_invalid_settings_raise(tmp_path: Path, content: str) -> None:
    config = tmp_path / "latexforge.yml"
    config.write_text(content, encoding="utf-8")

    with pytest.raises(SettingsError):
        load_settings(config)


def test_missing_settings_file_raises(tmp_path: Path) -> None:
    with pytest.raises(SettingsError, match="Cannot read"):
        load_settings(tmp_path / "absent.yml")


def test_settings_are_read_only() -> None:
    settings = BuildSettings()

    with pytest.raises(ValidationError):
        settings.max_reruns = 3  # type: ignore[misc]


def test_describe_settings_lists_explicit_names() -> None:
    described = dict(describe_settings(BuildSettings(max_reruns=2)))

    assert described["max_reruns"] == "2"
    assert described["latex_command"] == "lualatex"
    assert described["clean_up"] == "true"
    assert described["diff_dir"] == ""


def test_render_settings_template_substitutes_known_names() -> None:
    settings = BuildSettings(tools={"latex": {"command": "xelatex"}})

    rendered = render_settings_template("$$pdf = '${latex_command}'; ${unknown}", settings)

    assert rendered == "$pdf = 'xelatex'; ${unknown}"
