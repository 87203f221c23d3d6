from pathlib import Path

from fake_tools import FakeRunner, write_log
import pytest

from latexforge import build, clear_derived, preprocess_graphics
from latexforge.core.config import BuildSettings
from latexforge.core.diagnostics import RecordingEmitter
from latexforge.core.documents import MainDocument
from latexforge.core.exceptions import (
    ArtifactMismatchError,
    MissingDirectoryError,
    SettingsError,
)
from latexforge.core.processor import LatexBuilder
from latexforge.core.snapshot import build_snapshot
from latexforge.core.targets import Target


ARTICLE = "\\documentclass{article}\n\\begin{document}\nHello\n\\end{document}\n"


def _write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _paper_latex(workdir: Path, args: list[str]) -> None:
    stem = Path(args[-1]).stem
    write_log(workdir / f"{stem}.log", "This is LuaTeX")
    write_log(workdir / f"{stem}.aux", "\\relax", "\\bibdata{refs}")
    write_log(workdir / f"{stem}.idx", "\\indexentry{Euler}{1}")


def _tool_log(suffix: str):
    def behaviour(workdir: Path, args: list[str]) -> None:
        stem = Path(args[-1]).stem
        write_log(workdir / f"{stem}{suffix}", "done")

    return behaviour


def _runner() -> FakeRunner:
    return FakeRunner(
        behaviours={
            "lualatex": _paper_latex,
            "bibtex": _tool_log(".blg"),
            "makeindex": _tool_log(".ilg"),
        }
    )


def _settings(tmp_path: Path, **overrides) -> BuildSettings:
    values = {"source_dir": tmp_path / "src", "output_dir": tmp_path / "out", "targets": "pdf"}
    values.update(overrides)
    return BuildSettings(**values)


def test_build_delivers_pdf_and_restores_sources(tmp_path: Path) -> None:
    source = tmp_path / "src"
    _write(source / "paper.tex", ARTICLE)
    _write(source / "refs.bib")
    _write(source / "fig1.fig")
    before = build_snapshot(source)
    runner = _runner()
    emitter = RecordingEmitter()

    report = LatexBuilder(_settings(tmp_path), runner=runner, emitter=emitter).build()

    assert runner.commands() == [
        "fig2dev",
        "fig2dev",
        "fig2dev",
        "lualatex",
        "bibtex",
        "makeindex",
        "lualatex",
        "lualatex",
    ]
    assert report.documents == [MainDocument(source / "paper.tex")]
    assert report.delivered == {source / "paper.tex": [tmp_path / "out" / "paper.pdf"]}
    assert (tmp_path / "out" / "paper.pdf").is_file()
    assert build_snapshot(source) == before
    assert source / "fig1.pdf" in report.removed
    assert emitter.errors == []
    assert ("delivered", {"target": "pdf", "count": 1}) in emitter.events


def test_build_keeps_created_files_without_clean_up(tmp_path: Path) -> None:
    source = tmp_path / "src"
    _write(source / "paper.tex", ARTICLE)

    report = LatexBuilder(
        _settings(tmp_path, clean_up=False), runner=_runner(), emitter=RecordingEmitter()
    ).build()

    assert report.removed == []
    assert (source / "paper.pdf").exists()
    assert (source / "paper.aux").exists()


def test_output_directory_inside_sources_survives_clean_up(tmp_path: Path) -> None:
    source = tmp_path / "src"
    _write(source / "paper.tex", ARTICLE)
    settings = _settings(tmp_path, output_dir=source / "build")

    LatexBuilder(settings, runner=_runner(), emitter=RecordingEmitter()).build()

    assert (source / "build" / "paper.pdf").is_file()
    assert not (source / "paper.pdf").exists()


def test_outputs_mirror_the_source_layout(tmp_path: Path) -> None:
    source = tmp_path / "src"
    _write(source / "talks" / "slides.tex", "\\documentclass{beamer}\n")

    report = LatexBuilder(_settings(tmp_path), runner=_runner(), emitter=RecordingEmitter()).build()

    assert report.delivered[source / "talks" / "slides.tex"] == [
        tmp_path / "out" / "talks" / "slides.pdf"
    ]


def test_missing_source_directory_is_fatal(tmp_path: Path) -> None:
    builder = LatexBuilder(_settings(tmp_path), runner=FakeRunner(), emitter=RecordingEmitter())

    with pytest.raises(MissingDirectoryError, match="does not exist"):
        builder.build()


def test_missing_processing_directory_is_fatal(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    settings = _settings(tmp_path, processing_dir=Path("chapters"))
    builder = LatexBuilder(settings, runner=FakeRunner(), emitter=RecordingEmitter())

    with pytest.raises(MissingDirectoryError, match="processing"):
        builder.preprocess_graphics()


def test_document_class_restricts_targets(tmp_path: Path) -> None:
    source = tmp_path / "src"
    _write(source / "slides.tex", "\\documentclass{beamer}\n")
    runner = _runner()

    LatexBuilder(
        _settings(tmp_path, targets="pdf,rtf"), runner=runner, emitter=RecordingEmitter()
    ).build()

    assert runner.count("latex2rtf") == 0
    assert runner.count("lualatex") > 0


def test_magic_comment_overrides_document_class(tmp_path: Path) -> None:
    source = tmp_path / "src"
    _write(source / "memo.tex", "%! LMP docClass=beamer targets=rtf\n\\documentclass{article}\n")
    runner = _runner()
    builder = LatexBuilder(_settings(tmp_path, targets="pdf,rtf"), runner=runner)

    builder.build()

    assert runner.commands() == ["latex2rtf"]


def test_invalid_magic_targets_fall_back_to_class(tmp_path: Path) -> None:
    emitter = RecordingEmitter()
    builder = LatexBuilder(_settings(tmp_path), runner=FakeRunner(), emitter=emitter)
    document = MainDocument(tmp_path / "memo.tex", doc_class="beamer", magic_targets="pdf,epub")

    targets = builder.targets_for(document, [Target.PDF, Target.HTML])

    assert targets == [Target.PDF]
    assert len(emitter.warnings) == 1


def test_unknown_document_class_builds_everything_requested(tmp_path: Path) -> None:
    builder = LatexBuilder(_settings(tmp_path), runner=FakeRunner(), emitter=RecordingEmitter())
    document = MainDocument(tmp_path / "letter.tex", doc_class="scrlttr2")

    assert builder.targets_for(document, [Target.PDF, Target.RTF]) == [Target.PDF, Target.RTF]


def test_explicit_targets_override_settings(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "paper.tex", ARTICLE)
    runner = _runner()

    LatexBuilder(_settings(tmp_path), runner=runner).build(["rtf"])

    assert runner.commands() == ["latex2rtf"]


def test_reference_comparison(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "paper.tex", ARTICLE)
    _write(tmp_path / "ref" / "paper.pdf")
    runner = _runner()
    runner.behaviours["diff"] = lambda workdir, args: 0
    emitter = RecordingEmitter()
    settings = _settings(tmp_path, check_diff=True, diff_dir=tmp_path / "ref")

    LatexBuilder(settings, runner=runner, emitter=emitter).build()

    assert runner.calls_of("diff")[0].args == [
        str(tmp_path / "out" / "paper.pdf"),
        str(tmp_path / "ref" / "paper.pdf"),
    ]
    assert any("coincides" in message for message in emitter.messages("info"))


def test_reference_mismatch_is_fatal_but_cleans_up(tmp_path: Path) -> None:
    source = tmp_path / "src"
    _write(source / "paper.tex", ARTICLE)
    _write(tmp_path / "ref" / "paper.pdf")
    runner = _runner()
    runner.behaviours["diff"] = lambda workdir, args: 1
    settings = _settings(tmp_path, check_diff=True, diff_dir=tmp_path / "ref")

    with pytest.raises(ArtifactMismatchError, match="differs"):
        LatexBuilder(settings, runner=runner, emitter=RecordingEmitter()).build()

    assert not (source / "paper.pdf").exists()


def test_missing_reference_is_fatal(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "paper.tex", ARTICLE)
    settings = _settings(tmp_path, check_diff=True, diff_dir=tmp_path / "ref")

    with pytest.raises(ArtifactMismatchError, match="No reference file"):
        LatexBuilder(settings, runner=_runner(), emitter=RecordingEmitter()).build()


def test_facade_functions(tmp_path: Path) -> None:
    source = tmp_path / "src"
    _write(source / "paper.tex", ARTICLE)
    _write(source / "fig1.fig")
    settings = BuildSettings(output_dir=tmp_path / "out")
    runner = _runner()

    report = preprocess_graphics(source, settings=settings, runner=runner)
    assert report.materialized == [source / "fig1.fig"]
    assert (source / "fig1.ptx").exists()

    clear_derived(source, settings=settings, runner=runner)
    assert sorted(path.name for path in source.iterdir()) == ["fig1.fig", "paper.tex"]

    built = build(source, ["pdf"], settings=settings, runner=runner)
    assert built.delivered[source / "paper.tex"] == [tmp_path / "out" / "paper.pdf"]


def test_reference_comparison_without_reference_directory(tmp_path: Path) -> None:
    builder = LatexBuilder(_settings(tmp_path), runner=FakeRunner(), emitter=RecordingEmitter())

    with pytest.raises(SettingsError, match="diff_dir"):
        builder.check_against_reference(MainDocument(tmp_path / "paper.tex"), tmp_path / "out")
