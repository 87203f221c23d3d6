import re

import pytest

from latexforge.core.config import BuildSettings
from latexforge.core.exceptions import SettingsError
from latexforge.core.files import basename_pattern
from latexforge.core.targets import (
    Target,
    normalise_targets,
    parse_doc_classes_to_targets,
    parse_targets,
)


def test_parse_targets_normalises_order() -> None:
    assert parse_targets("txt, pdf,chk") == [Target.CHK, Target.PDF, Target.TXT]


@pytest.mark.parametrize("text", ["pdf,epub", "pdf,html,pdf"])
def test_parse_targets_rejects_bad_lists(text: str) -> None:
    with pytest.raises(SettingsError):
        parse_targets(text)


def test_normalise_targets_accepts_names_and_members() -> None:
    assert normalise_targets(["html", Target.DVI, "html"]) == [Target.DVI, Target.HTML]


def test_parse_doc_classes_to_targets() -> None:
    mapping = parse_doc_classes_to_targets("article,book:chk,pdf beamer:pdf")

    assert mapping == {
        "article": [Target.CHK, Target.PDF],
        "book": [Target.CHK, Target.PDF],
        "beamer": [Target.PDF],
    }


@pytest.mark.parametrize("text", ["article", "article:", ":pdf", "article:pdf article:chk"])
def test_parse_doc_classes_to_targets_rejects_malformed(text: str) -> None:
    with pytest.raises(SettingsError):
        parse_doc_classes_to_targets(text)


@pytest.mark.parametrize(
    ("target", "name", "delivered"),
    [
        (Target.PDF, "paper.pdf", True),
        (Target.PDF, "paper.log", False),
        (Target.DVI, "paper.dvi", True),
        (Target.DVI, "fig.ptx", True),
        (Target.DVI, "drawing12.mps", True),
        (Target.HTML, "paper.html", True),
        (Target.HTML, "paperse3.html", True),
        (Target.HTML, "paper.css", True),
        (Target.ODT, "paper.odt", True),
        (Target.DOCX, "paper.docx", True),
        (Target.DOCX, "paper.doc", True),
        (Target.RTF, "paper.rtf", True),
        (Target.TXT, "paper.txt", True),
        (Target.CHK, "paper.clg", False),
    ],
)
def test_output_patterns(target: Target, name: str, delivered: bool) -> None:
    pattern = basename_pattern(target.output_pattern(BuildSettings()), "paper")

    assert (pattern.fullmatch(name) is not None) is delivered


def test_only_pdf_has_diff_tool() -> None:
    assert [target for target in Target if target.has_diff_tool] == [Target.PDF]


def test_output_pattern_substitution_is_literal() -> None:
    pattern = basename_pattern(Target.PDF.output_pattern(BuildSettings()), "a.b")

    assert isinstance(pattern, re.Pattern)
    assert pattern.fullmatch("a.b.pdf")
    assert not pattern.fullmatch("axb.pdf")
