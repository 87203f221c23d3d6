"""Main LaTeX documents and the artifact family derived from their names."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .files import replace_suffix


@dataclass(frozen=True, slots=True, order=True)
class MainDocument:
    """Entry-point ``.tex`` file of a document.

    ``doc_class`` is the class named in ``\\documentclass``; ``magic_targets``
    holds the targets declared by a leading ``%! LMP targets=...`` comment.
    """

    tex_file: Path
    doc_class: str | None = field(default=None, compare=False)
    magic_doc_class: str | None = field(default=None, compare=False)
    magic_targets: str | None = field(default=None, compare=False)

    @property
    def name(self) -> str:
        """Base name shared by every derived artifact."""
        return self.tex_file.stem

    @property
    def directory(self) -> Path:
        return self.tex_file.parent

    @property
    def base(self) -> Path:
        return self.tex_file.with_suffix("")

    @property
    def effective_doc_class(self) -> str | None:
        return self.magic_doc_class or self.doc_class

    def with_suffix(self, suffix: str) -> Path:
        return replace_suffix(self.tex_file, suffix)

    @property
    def pdf(self) -> Path:
        return self.with_suffix(".pdf")

    @property
    def dvi(self) -> Path:
        return self.with_suffix(".dvi")

    @property
    def xdv(self) -> Path:
        return self.with_suffix(".xdv")

    @property
    def log(self) -> Path:
        return self.with_suffix(".log")

    @property
    def aux(self) -> Path:
        return self.with_suffix(".aux")

    @property
    def bbl(self) -> Path:
        return self.with_suffix(".bbl")

    @property
    def blg(self) -> Path:
        return self.with_suffix(".blg")

    @property
    def idx(self) -> Path:
        return self.with_suffix(".idx")

    @property
    def ind(self) -> Path:
        return self.with_suffix(".ind")

    @property
    def ilg(self) -> Path:
        return self.with_suffix(".ilg")

    @property
    def glo(self) -> Path:
        return self.with_suffix(".glo")

    @property
    def gls(self) -> Path:
        return self.with_suffix(".gls")

    @property
    def glg(self) -> Path:
        return self.with_suffix(".glg")

    @property
    def toc(self) -> Path:
        return self.with_suffix(".toc")

    @property
    def lof(self) -> Path:
        return self.with_suffix(".lof")

    @property
    def lot(self) -> Path:
        return self.with_suffix(".lot")

    @property
    def clg(self) -> Path:
        return self.with_suffix(".clg")

    def __str__(self) -> str:
        return str(self.tex_file)


__all__ = ["MainDocument"]
