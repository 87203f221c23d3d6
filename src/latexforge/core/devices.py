"""Output devices of the LaTeX compiler and the graphic formats they embed."""

from __future__ import annotations

from enum import Enum

from .files import SUFFIX_DVI, SUFFIX_EPS, SUFFIX_EPS_TEX, SUFFIX_PDF, SUFFIX_PDF_TEX, SUFFIX_XDV


class LatexDevice(Enum):
    """``pdf`` writes PDF directly, ``dvips`` goes through DVI."""

    PDF = "pdf"
    DVIPS = "dvips"

    @property
    def xfig_language(self) -> str:
        return "pdftex" if self is LatexDevice.PDF else "pstex"

    @property
    def gnuplot_terminal(self) -> str:
        return "pdf" if self is LatexDevice.PDF else "eps"

    @property
    def inkscape_overlay_suffix(self) -> str:
        return SUFFIX_PDF_TEX if self is LatexDevice.PDF else SUFFIX_EPS_TEX

    @property
    def graphic_suffix(self) -> str:
        return SUFFIX_PDF if self is LatexDevice.PDF else SUFFIX_EPS

    @property
    def via_dvi(self) -> bool:
        return self is LatexDevice.DVIPS

    def compiler_flags(self, command: str) -> list[str]:
        """Return the arguments switching ``command`` to this device."""
        if not self.via_dvi:
            return []
        if _is_xelatex(command):
            return ["-no-pdf"]
        return ["-output-format=dvi"]

    def target_suffix(self, command: str) -> str:
        """Return the suffix of the file the compiler writes for this device."""
        if not self.via_dvi:
            return SUFFIX_PDF
        return SUFFIX_XDV if _is_xelatex(command) else SUFFIX_DVI

    @classmethod
    def for_settings(cls, pdf_via_dvi: bool) -> LatexDevice:
        return cls.DVIPS if pdf_via_dvi else cls.PDF


def _is_xelatex(command: str) -> bool:
    return command.rsplit("/", 1)[-1].startswith("xelatex")


__all__ = ["LatexDevice"]
