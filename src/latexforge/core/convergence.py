"""Rerun convergence of LaTeX and its auxiliary tools.

One compilation rarely suffices: bibliography, index and glossary tools read
files written by LaTeX and write files LaTeX reads back, and LaTeX itself
asks for reruns when cross references move. The engine runs the compiler
once, runs whichever auxiliary tools the produced files call for, performs a
fixed number of reruns derived from that, and then keeps rerunning while the
log asks for it, up to a configurable bound.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .devices import LatexDevice
from .documents import MainDocument
from .execution import ReturnCodePolicy, split_options
from .logmatch import collect_matches, match_in_file
from .toolchain import ToolStep


PATTERN_NEED_BIBTEX_RUN = r"^\\bibdata"
PATTERN_BAD_BOX = r"^(Ov|Und)erfull \\[hv]box \("
# group 2 holds the identifier of an explicit index in a splitidx entry
IDX_EXPLICIT = r"^(\\indexentry)\[([^]]*)\](.*)$"
IMPLICIT_INDEX = "idx"


@dataclass(slots=True)
class ConvergencePlan:
    """Rerun budget of one document.

    ``reruns`` plain reruns follow the first compilation; afterwards at most
    ``max_iterations`` log-driven reruns happen, ``-1`` meaning no bound.
    """

    reruns: int
    max_iterations: int
    iterations: int = 0
    compilations: int = 1
    converged: bool = False

    def exhausted(self) -> bool:
        return self.max_iterations >= 0 and self.iterations >= self.max_iterations


class ConvergenceEngine(ToolStep):
    """Build one main document into a target."""

    @property
    def device(self) -> LatexDevice:
        return LatexDevice.for_settings(self.settings.pdf_via_dvi)

    # -- compiler -------------------------------------------------------

    def run_latex(self, document: MainDocument, device: LatexDevice) -> None:
        tool = self.settings.tools.latex
        args = [
            *split_options(tool.options),
            *device.compiler_flags(tool.command),
            document.tex_file.name,
        ]
        target = document.with_suffix(device.target_suffix(tool.command))
        self.run_tool(tool, document.directory, args, expected=[target])
        self.log_errors(document.log, tool.command, tool.pattern_error)

    def log_latex_warnings(self, document: MainDocument) -> None:
        """Report bad boxes and warnings of the last compilation."""
        tool = self.settings.tools.latex
        if not document.log.exists():
            return
        if self.settings.debug_bad_boxes and self.log_matches(
            document.log, PATTERN_BAD_BOX, tool.command
        ):
            self.emitter.warning(
                f"Running {tool.command} created bad boxes logged in '{document.log.name}'."
            )
        if (
            self.settings.debug_warnings
            and tool.pattern_warning
            and self.log_matches(document.log, tool.pattern_warning, tool.command)
        ):
            self.emitter.warning(
                f"Running {tool.command} emitted warnings logged in '{document.log.name}'."
            )

    # -- auxiliary tools ------------------------------------------------

    def run_bibtex_by_need(self, document: MainDocument) -> bool:
        tool = self.settings.tools.bibtex
        if not self.needs_run(tool.command, document.aux, PATTERN_NEED_BIBTEX_RUN):
            return False
        self.run_tool(
            tool,
            document.directory,
            self.arguments(tool.options, document.aux.name),
            expected=[document.bbl],
        )
        self.log_errors_and_warnings(document.blg, tool)
        return True

    def run_makeindex_by_need(self, document: MainDocument) -> bool:
        """Run makeindex, or splitindex for explicit indices, if a raw index exists."""
        tool = self.settings.tools.makeindex
        needed = document.idx.exists()
        identifiers: set[str] | None = None
        if needed:
            identifiers = collect_matches(document.idx, IDX_EXPLICIT, 2)
            if identifiers is None:
                self.emitter.warning(
                    f"Cannot read '{document.idx.name}'; not running {tool.command} "
                    "although it may be needed."
                )
                return False

        split_files = sorted(document.directory.glob(f"{document.name}-*.idx"))
        if split_files and not identifiers:
            self.emitter.warning(
                f"Found {', '.join(path.name for path in split_files)} but no explicit "
                f"index entries in '{document.idx.name}'; "
                "use package splitidx with option split only together with splitindex."
            )

        if identifiers is None:
            return needed
        if identifiers:
            self.run_splitindex(document, identifiers)
        else:
            self.run_makeindex(document)
        return needed

    def run_makeindex(self, document: MainDocument) -> None:
        tool = self.settings.tools.makeindex
        self.run_tool(
            tool,
            document.directory,
            self.arguments(tool.options, document.idx.name),
            expected=[document.ind],
        )
        self.log_errors_and_warnings(document.ilg, tool)

    def run_splitindex(self, document: MainDocument, identifiers: set[str]) -> None:
        makeindex = self.settings.tools.makeindex
        tool = self.settings.tools.splitindex
        args = [
            "-m",
            makeindex.command,
            "-i",
            IDX_EXPLICIT,
            "-r",
            "$1$3",
            "-s",
            "-$2",
            *split_options(tool.options),
            document.name,
        ]
        makeindex_options = split_options(makeindex.options)
        if makeindex_options:
            args += ["--", *makeindex_options]

        names = sorted(identifiers | {IMPLICIT_INDEX})
        expected = [document.with_suffix(f"-{name}.ind") for name in names]
        self.run_tool(tool, document.directory, args, expected=expected)
        for name in names:
            self.log_errors_and_warnings(document.with_suffix(f"-{name}.ilg"), makeindex)

    def run_makeglossaries_by_need(self, document: MainDocument) -> bool:
        tool = self.settings.tools.makeglossaries
        if not document.glo.exists():
            return False
        self.run_tool(
            tool,
            document.directory,
            self.arguments(tool.options, document.name),
            expected=[document.gls],
        )
        self.log_errors(document.glg, tool.command, tool.pattern_error)
        warnings = [
            pattern
            for pattern in (
                self.settings.tools.makeindex.pattern_warning,
                self.settings.tools.xindy.pattern_warning,
            )
            if pattern
        ]
        if warnings:
            self.log_warnings(document.glg, tool.command, "|".join(warnings))
        return True

    # -- convergence ----------------------------------------------------

    def prepare(self, document: MainDocument, device: LatexDevice) -> int:
        """Compile once, run the auxiliary tools needed and return the plain rerun count."""
        self.run_latex(document, device)

        ran_bibtex = self.run_bibtex_by_need(document)
        ran_index = self.run_makeindex_by_need(document)
        ran_glossary = self.run_makeglossaries_by_need(document)
        if ran_bibtex:
            return 2
        if ran_index or ran_glossary:
            return 2 if document.toc.exists() else 1
        if any(path.exists() for path in (document.toc, document.lof, document.lot)):
            return 1
        return 0

    def _log_requests(self, document: MainDocument, pattern: str | None) -> bool:
        if not pattern:
            return False
        result = match_in_file(document.log, pattern)
        if not result.readable:
            self.emitter.warning(
                f"Cannot read log file '{document.log.name}'; may miss a rerun request."
            )
        return result.resolve(False)

    def converge(self, document: MainDocument, device: LatexDevice) -> ConvergencePlan:
        """Compile ``document`` until no log requests another run."""
        latex = self.settings.tools.latex
        plan = ConvergencePlan(
            reruns=self.prepare(document, device),
            max_iterations=self.settings.max_reruns,
        )
        for _ in range(plan.reruns):
            self.emitter.event("rerun", {"document": document.name, "reason": "auxiliary files"})
            self.run_latex(document, device)
            plan.compilations += 1

        while not plan.exhausted():
            need_index = self._log_requests(document, self.settings.tools.makeindex.pattern_rerun)
            need_latex = need_index or self._log_requests(document, latex.pattern_rerun)
            if not need_latex:
                plan.converged = True
                return plan
            plan.iterations += 1
            if need_index:
                self.run_makeindex_by_need(document)
            self.emitter.event("rerun", {"document": document.name, "reason": "log requested rerun"})
            self.run_latex(document, device)
            plan.compilations += 1

        if self._log_requests(document, latex.pattern_rerun) or self._log_requests(
            document, self.settings.tools.makeindex.pattern_rerun
        ):
            self.emitter.warning(
                f"{latex.command} requires rerun but maximum number "
                f"{self.settings.max_reruns} reached."
            )
        else:
            plan.converged = True
        return plan

    # -- converters -----------------------------------------------------

    def run_dvi2pdf(self, document: MainDocument) -> None:
        tool = self.settings.tools.dvi2pdf
        if document.dvi.exists() and document.xdv.exists():
            self.emitter.warning(
                f"Found both '{document.dvi.name}' and '{document.xdv.name}'; "
                f"{tool.command} picks one of them."
            )
        self.run_tool(
            tool,
            document.directory,
            self.arguments(tool.options, document.name),
            expected=[document.pdf],
        )

    def run_latex2html(self, document: MainDocument) -> None:
        tool = self.settings.tools.tex4ht
        args = [
            document.tex_file.name,
            tool.sty_options,
            tool.options,
            tool.t4ht_options,
            self.settings.tools.latex.options,
        ]
        self.run_tool(
            tool, document.directory, args, expected=[document.with_suffix(".html")]
        )
        self.log_errors_and_warnings(document.log, self.settings.tools.latex)

    def run_latex2odt(self, document: MainDocument) -> None:
        tool = self.settings.tools.tex4ht
        args = [
            document.tex_file.name,
            "xhtml,ooffice",
            "ooffice/! -cmozhtf",
            "-coo -cvalidate",
        ]
        self.run_tool(tool, document.directory, args, expected=[document.with_suffix(".odt")])
        self.log_errors_and_warnings(document.log, self.settings.tools.latex)

    def run_odt2doc(self, document: MainDocument) -> None:
        tool = self.settings.tools.odt2doc
        args = self.arguments(tool.options, document.with_suffix(".odt").name)
        formats = [arg[2:] for arg in args if arg.startswith("-f") and len(arg) > 2]
        suffix = f".{formats[-1]}" if formats else ".doc"
        self.run_tool(tool, document.directory, args, expected=[document.with_suffix(suffix)])

    def run_latex2rtf(self, document: MainDocument) -> None:
        tool = self.settings.tools.latex2rtf
        self.run_tool(
            tool,
            document.directory,
            self.arguments(tool.options, document.tex_file.name),
            expected=[document.with_suffix(".rtf")],
        )

    def run_pdf2txt(self, document: MainDocument) -> None:
        tool = self.settings.tools.pdf2txt
        self.run_tool(
            tool,
            document.directory,
            self.arguments(tool.options, document.pdf.name),
            expected=[document.with_suffix(".txt")],
        )

    def run_chktex(self, document: MainDocument) -> None:
        tool = self.settings.tools.chktex
        args = self.arguments(tool.options, "-o", document.clg.name, document.tex_file.name)
        result = self.run_tool(
            tool,
            document.directory,
            args,
            expected=[document.clg],
            policy=ReturnCodePolicy.IS_ONE,
        )
        if result.returncode == 0:
            if document.clg.exists() and document.clg.stat().st_size > 0:
                self.emitter.info(
                    f"Running {tool.command} found issues logged in '{document.clg.name}'."
                )
        elif result.returncode == 1:
            # already reported as a failed invocation
            return
        elif result.returncode == 2:
            self.emitter.warning(
                f"Running {tool.command} emitted warnings logged in '{document.clg.name}'."
            )
        elif result.returncode == 3:
            self.emitter.error(
                f"Running {tool.command} found errors logged in '{document.clg.name}'."
            )
        else:
            self.emitter.error(
                f"Running {tool.command} returned unexpected code {result.returncode}."
            )

    def pdf_differs(self, produced: Path, reference: Path) -> bool:
        """Return whether ``produced`` differs from ``reference``."""
        tool = self.settings.tools.diff
        result = self.run_tool(
            tool,
            produced.parent,
            self.arguments(tool.options, str(produced), str(reference)),
            policy=ReturnCodePolicy.NOT_ZERO_OR_ONE,
        )
        return result.returncode != 0

    # -- targets --------------------------------------------------------

    def process_chk(self, document: MainDocument) -> None:
        self.run_chktex(document)

    def process_dvi(self, document: MainDocument) -> None:
        self.converge(document, LatexDevice.DVIPS)
        self.log_latex_warnings(document)

    def process_pdf(self, document: MainDocument) -> None:
        device = self.device
        self.converge(document, device)
        self.log_latex_warnings(document)
        if device.via_dvi:
            self.run_dvi2pdf(document)

    def process_html(self, document: MainDocument) -> None:
        self.prepare(document, self.device)
        self.run_latex2html(document)

    def process_odt(self, document: MainDocument) -> None:
        self.prepare(document, self.device)
        self.run_latex2odt(document)

    def process_docx(self, document: MainDocument) -> None:
        self.process_odt(document)
        self.run_odt2doc(document)

    def process_rtf(self, document: MainDocument) -> None:
        self.run_latex2rtf(document)

    def process_txt(self, document: MainDocument) -> None:
        device = self.device
        self.converge(document, device)
        if device.via_dvi:
            self.run_dvi2pdf(document)
        self.run_pdf2txt(document)


__all__ = [
    "IDX_EXPLICIT",
    "PATTERN_BAD_BOX",
    "PATTERN_NEED_BIBTEX_RUN",
    "ConvergenceEngine",
    "ConvergencePlan",
]
