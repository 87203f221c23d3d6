"""Graphic preprocessing and discovery of main documents.

Every file found in the processing directory is dispatched on its suffix to
a :class:`SuffixHandler`. Handlers convert graphic sources into formats the
LaTeX engine embeds directly, and remove those derived files again. ``.tex``
files are classified into main documents and plain inputs; a source whose
name marks it as an output of a sibling main document is never converted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .devices import LatexDevice
from .documents import MainDocument
from .exceptions import OverlayRewriteError
from .files import (
    SUFFIX_AUX,
    SUFFIX_BB,
    SUFFIX_BIB,
    SUFFIX_EPS,
    SUFFIX_FIG,
    SUFFIX_FLS,
    SUFFIX_GP,
    SUFFIX_JPG,
    SUFFIX_LOG,
    SUFFIX_MP,
    SUFFIX_MPS,
    SUFFIX_MPX,
    SUFFIX_PDF,
    SUFFIX_PNG,
    SUFFIX_PTX,
    SUFFIX_SVG,
    SUFFIX_TEX,
    SUFFIX_XBB,
    created_from,
    delete_matching,
    delete_or_error,
    is_hidden,
    replace_suffix,
    rewrite_inkscape_overlay,
)
from .logmatch import match_in_file
from .snapshot import DirectorySnapshot, build_snapshot
from .toolchain import ToolStep


@dataclass(slots=True)
class PreprocessReport:
    """What a preprocessing pass found and did."""

    main_documents: list[MainDocument] = field(default_factory=list)
    materialized: list[Path] = field(default_factory=list)
    excluded: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    skipped_suffixes: set[str] = field(default_factory=set)


class SuffixHandler:
    """Conversion rules for one source suffix."""

    suffix: str = ""
    derived: tuple[str, ...] = ()

    def schedule(
        self, preprocessor: GraphicPreprocessor, source: Path, mains: list[MainDocument]
    ) -> bool:
        """Return whether ``source`` needs :meth:`materialize`."""
        return True

    def materialize(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        raise NotImplementedError

    def clear(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        for suffix in self.derived:
            delete_or_error(replace_suffix(source, suffix), preprocessor.emitter)


class FigHandler(SuffixHandler):
    suffix = SUFFIX_FIG
    derived = (SUFFIX_PTX, SUFFIX_PDF, SUFFIX_EPS)

    def materialize(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        preprocessor.run_fig2dev(source)


class GnuplotHandler(SuffixHandler):
    suffix = SUFFIX_GP
    derived = (SUFFIX_PTX, SUFFIX_PDF, SUFFIX_EPS)

    def materialize(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        preprocessor.run_gnuplot(source)


class MetapostHandler(SuffixHandler):
    suffix = SUFFIX_MP
    derived = (SUFFIX_LOG, SUFFIX_FLS, SUFFIX_MPX, SUFFIX_MPS)

    def materialize(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        preprocessor.run_metapost(source)


class SvgHandler(SuffixHandler):
    suffix = SUFFIX_SVG
    derived = (SUFFIX_PTX, SUFFIX_PDF, SUFFIX_EPS)

    def materialize(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        preprocessor.run_inkscape(source)


class RasterHandler(SuffixHandler):
    derived = (SUFFIX_XBB, SUFFIX_BB)

    def __init__(self, suffix: str) -> None:
        self.suffix = suffix

    def materialize(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        preprocessor.run_ebb(source)


class TexHandler(SuffixHandler):
    """``.tex`` files are classified, never converted."""

    suffix = SUFFIX_TEX
    derived = (SUFFIX_AUX,)

    def schedule(
        self, preprocessor: GraphicPreprocessor, source: Path, mains: list[MainDocument]
    ) -> bool:
        document = preprocessor.main_document_for(source)
        if document is not None:
            mains.append(document)
        return False

    def materialize(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        return

    def clear(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        document = preprocessor.main_document_for(source)
        if document is None:
            super().clear(preprocessor, source)
        else:
            preprocessor.clear_main_document(document)


class BibHandler(SuffixHandler):
    suffix = SUFFIX_BIB

    def materialize(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        preprocessor.emitter.info(f"Found bibliography file '{source}'.")

    def clear(self, preprocessor: GraphicPreprocessor, source: Path) -> None:
        return


SUFFIX_HANDLERS: Mapping[str, SuffixHandler] = {
    handler.suffix: handler
    for handler in (
        FigHandler(),
        GnuplotHandler(),
        MetapostHandler(),
        SvgHandler(),
        RasterHandler(SUFFIX_JPG),
        RasterHandler(SUFFIX_PNG),
        TexHandler(),
        BibHandler(),
    )
}


class GraphicPreprocessor(ToolStep):
    """Convert graphic sources and select the main documents to build."""

    handlers: Mapping[str, SuffixHandler] = SUFFIX_HANDLERS

    # -- classification -------------------------------------------------

    def main_document_for(self, tex_file: Path) -> MainDocument | None:
        """Return the main document described by ``tex_file``, if it is one."""
        result = match_in_file(tex_file, self.settings.pattern_latex_main)
        if not result.readable:
            self.emitter.warning(
                f"Cannot read '{tex_file}'; it may be a main document but is not built."
            )
            return None
        if not result.matched:
            return None
        return MainDocument(
            tex_file,
            doc_class=result.group("doc_class"),
            magic_doc_class=result.group("doc_class_magic"),
            magic_targets=result.group("targets_magic"),
        )

    # -- preprocessing --------------------------------------------------

    def preprocess(self, root: Path, snapshot: DirectorySnapshot | None = None) -> PreprocessReport:
        """Convert the graphics beneath ``root`` and return the selected main documents."""
        if snapshot is None:
            snapshot = build_snapshot(root, self.emitter)
        report = PreprocessReport()
        found: list[MainDocument] = []
        if snapshot.valid:
            self._preprocess_directory(root, snapshot, report, found)
        if report.skipped_suffixes:
            suffixes = ", ".join(sorted(report.skipped_suffixes))
            self.emitter.warning(f"Skipped processing of files with suffixes [{suffixes}].")
        report.main_documents = self._select(sorted(found))
        return report

    def _preprocess_directory(
        self,
        directory: Path,
        snapshot: DirectorySnapshot,
        report: PreprocessReport,
        found: list[MainDocument],
    ) -> None:
        mains: list[MainDocument] = []
        scheduled: dict[Path, SuffixHandler] = {}
        for name in snapshot.sorted_files():
            source = directory / name
            if is_hidden(source):
                self.emitter.debug(f"Skipping hidden file '{source}'.")
                continue
            handler = self.handlers.get(source.suffix)
            if handler is None:
                self.emitter.debug(f"Skipping file '{source}' without handler.")
                report.skipped.append(source)
                report.skipped_suffixes.add(source.suffix)
                continue
            if handler.schedule(self, source, mains):
                scheduled[source] = handler

        found.extend(mains)
        for document in mains:
            is_output = created_from(document.tex_file, self.settings.pattern_created_from_main)
            for source in [path for path in scheduled if is_output(path)]:
                self.emitter.warning(
                    f"Skip processing '{source}': interpreted as target of '{document.tex_file}'."
                )
                del scheduled[source]
                report.excluded.append(source)

        for source, handler in sorted(scheduled.items()):
            handler.materialize(self, source)
            report.materialized.append(source)

        if self.settings.read_recursive:
            for name, child in sorted((snapshot.subdirs or {}).items()):
                self._preprocess_directory(directory / name, child, report, found)

    def _select(self, documents: list[MainDocument]) -> list[MainDocument]:
        by_name: dict[str, MainDocument] = {}
        overwritten: set[str] = set()
        for document in documents:
            if document.name in by_name:
                overwritten.add(document.name)
            by_name[document.name] = document
        discovered = set(by_name)

        included = set(self.settings.main_files_included)
        if included:
            missing = included - discovered
            if missing:
                self.emitter.warning(
                    "Included LaTeX files which are not main documents: "
                    f"{sorted(missing)}."
                )
            by_name = {name: doc for name, doc in by_name.items() if name in included}

        excluded = set(self.settings.main_files_excluded)
        missing = excluded - discovered
        if missing:
            self.emitter.warning(
                f"Excluded LaTeX files which are not main documents: {sorted(missing)}."
            )
        by_name = {name: doc for name, doc in by_name.items() if name not in excluded}

        if included or excluded:
            ambiguous = (included | excluded) & overwritten
            if ambiguous:
                self.emitter.warning(
                    "Included/excluded main documents not identified by their name: "
                    f"{sorted(ambiguous)}."
                )
            self.emitter.info(
                f"After inclusion/exclusion main documents are {sorted(by_name)}."
            )
        return sorted(by_name.values())

    # -- conversions ----------------------------------------------------

    def run_fig2dev(self, fig: Path) -> None:
        tool = self.settings.tools.fig2dev
        for device in LatexDevice:
            graphic = replace_suffix(fig, device.graphic_suffix)
            args = ["-L", device.xfig_language, *self.arguments(tool.options)]
            args += self.arguments(tool.pdf_eps_options, fig.name, graphic.name)
            self.run_tool(tool, fig.parent, args, expected=[graphic])

        ptx = replace_suffix(fig, SUFFIX_PTX)
        args = ["-L", "pdftex_t", *self.arguments(tool.options)]
        args += self.arguments(tool.ptx_options, "-p", fig.stem, fig.name, ptx.name)
        self.run_tool(tool, fig.parent, args, expected=[ptx])

    def run_gnuplot(self, gp: Path) -> None:
        tool = self.settings.tools.gnuplot
        ptx = replace_suffix(gp, SUFFIX_PTX)
        for device in (LatexDevice.DVIPS, LatexDevice.PDF):
            graphic = replace_suffix(gp, device.graphic_suffix)
            script = (
                f"set terminal cairolatex {device.gnuplot_terminal} {tool.options}"
                f";set output '{ptx.name}';load '{gp.name}'"
            )
            self.run_tool(tool, gp.parent, ["-e", script], expected=[graphic, ptx])

    def run_metapost(self, mp: Path) -> None:
        tool = self.settings.tools.metapost
        self.run_tool(
            tool,
            mp.parent,
            self.arguments(tool.options, mp.name),
            expected=[replace_suffix(mp, SUFFIX_MPS)],
        )
        self.log_errors_and_warnings(replace_suffix(mp, SUFFIX_LOG), tool)

    def run_inkscape(self, svg: Path) -> None:
        tool = self.settings.tools.inkscape
        for device in LatexDevice:
            graphic = replace_suffix(svg, device.graphic_suffix)
            overlay = replace_suffix(svg, device.inkscape_overlay_suffix)
            args = [f"--export-filename={graphic.name}", *self.arguments(tool.options, svg.name)]
            self.run_tool(tool, svg.parent, args, expected=[graphic, overlay])
            if device is LatexDevice.DVIPS and overlay.exists():
                try:
                    rewrite_inkscape_overlay(
                        overlay, replace_suffix(svg, SUFFIX_PTX), device.graphic_suffix
                    )
                except OverlayRewriteError as exc:
                    self.emitter.error(f"Cannot rewrite overlay of '{svg}'.", exc)
            delete_or_error(overlay, self.emitter)

    def run_ebb(self, image: Path) -> None:
        if not self.settings.create_bounding_boxes:
            self.emitter.info(f"Image '{image}' needs no processing.")
            return
        tool = self.settings.tools.ebb
        for flag, suffix in (("-x", SUFFIX_XBB), ("-m", SUFFIX_BB)):
            self.run_tool(
                tool,
                image.parent,
                [flag, *self.arguments(tool.options, image.name)],
                expected=[replace_suffix(image, suffix)],
            )

    # -- clearing -------------------------------------------------------

    def clear_main_document(self, document: MainDocument) -> None:
        """Delete every file generated by compiling ``document``."""
        delete_matching(
            document.tex_file,
            self.settings.pattern_created_from_main,
            self.emitter,
            include_dirs=True,
        )

    def clear_created(self, root: Path, snapshot: DirectorySnapshot | None = None) -> None:
        """Delete the files derived from the sources beneath ``root``."""
        if snapshot is None:
            snapshot = build_snapshot(root, self.emitter)
        if snapshot.valid:
            self._clear_directory(root, snapshot)

    def _clear_directory(self, directory: Path, snapshot: DirectorySnapshot) -> None:
        for name, child in sorted((snapshot.subdirs or {}).items()):
            self._clear_directory(directory / name, child)

        pending: list[tuple[Path, SuffixHandler]] = []
        for name in snapshot.sorted_files():
            source = directory / name
            handler = self.handlers.get(source.suffix)
            if handler is None or is_hidden(source):
                continue
            if isinstance(handler, TexHandler):
                document = self.main_document_for(source)
                if document is not None:
                    self.clear_main_document(document)
                    continue
            pending.append((source, handler))

        for source, handler in pending:
            if source.exists():
                handler.clear(self, source)


__all__ = [
    "SUFFIX_HANDLERS",
    "BibHandler",
    "FigHandler",
    "GnuplotHandler",
    "GraphicPreprocessor",
    "MetapostHandler",
    "PreprocessReport",
    "RasterHandler",
    "SuffixHandler",
    "SvgHandler",
    "TexHandler",
]
