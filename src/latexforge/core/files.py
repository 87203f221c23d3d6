"""File naming, filtering and delivery helpers."""

from __future__ import annotations

from pathlib import Path
import re
import shutil

from .diagnostics import DiagnosticEmitter
from .exceptions import OutputDeliveryError, OverlayRewriteError


SUFFIX_TEX = ".tex"
SUFFIX_PTX = ".ptx"
SUFFIX_PDF_TEX = ".pdf_tex"
SUFFIX_EPS_TEX = ".eps_tex"
SUFFIX_FIG = ".fig"
SUFFIX_SVG = ".svg"
SUFFIX_GP = ".gp"
SUFFIX_MP = ".mp"
SUFFIX_MPS = ".mps"
SUFFIX_MPX = ".mpx"
SUFFIX_JPG = ".jpg"
SUFFIX_PNG = ".png"
SUFFIX_BIB = ".bib"
SUFFIX_EPS = ".eps"
SUFFIX_XBB = ".xbb"
SUFFIX_BB = ".bb"
SUFFIX_AUX = ".aux"
SUFFIX_LOG = ".log"
SUFFIX_FLS = ".fls"
SUFFIX_PDF = ".pdf"
SUFFIX_DVI = ".dvi"
SUFFIX_XDV = ".xdv"

# Placeholder for the base name of a main document inside file patterns.
BASENAME_PLACEHOLDER = "T$T"


def is_hidden(path: Path) -> bool:
    return path.name.startswith(".")


def replace_suffix(path: Path, suffix: str) -> Path:
    """Return ``path`` with its last suffix replaced by ``suffix``."""
    return path.with_name(path.stem + suffix)


def basename_pattern(template: str, basename: str) -> re.Pattern[str]:
    """Compile a file pattern, substituting the placeholder with ``basename``."""
    return re.compile(template.replace(BASENAME_PLACEHOLDER, re.escape(basename)))


def created_from(main: Path, template: str):
    """Return a predicate telling whether a path is generated from ``main``.

    Directories and ``main`` itself never qualify.
    """
    pattern = basename_pattern(template, main.stem)

    def accepts(candidate: Path) -> bool:
        if candidate.is_dir() or candidate.name == main.name:
            return False
        return pattern.fullmatch(candidate.name) is not None

    return accepts


def matching_entries(
    directory: Path, pattern: re.Pattern[str], *, include_dirs: bool = False
) -> list[Path]:
    """List the entries of ``directory`` whose name fully matches ``pattern``."""
    try:
        entries = sorted(directory.iterdir())
    except OSError:
        return []
    return [
        entry
        for entry in entries
        if pattern.fullmatch(entry.name) is not None and (include_dirs or not entry.is_dir())
    ]


def delete_or_error(path: Path, emitter: DiagnosticEmitter) -> bool:
    """Delete a file if present; failures are reported as errors."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        emitter.error(f"Cannot delete file '{path}'.", exc)
        return False
    return True


def delete_matching(
    main: Path, template: str, emitter: DiagnosticEmitter, *, include_dirs: bool = False
) -> list[Path]:
    """Delete the siblings of ``main`` matching ``template`` (never ``main`` itself)."""
    pattern = basename_pattern(template, main.stem)
    removed: list[Path] = []
    for entry in matching_entries(main.parent, pattern, include_dirs=include_dirs):
        if entry.name == main.name:
            continue
        if entry.is_dir() and not entry.is_symlink():
            try:
                shutil.rmtree(entry)
            except OSError as exc:
                emitter.error(f"Cannot delete directory '{entry}'.", exc)
                continue
        elif not delete_or_error(entry, emitter):
            continue
        removed.append(entry)
    return removed


def target_directory(source_file: Path, source_root: Path, output_root: Path) -> Path:
    """Return the output directory mirroring the location of ``source_file``.

    The directory is created when missing.
    """
    try:
        relative = source_file.parent.resolve().relative_to(source_root.resolve())
    except ValueError as exc:
        raise OutputDeliveryError(
            f"File '{source_file}' is not located beneath '{source_root}'."
        ) from exc
    destination = output_root / relative
    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputDeliveryError(f"Cannot create output directory '{destination}'.") from exc
    return destination


def copy_outputs(
    main: Path, template: str, destination: Path, emitter: DiagnosticEmitter
) -> list[Path]:
    """Copy the files next to ``main`` matching ``template`` into ``destination``.

    Modification times are preserved. A directory occupying a destination name
    is fatal.
    """
    pattern = basename_pattern(template, main.stem)
    copied: list[Path] = []
    for source in matching_entries(main.parent, pattern):
        target = destination / source.name
        if target.is_dir():
            raise OutputDeliveryError(f"Cannot overwrite directory '{target}' with '{source}'.")
        if source.resolve() == target.resolve():
            continue
        try:
            shutil.copy2(source, target)
        except OSError as exc:
            raise OutputDeliveryError(f"Cannot copy '{source}' to '{target}'.") from exc
        emitter.debug(f"Copied '{source}' to '{target}'.")
        copied.append(target)
    return copied


def rewrite_inkscape_overlay(source: Path, destination: Path, graphic_suffix: str) -> None:
    """Write ``source`` to ``destination`` without the graphic's suffix.

    Inkscape's LaTeX overlay includes its graphic by full file name, which
    ties it to one device. Dropping the suffix lets the engine pick the PDF or
    EPS variant itself.
    """
    basename = source.stem
    replacements = (
        (f"{basename}{graphic_suffix}' (pdf, eps, ps)", f"{basename}.pdf/eps/ps'"),
        (f"{basename}{graphic_suffix}}}}}%", f"{basename}}}}}%"),
    )
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise OverlayRewriteError(f"Cannot read overlay '{source}'.") from exc

    lines = [f"%% {destination.name} derived from {source.name}: graphic suffix removed"]
    for line in text.splitlines():
        for old, new in replacements:
            line = line.replace(old, new)
        lines.append(line)
    try:
        destination.write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as exc:
        raise OverlayRewriteError(f"Cannot write overlay '{destination}'.") from exc


__all__ = [
    "BASENAME_PLACEHOLDER",
    "basename_pattern",
    "copy_outputs",
    "created_from",
    "delete_matching",
    "delete_or_error",
    "is_hidden",
    "matching_entries",
    "replace_suffix",
    "rewrite_inkscape_overlay",
    "target_directory",
]
