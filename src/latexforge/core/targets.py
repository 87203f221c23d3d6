"""Build targets and the selection of targets per document."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import SettingsError


if TYPE_CHECKING:
    from .config import BuildSettings
    from .convergence import ConvergenceEngine
    from .documents import MainDocument


class Target(Enum):
    """Artifact kinds a main document can be built into, in build order."""

    CHK = "chk"
    DVI = "dvi"
    PDF = "pdf"
    HTML = "html"
    ODT = "odt"
    DOCX = "docx"
    RTF = "rtf"
    TXT = "txt"

    @property
    def order(self) -> int:
        return list(Target).index(self)

    def output_pattern(self, settings: BuildSettings) -> str:
        """Return the pattern of delivered files, ``T$T`` standing for the base name."""
        if self is Target.HTML:
            return settings.pattern_t4ht_output_files
        return _OUTPUT_PATTERNS[self]

    @property
    def has_diff_tool(self) -> bool:
        return self is Target.PDF

    def process(self, engine: ConvergenceEngine, document: MainDocument) -> None:
        getattr(engine, _PIPELINES[self])(document)


_OUTPUT_PATTERNS: Mapping[Target, str] = {
    # chktex writes its report next to the source only
    Target.CHK: r".^",
    Target.DVI: r"^(T$T\.(dvi|xdv)|.+(\.(ptx|eps|jpg|png)|\d+\.mps))$",
    Target.PDF: r"^T$T\.pdf$",
    Target.ODT: r"^T$T\.(odt|fodt|uot)$",
    Target.DOCX: r"^T$T\.(doc(|6|.95|x|.x7)|rtf)$",
    Target.RTF: r"^T$T\.rtf$",
    Target.TXT: r"^T$T\.txt$",
}

_PIPELINES: Mapping[Target, str] = {
    Target.CHK: "process_chk",
    Target.DVI: "process_dvi",
    Target.PDF: "process_pdf",
    Target.HTML: "process_html",
    Target.ODT: "process_odt",
    Target.DOCX: "process_docx",
    Target.RTF: "process_rtf",
    Target.TXT: "process_txt",
}


def _target_named(name: str) -> Target:
    try:
        return Target(name)
    except ValueError as exc:
        known = ", ".join(target.value for target in Target)
        raise SettingsError(f"Unknown target '{name}'; expected one of {known}.") from exc


def parse_targets(text: str) -> list[Target]:
    """Parse a comma-separated target list into build order."""
    names = [name.strip() for name in text.split(",") if name.strip()]
    seen: set[Target] = set()
    for name in names:
        target = _target_named(name)
        if target in seen:
            raise SettingsError(f"Target '{name}' is listed more than once in '{text}'.")
        seen.add(target)
    return sorted(seen, key=lambda target: target.order)


def parse_doc_classes_to_targets(text: str) -> dict[str, list[Target]]:
    """Parse chunks ``class1,class2:target1,target2`` separated by whitespace."""
    mapping: dict[str, list[Target]] = {}
    for chunk in text.split():
        classes, separator, targets = chunk.partition(":")
        if not separator or not classes or not targets:
            raise SettingsError(f"Malformed document class mapping '{chunk}'.")
        parsed = parse_targets(targets)
        for doc_class in classes.split(","):
            if doc_class in mapping:
                raise SettingsError(f"Document class '{doc_class}' is mapped twice.")
            mapping[doc_class] = parsed
    return mapping


def normalise_targets(targets: Iterable[Target | str]) -> list[Target]:
    resolved = {target if isinstance(target, Target) else _target_named(target) for target in targets}
    return sorted(resolved, key=lambda target: target.order)


__all__ = [
    "Target",
    "normalise_targets",
    "parse_doc_classes_to_targets",
    "parse_targets",
]
