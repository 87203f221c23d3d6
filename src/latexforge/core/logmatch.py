"""Regular expression probes over tool log files.

Log inspection has three outcomes, not two: a log that cannot be read is
neither evidence of a match nor of its absence. :class:`LogMatch` keeps that
distinction so each caller decides explicitly which conservative default to
apply after warning about the unreadable file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re


ANCHOR = r"\A"


@dataclass(frozen=True, slots=True)
class LogMatch:
    """Outcome of matching a pattern against a file."""

    readable: bool
    match: re.Match[str] | None = None

    @classmethod
    def unreadable(cls) -> LogMatch:
        return cls(readable=False)

    @property
    def matched(self) -> bool:
        """Return whether the pattern matched; invalid on unreadable results."""
        if not self.readable:
            raise RuntimeError("Match state of an unreadable file is undefined.")
        return self.match is not None

    def resolve(self, default: bool) -> bool:
        """Return the match state, falling back to ``default`` when unreadable."""
        if not self.readable:
            return default
        return self.match is not None

    def group(self, name: int | str) -> str | None:
        """Return a captured group, ``None`` when absent or not matched."""
        if self.match is None:
            return None
        try:
            return self.match.group(name)
        except IndexError:
            return None


def _compile(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern, re.MULTILINE)


def _lines(path: Path):
    with path.open("r", encoding="utf-8", errors="replace", newline=None) as handle:
        for line in handle:
            yield line.rstrip("\r\n")


def match_in_file(
    path: Path,
    pattern: str | re.Pattern[str],
    *,
    anchored: bool | None = None,
) -> LogMatch:
    """Search ``path`` for ``pattern``.

    Lines are inspected one at a time unless ``anchored`` is true, in which
    case the pattern is applied to the growing buffer of every line read so
    far. Anchored mode is the default for patterns starting with ``\\A``, as
    multi-line constructs such as the document preamble can only be matched
    from the beginning of the file.
    """
    regex = _compile(pattern)
    if anchored is None:
        anchored = regex.pattern.startswith(ANCHOR)

    try:
        if anchored:
            probe = regex.match if regex.pattern.startswith(ANCHOR) else regex.search
            buffer = ""
            for index, line in enumerate(_lines(path)):
                buffer = f"{buffer}\n{line}" if index else line
                found = probe(buffer)
                if found is not None:
                    return LogMatch(readable=True, match=found)
        else:
            for line in _lines(path):
                found = regex.search(line)
                if found is not None:
                    return LogMatch(readable=True, match=found)
    except OSError:
        return LogMatch.unreadable()
    return LogMatch(readable=True)


def collect_matches(
    path: Path, pattern: str | re.Pattern[str], group: int | str
) -> set[str] | None:
    """Return the set of ``group`` captures over all lines, ``None`` when unreadable."""
    regex = _compile(pattern)
    found: set[str] = set()
    try:
        for line in _lines(path):
            match = regex.search(line)
            if match is not None and match.group(group) is not None:
                found.add(match.group(group))
    except OSError:
        return None
    return found


__all__ = ["LogMatch", "collect_matches", "match_in_file"]
