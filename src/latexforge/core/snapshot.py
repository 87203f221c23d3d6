"""Immutable snapshots of directory trees.

A snapshot is taken before anything is generated; after the build a second
snapshot is diffed against it so that every file the tools created can be
removed again. Unreadable directories are represented by an invalid node that
is distinct from an empty one.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from .diagnostics import DiagnosticEmitter, NullEmitter


@dataclass(frozen=True, slots=True)
class DirectorySnapshot:
    """Regular file names and child snapshots of one directory."""

    files: frozenset[str] | None
    subdirs: Mapping[str, DirectorySnapshot] | None = field(default=None)

    @classmethod
    def invalid(cls) -> DirectorySnapshot:
        return cls(files=None, subdirs=None)

    @property
    def valid(self) -> bool:
        return self.files is not None and self.subdirs is not None

    def sorted_files(self) -> list[str]:
        return sorted(self.files or ())

    def __contains__(self, name: object) -> bool:
        return self.files is not None and name in self.files


def build_snapshot(path: Path, emitter: DiagnosticEmitter | None = None) -> DirectorySnapshot:
    """Record the regular files and subdirectories beneath ``path``.

    Symbolic links are recorded as files and never followed.
    """
    emitter = emitter or NullEmitter()
    try:
        entries = sorted(path.iterdir())
    except OSError:
        emitter.warning(f"Cannot read directory '{path}'; build may be incomplete.")
        return DirectorySnapshot.invalid()

    files: set[str] = set()
    subdirs: dict[str, DirectorySnapshot] = {}
    for entry in entries:
        if entry.is_dir() and not entry.is_symlink():
            child = build_snapshot(entry, emitter)
            if child.valid:
                subdirs[entry.name] = child
        else:
            files.add(entry.name)
    return DirectorySnapshot(frozenset(files), MappingProxyType(subdirs))


def _all_entries(snapshot: DirectorySnapshot, root: Path) -> list[Path]:
    entries: list[Path] = []
    for name, child in sorted((snapshot.subdirs or {}).items()):
        entries.extend(_all_entries(child, root / name))
        entries.append(root / name)
    entries.extend(root / name for name in snapshot.sorted_files())
    return entries


def diff_snapshots(
    before: DirectorySnapshot, after: DirectorySnapshot, root: Path
) -> list[Path]:
    """Return the paths present in ``after`` but absent from ``before``.

    The result is depth first: the content of each subdirectory precedes the
    files of its parent, and a newly created directory follows its content.
    """
    if not before.valid or not after.valid:
        return []
    before_subdirs = before.subdirs or {}
    after_subdirs = after.subdirs or {}

    missing = set(before_subdirs) - set(after_subdirs)
    if missing:
        raise ValueError(
            f"Directory topology of '{root}' changed: {', '.join(sorted(missing))} vanished."
        )

    created: list[Path] = []
    for name, child in sorted(after_subdirs.items()):
        previous = before_subdirs.get(name)
        if previous is None:
            created.extend(_all_entries(child, root / name))
            created.append(root / name)
        else:
            created.extend(diff_snapshots(previous, child, root / name))

    known = before.files or frozenset()
    created.extend(root / name for name in after.sorted_files() if name not in known)
    return created


def _is_kept(path: Path, keep: Collection[Path]) -> bool:
    return any(path == kept or kept in path.parents for kept in keep)


def clean_up(
    before: DirectorySnapshot,
    root: Path,
    emitter: DiagnosticEmitter | None = None,
    *,
    keep: Collection[Path] = (),
) -> list[Path]:
    """Delete everything created beneath ``root`` since ``before`` was taken.

    Paths under any of ``keep`` survive. Returns the deleted paths.
    """
    emitter = emitter or NullEmitter()
    after = build_snapshot(root, emitter)
    keep = [Path(kept).resolve() for kept in keep]
    removed: list[Path] = []
    for path in diff_snapshots(before, after, root):
        if keep and _is_kept(path.resolve(), keep):
            continue
        try:
            if path.is_dir() and not path.is_symlink():
                if any(path.iterdir()):
                    emitter.warning(f"Directory '{path}' is not empty; not removed.")
                    continue
                path.rmdir()
            else:
                path.unlink()
        except OSError as exc:
            emitter.error(f"Cannot delete '{path}'.", exc)
            continue
        removed.append(path)
    return removed


__all__ = [
    "DirectorySnapshot",
    "build_snapshot",
    "clean_up",
    "diff_snapshots",
]
