"""Custom exception hierarchy for the LaTeX build pipeline."""

from __future__ import annotations


class LatexBuildError(RuntimeError):
    """Base exception for LaTeX build failures."""


class BuildFailureError(LatexBuildError):
    """Raised when the build cannot continue at all."""


class MissingDirectoryError(BuildFailureError):
    """Raised when a source or processing directory is absent."""


class ToolExecutionError(BuildFailureError):
    """Raised when an external tool cannot be launched."""


class SettingsError(BuildFailureError):
    """Raised when the build settings are malformed."""


class OutputDeliveryError(BuildFailureError):
    """Raised when delivered artifacts cannot be written to the output directory."""


class ArtifactMismatchError(BuildFailureError):
    """Raised when a produced artifact differs from its reference copy."""


class OverlayRewriteError(LatexBuildError):
    """Raised when an Inkscape LaTeX overlay cannot be rewritten."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "ArtifactMismatchError",
    "BuildFailureError",
    "LatexBuildError",
    "MissingDirectoryError",
    "OutputDeliveryError",
    "OverlayRewriteError",
    "SettingsError",
    "ToolExecutionError",
    "exception_hint",
    "exception_messages",
]
