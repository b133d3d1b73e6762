"""Exception hierarchy shared by the parser, the engine and the session."""

from __future__ import annotations

from typing import Any, Mapping


class PatchError(RuntimeError):
    """Raised when a patch fails validation or application."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class NoPatchesFound(PatchError):
    """The text contains no ``--- ``/``+++ `` header pair."""


class MalformedDiffLine(PatchError):
    """A hunk body line does not start with a recognised marker."""


class MalformedHunkHeader(PatchError):
    """An ``@@`` line does not match the unified hunk header pattern."""


class MalformedFileHeader(PatchError):
    """A file section's ``---``/``+++`` headers cannot describe a file."""


class HunkLineCountMismatch(PatchError):
    """Counted hunk lines disagree with the lengths in the header."""


class HunkNotFound(PatchError):
    """No acceptable anchor position exists for a hunk."""

    def __init__(self, hunk_index: int, message: str | None = None, *, details: Mapping[str, Any] | None = None) -> None:
        payload = {"hunk_index": hunk_index, **dict(details or {})}
        super().__init__(message or f"Hunk #{hunk_index + 1} could not be located in the target.", details=payload)
        self.hunk_index = hunk_index


class OverlappingHunks(PatchError):
    """A hunk only matches text already consumed by an earlier hunk."""


class TargetNotFound(PatchError):
    """The content provider could not locate the patch target."""


class TargetIsNotAFile(PatchError):
    """The resolved target exists but is not a regular file."""


class ConfigError(PatchError):
    """Configuration could not be loaded or validated."""


__all__ = [
    "ConfigError",
    "HunkLineCountMismatch",
    "HunkNotFound",
    "MalformedDiffLine",
    "MalformedFileHeader",
    "MalformedHunkHeader",
    "NoPatchesFound",
    "OverlappingHunks",
    "PatchError",
    "TargetIsNotAFile",
    "TargetNotFound",
]
