"""Preview and apply unified diffs with bounded fuzz."""

from .diff import apply_hunks, clean_diff_text, parse_patch, reconstruct, render_patch
from .errors import (
    HunkLineCountMismatch,
    HunkNotFound,
    MalformedDiffLine,
    MalformedHunkHeader,
    NoPatchesFound,
    OverlappingHunks,
    PatchError,
    TargetIsNotAFile,
    TargetNotFound,
)
from .session import ApplyOutcome, OutcomeStatus, PatchSession, Resolution, SessionReport
from .structured import FilePatch, Hunk, Line, LineKind, PatchSet
from .workspace import WorkspaceFiles

__version__ = "0.1.0"

__all__ = [
    "ApplyOutcome",
    "FilePatch",
    "Hunk",
    "HunkLineCountMismatch",
    "HunkNotFound",
    "Line",
    "LineKind",
    "MalformedDiffLine",
    "MalformedHunkHeader",
    "NoPatchesFound",
    "OutcomeStatus",
    "OverlappingHunks",
    "PatchError",
    "PatchSession",
    "PatchSet",
    "Resolution",
    "SessionReport",
    "TargetIsNotAFile",
    "TargetNotFound",
    "WorkspaceFiles",
    "apply_hunks",
    "clean_diff_text",
    "parse_patch",
    "reconstruct",
    "render_patch",
]
