"""Typed records describing a parsed unified diff."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

NULL_PATH = "/dev/null"
_NULL_PATH_FORMS = frozenset({NULL_PATH, "a/dev/null", "b/dev/null"})


class LineKind(str, Enum):
    """Role of a single line inside a hunk body."""

    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"
    NO_NEWLINE = "no_newline"


@dataclass(frozen=True, slots=True)
class Line:
    """Classified hunk body line. ``text`` excludes the leading marker."""

    kind: LineKind
    text: str = ""

    @property
    def marker(self) -> str:
        return _MARKERS[self.kind]

    def render(self) -> str:
        if self.kind is LineKind.NO_NEWLINE:
            return NO_NEWLINE_MARKER
        return f"{self.marker}{self.text}"


NO_NEWLINE_MARKER = "\\ No newline at end of file"
_MARKERS = {
    LineKind.CONTEXT: " ",
    LineKind.ADDED: "+",
    LineKind.REMOVED: "-",
    LineKind.NO_NEWLINE: "\\",
}


@dataclass(frozen=True, slots=True)
class Hunk:
    """Contiguous block of changes with its old/new ranges (1-based)."""

    old_start: int
    old_length: int
    new_start: int
    new_length: int
    lines: tuple[Line, ...] = ()
    section: str = ""
    warnings: tuple[str, ...] = ()

    @property
    def old_lines(self) -> list[str]:
        """Context and removed payloads, i.e. the text the hunk expects to find."""
        return [line.text for line in self.lines if line.kind in (LineKind.CONTEXT, LineKind.REMOVED)]

    @property
    def new_lines(self) -> list[str]:
        """Context and added payloads, i.e. the text the hunk produces."""
        return [line.text for line in self.lines if line.kind in (LineKind.CONTEXT, LineKind.ADDED)]

    @property
    def old_missing_newline(self) -> bool:
        return _missing_newline(self.lines, LineKind.REMOVED)

    @property
    def new_missing_newline(self) -> bool:
        return _missing_newline(self.lines, LineKind.ADDED)

    @property
    def header(self) -> str:
        header = f"@@ -{_format_range(self.old_start, self.old_length)} +{_format_range(self.new_start, self.new_length)} @@"
        if self.section:
            header = f"{header} {self.section}"
        return header


def _missing_newline(lines: tuple[Line, ...], side: LineKind) -> bool:
    """Return True when a no-newline marker follows the last line of ``side``.

    A marker applies to the line immediately before it; context lines belong
    to both sides.
    """
    previous: Line | None = None
    for line in lines:
        if line.kind is LineKind.NO_NEWLINE:
            if previous is not None and previous.kind in (LineKind.CONTEXT, side):
                return True
            continue
        previous = line
    return False


def _format_range(start: int, length: int) -> str:
    if length == 1:
        return str(start)
    return f"{start},{length}"


def is_null_path(path: str | None) -> bool:
    """Return True for the ``/dev/null`` sentinel, raw or ``a/``/``b/`` prefixed."""
    return path is not None and path.strip() in _NULL_PATH_FORMS


def strip_side_prefix(path: str | None) -> str | None:
    """Drop the conventional ``a/`` or ``b/`` prefix from a header path."""
    if path is None:
        return None
    path = path.strip()
    if path[:2] in ("a/", "b/") and len(path) > 2:
        return path[2:]
    return path


@dataclass(frozen=True, slots=True)
class FilePatch:
    """All hunks targeting one file, with the raw header paths."""

    old_path: str | None
    new_path: str | None
    hunks: tuple[Hunk, ...] = ()
    index: int = 0
    warnings: tuple[str, ...] = ()

    @property
    def is_creation(self) -> bool:
        return is_null_path(self.old_path)

    @property
    def is_deletion(self) -> bool:
        return is_null_path(self.new_path)

    @property
    def change_type(self) -> str:
        if self.is_creation:
            return "create"
        if self.is_deletion:
            return "delete"
        return "modify"

    @property
    def target_path(self) -> str:
        """Path the session should resolve when applying this patch."""
        old = None if self.is_creation else strip_side_prefix(self.old_path)
        new = None if self.is_deletion else strip_side_prefix(self.new_path)
        if self.is_creation:
            return new or ""
        return old or new or ""

    @property
    def display_path(self) -> str:
        return self.target_path or "unknown file"


@dataclass(frozen=True, slots=True)
class SectionError:
    """A file section that failed to parse; siblings are unaffected."""

    index: int
    old_path: str | None
    new_path: str | None
    error: Exception

    @property
    def display_path(self) -> str:
        for candidate in (self.new_path, self.old_path):
            if candidate and not is_null_path(candidate):
                return strip_side_prefix(candidate) or "unknown file"
        return "unknown file"

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass(frozen=True, slots=True)
class PatchSet:
    """Parsed multi-file diff in order of appearance."""

    files: tuple[FilePatch, ...] = ()
    errors: tuple[SectionError, ...] = ()

    def total_hunks(self) -> int:
        return sum(len(patch.hunks) for patch in self.files)

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self):
        return iter(self.files)


__all__ = [
    "FilePatch",
    "Hunk",
    "Line",
    "LineKind",
    "NO_NEWLINE_MARKER",
    "NULL_PATH",
    "PatchSet",
    "SectionError",
    "is_null_path",
    "strip_side_prefix",
]
