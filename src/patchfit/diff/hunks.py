"""Hunk header parsing and hunk body collection."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from ..errors import HunkLineCountMismatch, MalformedHunkHeader
from ..structured import Hunk, LineKind
from .lines import classify_line

LOGGER = logging.getLogger(__name__)

_HUNK_HEADER = re.compile(
    r"^@@\s+-(?P<old_start>\d+)(?:,(?P<old_count>\d+))?\s+"
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))?\s+@@(?P<section>.*)$"
)
_BODY_MARKERS = (" ", "+", "-")


@dataclass(frozen=True, slots=True)
class HunkHeader:
    """Numbers carried by an ``@@`` line."""

    old_start: int
    old_length: int
    new_start: int
    new_length: int
    section: str = ""


def _default_count(value: str | None) -> int:
    """Return the number of lines represented in a hunk header."""
    return int(value) if value is not None else 1


def parse_hunk_header(line: str) -> HunkHeader:
    """Parse ``@@ -a[,b] +c[,d] @@`` into a :class:`HunkHeader`."""
    match = _HUNK_HEADER.match(line.rstrip("\n"))
    if not match:
        raise MalformedHunkHeader(f"Malformed hunk header: {line}", details={"line": line})
    return HunkHeader(
        old_start=int(match.group("old_start")),
        old_length=_default_count(match.group("old_count")),
        new_start=int(match.group("new_start")),
        new_length=_default_count(match.group("new_count")),
        section=match.group("section").strip(),
    )


def is_section_boundary(lines: Sequence[str], index: int, *, in_body: bool = False) -> bool:
    """Return True when ``lines[index]`` starts a new hunk or file section.

    With ``in_body`` a ``---``/``+++`` pair is read as a removed and an added
    line (``-- comment`` / ``++ x``) instead of a file header.
    """
    line = lines[index]
    if line.startswith("@@"):
        return True
    if line.startswith("diff --git ") or line.startswith("Index: "):
        return True
    if in_body:
        return False
    return line.startswith("--- ") and index + 1 < len(lines) and lines[index + 1].startswith("+++ ")


def parse_hunk(header_line: str, body: Sequence[str], *, strict: bool = False) -> Hunk:
    """Build a :class:`Hunk` from its header and raw body lines.

    Blank body lines are read as empty context lines. When the counted lines
    disagree with the header, ``strict`` raises; otherwise the lengths are
    corrected to the observed counts and a warning is attached to the hunk.
    """
    header = parse_hunk_header(header_line)
    parsed = tuple(classify_line(raw if raw else " ") for raw in body)

    seen_old = sum(1 for line in parsed if line.kind in (LineKind.CONTEXT, LineKind.REMOVED))
    seen_new = sum(1 for line in parsed if line.kind in (LineKind.CONTEXT, LineKind.ADDED))

    warnings: list[str] = []
    if seen_old != header.old_length or seen_new != header.new_length:
        message = (
            f"hunk {header_line.strip()} declares -{header.old_length}/+{header.new_length} "
            f"but contains -{seen_old}/+{seen_new}"
        )
        if strict:
            raise HunkLineCountMismatch(
                f"Patch hunk line count mismatch: {message}.",
                details={
                    "header": header_line,
                    "expected": (header.old_length, header.new_length),
                    "seen": (seen_old, seen_new),
                },
            )
        LOGGER.warning("Adjusted %s", message)
        warnings.append(f"adjusted {message}")

    if header.old_start == 0 and seen_old:
        raise MalformedHunkHeader(
            f"Hunk {header_line.strip()} starts at line 0 but expects existing content.",
            details={"line": header_line},
        )

    return Hunk(
        old_start=header.old_start,
        old_length=seen_old,
        new_start=header.new_start,
        new_length=seen_new,
        lines=parsed,
        section=header.section,
        warnings=tuple(warnings),
    )


def _collect_body(lines: Sequence[str], start: int, header: HunkHeader) -> tuple[list[str], int]:
    body: list[str] = []
    seen_old = 0
    seen_new = 0
    index = start + 1

    while index < len(lines):
        # Both sides must have room left for a ---/+++ pair to be body lines.
        in_body = seen_old < header.old_length and seen_new < header.new_length
        if is_section_boundary(lines, index, in_body=in_body):
            break
        line = lines[index]
        if line.startswith("\\"):
            body.append(line)
            index += 1
            continue

        satisfied = seen_old >= header.old_length and seen_new >= header.new_length
        if satisfied and line[:1] not in _BODY_MARKERS:
            break

        body.append(line)
        prefix = line[:1]
        if prefix == "+":
            seen_new += 1
        elif prefix == "-":
            seen_old += 1
        else:
            seen_old += 1
            seen_new += 1
        index += 1

    if seen_old < header.old_length or seen_new < header.new_length:
        # Blank separator lines before the next section are not body lines.
        while body and body[-1] == "":
            body.pop()
    return body, index


def hunk_end(lines: Sequence[str], start: int) -> int:
    """Index of the first line after the hunk at ``lines[start]``.

    A malformed header has no known extent; only the header line is skipped.
    """
    try:
        header = parse_hunk_header(lines[start])
    except MalformedHunkHeader:
        return start + 1
    return _collect_body(lines, start, header)[1]


def read_hunk(lines: Sequence[str], start: int, *, strict: bool = False) -> tuple[Hunk, int]:
    """Parse the hunk whose header sits at ``lines[start]``.

    Returns the hunk and the index of the first line after its body. Body
    collection is driven by the declared counts: once they are met, a line
    without a diff marker ends the hunk, while further marker lines are kept
    as an under-counted body (and reported by :func:`parse_hunk`).
    """
    header_line = lines[start]
    body, index = _collect_body(lines, start, parse_hunk_header(header_line))
    return parse_hunk(header_line, body, strict=strict), index


__all__ = [
    "HunkHeader",
    "hunk_end",
    "is_section_boundary",
    "parse_hunk",
    "parse_hunk_header",
    "read_hunk",
]
