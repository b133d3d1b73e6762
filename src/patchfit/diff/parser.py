"""Split unified-diff text into per-file patches."""

from __future__ import annotations

import logging
from typing import Sequence

from ..errors import MalformedFileHeader, NoPatchesFound, PatchError
from ..structured import FilePatch, Hunk, PatchSet, SectionError, is_null_path
from ..telemetry import emit_event
from .hunks import hunk_end, read_hunk
from .lines import normalise_line_endings

LOGGER = logging.getLogger(__name__)

_FENCE = "```"


def clean_diff_text(raw: str) -> str:
    """Trim whitespace and surrounding Markdown code fences from ``raw``."""
    lines = normalise_line_endings(raw).strip().split("\n")
    if lines and lines[0].strip().startswith(_FENCE):
        lines = lines[1:]
    if lines and lines[-1].strip() == _FENCE:
        lines = lines[:-1]
    return "\n".join(lines).strip("\n")


def _parse_header_path(line: str, prefix: str) -> str:
    """Extract the path from a ``---``/``+++`` header, dropping any timestamp."""
    rest = line[len(prefix):]
    path = rest.split("\t", 1)[0].strip()
    if len(path) >= 2 and path[0] == path[-1] == '"':
        path = path[1:-1]
    return path


def _find_section_starts(lines: Sequence[str]) -> list[int]:
    """Walk the diff, skipping hunk bodies, and return file header indices."""
    starts: list[int] = []
    index = 0
    while index < len(lines) - 1:
        if lines[index].startswith("--- ") and lines[index + 1].startswith("+++ "):
            starts.append(index)
            index += 2
            continue
        if starts and lines[index].startswith("@@"):
            index = hunk_end(lines, index)
            continue
        index += 1
    return starts


def _parse_section(lines: Sequence[str], index: int, *, strict: bool) -> FilePatch:
    old_path = _parse_header_path(lines[0], "--- ")
    new_path = _parse_header_path(lines[1], "+++ ")
    if not old_path or not new_path:
        raise MalformedFileHeader(
            "File header is missing a path.",
            details={"old_path": old_path, "new_path": new_path},
        )
    if is_null_path(old_path) and is_null_path(new_path):
        raise MalformedFileHeader(
            "Both sides of the file header are /dev/null.",
            details={"old_path": old_path, "new_path": new_path},
        )

    hunks: list[Hunk] = []
    position = 2
    while position < len(lines):
        if lines[position].startswith("@@"):
            hunk, position = read_hunk(lines, position, strict=strict)
            hunks.append(hunk)
            continue
        # Git preamble, commentary or blank separators between hunks.
        position += 1

    warnings = tuple(warning for hunk in hunks for warning in hunk.warnings)
    return FilePatch(
        old_path=old_path,
        new_path=new_path,
        hunks=tuple(hunks),
        index=index,
        warnings=warnings,
    )


def parse_patch(text: str, *, strict: bool = False) -> PatchSet:
    """Parse a possibly multi-file unified diff.

    Each ``--- ``/``+++ `` pair opens a file section. A section that fails to
    parse is recorded in :attr:`PatchSet.errors` and does not stop the
    sections after it. Raises :class:`NoPatchesFound` when no pair exists.
    """
    lines = normalise_line_endings(text).split("\n")
    starts = _find_section_starts(lines)
    if not starts:
        raise NoPatchesFound("No '--- '/'+++ ' file headers found; is this a unified diff?")

    files: list[FilePatch] = []
    errors: list[SectionError] = []
    bounds = list(zip(starts, [*starts[1:], len(lines)]))
    for index, (begin, end) in enumerate(bounds):
        section = lines[begin:end]
        try:
            files.append(_parse_section(section, index, strict=strict))
        except PatchError as error:
            old_path = _parse_header_path(section[0], "--- ")
            new_path = _parse_header_path(section[1], "+++ ")
            LOGGER.warning("Skipping unparsable diff section %d (%s): %s", index, new_path or old_path, error)
            emit_event("patch.section_failed", index=index, old_path=old_path, new_path=new_path, error=str(error))
            errors.append(SectionError(index=index, old_path=old_path or None, new_path=new_path or None, error=error))

    patch_set = PatchSet(files=tuple(files), errors=tuple(errors))
    emit_event(
        "patch.parsed",
        files=len(patch_set.files),
        hunks=patch_set.total_hunks(),
        errors=len(patch_set.errors),
    )
    return patch_set


def render_patch(patch_set: PatchSet) -> str:
    """Render parsed file patches back into unified-diff text."""
    out: list[str] = []
    for patch in patch_set.files:
        out.append(f"--- {patch.old_path}")
        out.append(f"+++ {patch.new_path}")
        for hunk in patch.hunks:
            out.append(hunk.header)
            out.extend(line.render() for line in hunk.lines)
    if not out:
        return ""
    return "\n".join(out) + "\n"


__all__ = ["clean_diff_text", "parse_patch", "render_patch"]
