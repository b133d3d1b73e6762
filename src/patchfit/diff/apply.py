"""Apply parsed hunks to text with bounded fuzz."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence

from ..errors import HunkNotFound, OverlappingHunks
from ..structured import Hunk, Line, LineKind
from ..telemetry import emit_event
from .lines import join_lines, split_lines

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Placement:
    """Where a (possibly context-trimmed) hunk body matched the target."""

    start: int
    body: tuple[Line, ...]
    lead: int = 0
    tail: int = 0


def _expected_index(hunk: Hunk) -> int:
    """Zero-based target index of the hunk's first old-side line.

    A pure insertion (``old_length == 0``) names the line it follows.
    """
    if hunk.old_length == 0:
        return hunk.old_start
    return max(hunk.old_start - 1, 0)


def _old_side(body: Sequence[Line]) -> list[str]:
    return [line.text for line in body if line.kind in (LineKind.CONTEXT, LineKind.REMOVED)]


def _matches(target: Sequence[str], expected: Sequence[str], position: int) -> bool:
    if position < 0 or position + len(expected) > len(target):
        return False
    return all(target[position + offset] == text for offset, text in enumerate(expected))


def _leading_context(body: Sequence[Line]) -> int:
    count = 0
    for line in body:
        if line.kind is not LineKind.CONTEXT:
            break
        count += 1
    return count


def _trailing_context(body: Sequence[Line]) -> int:
    count = 0
    for line in reversed(body):
        if line.kind is LineKind.NO_NEWLINE:
            continue
        if line.kind is not LineKind.CONTEXT:
            break
        count += 1
    return count


def _trim(body: Sequence[Line], lead: int, tail: int) -> tuple[Line, ...]:
    trimmed = list(body[lead:])
    dropped = 0
    while dropped < tail:
        if trimmed.pop().kind is LineKind.CONTEXT:
            dropped += 1
    return tuple(trimmed)


def _outward(radius: int) -> Iterator[int]:
    """Yield offsets ``0, +1, -1, +2, -2, ...`` up to ``radius``."""
    yield 0
    for step in range(1, radius + 1):
        yield step
        yield -step


def _locate(target: Sequence[str], hunk: Hunk, expected: int, fuzz: int, floor: int) -> _Placement | None:
    """Find the first acceptable position for ``hunk``.

    Fuzz level ``k`` drops up to ``k`` leading and trailing context lines;
    each level scans ``±fuzz`` positions outward from ``expected`` and never
    before ``floor`` (the end of the previous hunk's region).
    """
    if expected >= floor and _matches(target, hunk.old_lines, expected):
        return _Placement(expected, hunk.lines)
    if fuzz <= 0:
        return None

    max_lead = _leading_context(hunk.lines)
    max_tail = _trailing_context(hunk.lines)
    seen: set[tuple[int, int]] = set()
    for level in range(fuzz + 1):
        lead = min(level, max_lead)
        tail = min(level, max_tail)
        if (lead, tail) in seen:
            continue
        seen.add((lead, tail))
        body = _trim(hunk.lines, lead, tail)
        old_side = _old_side(body)
        if hunk.old_length and not old_side:
            break
        for offset in _outward(fuzz):
            position = expected + lead + offset
            if position < floor:
                continue
            if _matches(target, old_side, position):
                return _Placement(position, body, lead, tail)
    return None


def apply_hunks(original: str, hunks: Sequence[Hunk], fuzz: int = 0) -> str:
    """Apply ``hunks`` to ``original`` and return the new content.

    The whole call fails with :class:`HunkNotFound` when any hunk cannot be
    placed, and with :class:`OverlappingHunks` when a hunk only matches text
    an earlier hunk already consumed; ``original`` is never partially
    patched. Declared ranges may overlap as long as the located regions do
    not. The result uses ``\\n`` terminators regardless of the input's
    convention.
    """
    if fuzz < 0:
        raise ValueError("fuzz must be a non-negative integer")

    target, trailing_newline = split_lines(original)

    output: list[str] = []
    cursor = 0
    drift = 0
    for hunk_index, hunk in enumerate(hunks):
        base = _expected_index(hunk)
        expected = base + drift
        placement = _locate(target, hunk, expected, fuzz, cursor)
        if placement is None:
            earlier = _locate(target, hunk, expected, fuzz, 0) if cursor else None
            if earlier is not None:
                raise OverlappingHunks(
                    f"Hunk #{hunk_index + 1} ({hunk.header}) only matches at line {earlier.start + 1}, "
                    f"inside the region of the previous hunk (ends at line {cursor}).",
                    details={"hunk_index": hunk_index, "start": earlier.start, "previous_end": cursor},
                )
            # An insertion's expected index already names the line it follows.
            expected_line = expected if hunk.old_length == 0 else expected + 1
            raise HunkNotFound(
                hunk_index,
                f"Hunk #{hunk_index + 1} ({hunk.header}) does not match the target"
                + (f" within fuzz {fuzz}." if fuzz else "."),
                details={"header": hunk.header, "fuzz": fuzz, "expected_line": expected_line},
            )

        offset = placement.start - placement.lead - base
        if offset != drift or placement.lead or placement.tail:
            LOGGER.info(
                "Hunk #%d placed at line %d (offset %+d, context trimmed %d/%d)",
                hunk_index + 1,
                placement.start + 1,
                offset,
                placement.lead,
                placement.tail,
            )
            emit_event(
                "hunk.fuzzed",
                hunk_index=hunk_index,
                line=placement.start + 1,
                offset=offset,
                lead_trimmed=placement.lead,
                tail_trimmed=placement.tail,
            )
        drift = offset

        output.extend(target[cursor:placement.start])
        position = placement.start
        for line in placement.body:
            if line.kind is LineKind.CONTEXT:
                output.append(target[position])
                position += 1
            elif line.kind is LineKind.REMOVED:
                position += 1
            elif line.kind is LineKind.ADDED:
                output.append(line.text)
        cursor = position

        if cursor == len(target) and not placement.tail:
            trailing_newline = not hunk.new_missing_newline

    output.extend(target[cursor:])
    return join_lines(output, trailing_newline)


__all__ = ["apply_hunks"]
