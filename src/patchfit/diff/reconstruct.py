"""Project hunks into before/after text for previews."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..structured import Hunk
from .lines import join_lines


@dataclass(frozen=True, slots=True)
class Reconstruction:
    """Original and modified text described by a set of hunks."""

    original: str
    modified: str


def reconstruct(hunks: Sequence[Hunk]) -> Reconstruction:
    """Concatenate each side of ``hunks`` without consulting any real file.

    Offsets are not validated: hunks are laid end to end in order.
    """
    original: list[str] = []
    modified: list[str] = []
    for hunk in hunks:
        original.extend(hunk.old_lines)
        modified.extend(hunk.new_lines)

    last = hunks[-1] if hunks else None
    return Reconstruction(
        original=join_lines(original, last is not None and not last.old_missing_newline),
        modified=join_lines(modified, last is not None and not last.new_missing_newline),
    )


__all__ = ["Reconstruction", "reconstruct"]
