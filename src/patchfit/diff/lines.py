"""Line classification and the text model shared by the engine."""

from __future__ import annotations

from ..errors import MalformedDiffLine
from ..structured import Line, LineKind

_KINDS = {
    " ": LineKind.CONTEXT,
    "+": LineKind.ADDED,
    "-": LineKind.REMOVED,
}


def normalise_line_endings(text: str) -> str:
    """Convert ``\\r\\n`` and lone ``\\r`` terminators to ``\\n``."""
    if not text:
        return ""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def classify_line(raw: str) -> Line:
    """Classify one hunk body line by its leading marker."""
    if raw.startswith("\\"):
        return Line(LineKind.NO_NEWLINE)
    kind = _KINDS.get(raw[:1])
    if kind is None:
        raise MalformedDiffLine(
            f"Unrecognised diff line: {raw!r}",
            details={"line": raw},
        )
    return Line(kind, normalise_line_endings(raw[1:]).rstrip("\n"))


def split_lines(text: str) -> tuple[list[str], bool]:
    """Split content into lines and report whether it ends with a newline."""
    text = normalise_line_endings(text)
    if not text:
        return [], False
    if text.endswith("\n"):
        return text[:-1].split("\n"), True
    return text.split("\n"), False


def join_lines(lines: list[str], trailing_newline: bool) -> str:
    """Inverse of :func:`split_lines`; empty input always yields ``""``."""
    if not lines:
        return ""
    text = "\n".join(lines)
    return text + "\n" if trailing_newline else text
