"""Unified diff parsing, application and reconstruction."""

from .apply import apply_hunks
from .hunks import HunkHeader, hunk_end, parse_hunk, parse_hunk_header, read_hunk
from .lines import classify_line, join_lines, normalise_line_endings, split_lines
from .parser import clean_diff_text, parse_patch, render_patch
from .reconstruct import Reconstruction, reconstruct

__all__ = [
    "HunkHeader",
    "Reconstruction",
    "apply_hunks",
    "classify_line",
    "clean_diff_text",
    "hunk_end",
    "join_lines",
    "normalise_line_endings",
    "parse_hunk",
    "parse_hunk_header",
    "parse_patch",
    "read_hunk",
    "reconstruct",
    "render_patch",
    "split_lines",
]
