"""Filesystem-backed content provider rooted at a workspace directory."""

from __future__ import annotations

import logging
import os
import tempfile
from fnmatch import fnmatch
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Sequence

from .session import Resolution

if TYPE_CHECKING:
    from .config import PatchConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_EXCLUDE: tuple[str, ...] = ("**/node_modules/**", "**/.git/**")
DEFAULT_MAX_CANDIDATES = 5


def _detect_eol(data: bytes) -> str:
    """Return the dominant line terminator of ``data``; ``\\n`` by default."""
    crlf = data.count(b"\r\n")
    lf = data.count(b"\n")
    if crlf > 0 and crlf >= (lf - crlf):
        return "\r\n"
    return "\n"


class WorkspaceFiles:
    """Resolve, read and write patch targets below ``root``.

    Resolution tries the exact relative path first and then searches for the
    basename anywhere in the tree, skipping ``exclude`` globs and keeping at
    most ``max_candidates`` matches. Paths escaping the root never resolve.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        exclude: Sequence[str] = DEFAULT_EXCLUDE,
        preserve_line_endings: bool = True,
    ) -> None:
        self.root = Path(root).resolve()
        self.max_candidates = max_candidates
        self.exclude = tuple(exclude)
        self.preserve_line_endings = preserve_line_endings

    @classmethod
    def from_config(cls, config: "PatchConfig", *, root: Path | str | None = None) -> "WorkspaceFiles":
        workspace = config.workspace
        return cls(
            root if root is not None else workspace.root,
            max_candidates=workspace.max_candidates,
            exclude=workspace.exclude,
            preserve_line_endings=workspace.preserve_line_endings,
        )

    def _relative(self, path: str) -> PurePosixPath | None:
        """Normalise ``path`` to a root-relative path, or None when it escapes."""
        raw = path.strip().replace("\\", "/")
        if not raw:
            return None
        candidate = PurePosixPath(raw)
        if candidate.is_absolute():
            try:
                candidate = PurePosixPath(Path(raw).resolve().relative_to(self.root).as_posix())
            except ValueError:
                LOGGER.warning("Ignoring absolute path outside the workspace: %s", path)
                return None
        if any(part == ".." for part in candidate.parts):
            LOGGER.warning("Path escaping detected in patch: %s", path)
            return None
        if candidate.parts and candidate.parts[0] == ".git":
            return None
        return candidate

    def _excluded(self, path: Path) -> bool:
        relative = "/" + path.relative_to(self.root).as_posix()
        return any(fnmatch(relative, pattern) for pattern in self.exclude)

    def _search(self, name: str) -> list[Path]:
        matches: list[Path] = []
        for candidate in sorted(self.root.rglob(name)):
            if not candidate.is_file() or self._excluded(candidate):
                continue
            matches.append(candidate)
            if len(matches) >= self.max_candidates:
                break
        return matches

    def resolve(self, path: str, *, creating: bool = False) -> Resolution:
        relative = self._relative(path)
        if relative is None:
            return Resolution.not_found()
        direct = self.root.joinpath(*relative.parts)
        if creating or direct.exists():
            return Resolution.unique(direct)

        matches = self._search(relative.name)
        LOGGER.debug("Basename search for %s found %d candidate(s)", relative.name, len(matches))
        if len(matches) == 1:
            return Resolution.unique(matches[0])
        if matches:
            return Resolution.multiple(matches)
        return Resolution.not_found()

    def exists(self, location: Path) -> bool:
        return location.exists()

    def is_file(self, location: Path) -> bool:
        return location.is_file()

    def read(self, location: Path) -> str:
        return location.read_bytes().decode("utf-8")

    def write(self, location: Path, content: str) -> None:
        """Write ``content`` atomically, keeping a CRLF file's convention."""
        eol = "\n"
        if self.preserve_line_endings and location.is_file():
            eol = _detect_eol(location.read_bytes())
        location.parent.mkdir(parents=True, exist_ok=True)
        data = content.replace("\n", eol) if eol != "\n" else content

        handle, temp_name = tempfile.mkstemp(prefix=f".{location.name}.", suffix=".tmp", dir=location.parent)
        try:
            with os.fdopen(handle, "w", encoding="utf-8", newline="") as stream:
                stream.write(data)
            os.replace(temp_name, location)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def delete(self, location: Path) -> None:
        location.unlink()

    def relative_label(self, location: Path) -> str:
        """Return ``location`` relative to the root for display."""
        try:
            return location.relative_to(self.root).as_posix()
        except ValueError:
            return str(location)


__all__ = ["DEFAULT_EXCLUDE", "DEFAULT_MAX_CANDIDATES", "WorkspaceFiles"]
