"""Preview and apply a parsed multi-file diff through a content provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Protocol, Sequence

from .diff.apply import apply_hunks
from .diff.parser import clean_diff_text, parse_patch
from .diff.reconstruct import reconstruct
from .errors import PatchError, TargetIsNotAFile, TargetNotFound
from .structured import FilePatch, PatchSet, SectionError
from .telemetry import emit_event

if TYPE_CHECKING:
    from .config import PatchConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_FUZZ = 2


class ResolutionKind(str, Enum):
    """How a target path resolved against the provider's storage."""

    UNIQUE = "unique"
    MULTIPLE = "multiple"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class Resolution:
    """Result of asking a provider where a patch target lives."""

    kind: ResolutionKind
    location: Any = None
    candidates: tuple[Any, ...] = ()

    @classmethod
    def unique(cls, location: Any) -> "Resolution":
        return cls(ResolutionKind.UNIQUE, location=location)

    @classmethod
    def multiple(cls, candidates: Sequence[Any]) -> "Resolution":
        return cls(ResolutionKind.MULTIPLE, candidates=tuple(candidates))

    @classmethod
    def not_found(cls) -> "Resolution":
        return cls(ResolutionKind.NOT_FOUND)


class ContentProvider(Protocol):
    """Storage the session reads targets from and writes results to."""

    def resolve(self, path: str, *, creating: bool = False) -> Resolution: ...

    def exists(self, location: Any) -> bool: ...

    def is_file(self, location: Any) -> bool: ...

    def read(self, location: Any) -> str: ...

    def write(self, location: Any, content: str) -> None: ...

    def delete(self, location: Any) -> None: ...


# Picks a location among candidates (empty when nothing matched); ``None`` cancels.
TargetSelector = Callable[[str, Sequence[Any]], Any]
# Decides whether a creation patch may replace an existing file.
OverwriteConfirmer = Callable[[FilePatch, Any], bool]


class OutcomeStatus(str, Enum):
    """Per-file result of a session apply."""

    APPLIED = "applied"
    DELETED = "deleted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True)
class ApplyOutcome:
    """What happened to one file section of a diff."""

    index: int
    path: str
    status: OutcomeStatus
    change_type: str = "modify"
    content: str | None = None
    reason: str = ""
    warnings: tuple[str, ...] = ()
    location: Any = None
    patch: FilePatch | None = None
    error: Exception | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "path": self.path,
            "status": self.status.value,
            "change_type": self.change_type,
            "reason": self.reason,
            "warnings": list(self.warnings),
            "location": str(self.location) if self.location is not None else None,
        }


@dataclass(slots=True)
class SessionReport:
    """Ordered per-file outcomes plus aggregate counts."""

    outcomes: list[ApplyOutcome] = field(default_factory=list)
    dry_run: bool = False

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def applied(self) -> int:
        return self._count(OutcomeStatus.APPLIED)

    @property
    def deleted(self) -> int:
        return self._count(OutcomeStatus.DELETED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def summary(self) -> str:
        prefix = "Dry run finished." if self.dry_run else "Patch application finished."
        return (
            f"{prefix} Applied: {self.applied}, Deleted: {self.deleted}, "
            f"Skipped/Cancelled: {self.skipped}, Errors: {self.failed}."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "counts": {
                "applied": self.applied,
                "deleted": self.deleted,
                "skipped": self.skipped,
                "failed": self.failed,
            },
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


@dataclass(frozen=True, slots=True)
class FilePreview:
    """Reconstructed before/after text for one file patch."""

    patch: FilePatch
    original: str = ""
    modified: str = ""
    skipped: str | None = None

    @property
    def title(self) -> str:
        return f"Diff: {self.patch.display_path}"


class _SelectionCancelled(Exception):
    """The selector declined to choose a target."""


class _OverwriteDeclined(Exception):
    """A creation patch targets an existing file that may not be replaced."""


class PatchSession:
    """Drive preview and apply for every file of a diff.

    The session keeps no state between calls: each call receives the diff
    (raw or parsed) explicitly, and each file is processed independently so
    one failure never stops the remaining files.
    """

    def __init__(
        self,
        provider: ContentProvider,
        *,
        fuzz: int = DEFAULT_FUZZ,
        strict: bool = False,
        overwrite_existing: bool = False,
        selector: TargetSelector | None = None,
        confirm_overwrite: OverwriteConfirmer | None = None,
    ) -> None:
        if fuzz < 0:
            raise ValueError("fuzz must be a non-negative integer")
        self.provider = provider
        self.fuzz = fuzz
        self.strict = strict
        self.overwrite_existing = overwrite_existing
        self.selector = selector
        self.confirm_overwrite = confirm_overwrite

    @classmethod
    def from_config(cls, config: "PatchConfig", provider: ContentProvider, **overrides: Any) -> "PatchSession":
        """Build a session from the ``apply`` section of a :class:`PatchConfig`."""
        options: dict[str, Any] = {
            "fuzz": config.apply.fuzz,
            "strict": config.apply.strict_counts,
            "overwrite_existing": config.apply.overwrite_existing,
        }
        options.update({key: value for key, value in overrides.items() if value is not None})
        return cls(provider, **options)

    def parse(self, raw_text: str) -> PatchSet:
        """Strip code fences from ``raw_text`` and parse it."""
        return parse_patch(clean_diff_text(raw_text), strict=self.strict)

    # Preview ---------------------------------------------------------------

    def preview(self, patch_set: PatchSet) -> list[FilePreview]:
        """Reconstruct each file's before/after text without reading files."""
        previews: list[FilePreview] = []
        for patch in patch_set.files:
            if not patch.hunks:
                LOGGER.info("Skipping preview for %s: no hunks", patch.display_path)
                previews.append(FilePreview(patch=patch, skipped="no changes"))
                continue
            view = reconstruct(patch.hunks)
            previews.append(FilePreview(patch=patch, original=view.original, modified=view.modified))
        return previews

    def preview_text(self, raw_text: str) -> list[FilePreview]:
        return self.preview(self.parse(raw_text))

    # Apply -----------------------------------------------------------------

    def apply_text(self, raw_text: str, *, dry_run: bool = False) -> SessionReport:
        return self.apply_all(self.parse(raw_text), dry_run=dry_run)

    def apply_all(self, patch_set: PatchSet, *, dry_run: bool = False) -> SessionReport:
        """Apply every file patch in order and report per-file outcomes.

        Sections that failed to parse are reported as failures in their
        original position. With ``dry_run`` nothing is written or deleted.
        """
        entries: list[tuple[int, FilePatch | SectionError]] = [
            *((patch.index, patch) for patch in patch_set.files),
            *((error.index, error) for error in patch_set.errors),
        ]
        entries.sort(key=lambda item: item[0])

        report = SessionReport(dry_run=dry_run)
        for _, entry in entries:
            if isinstance(entry, SectionError):
                outcome = ApplyOutcome(
                    index=entry.index,
                    path=entry.display_path,
                    status=OutcomeStatus.FAILED,
                    reason=f"parse error: {entry.message}",
                    error=entry.error,
                )
            else:
                outcome = self._apply_file(entry, dry_run=dry_run)
            self._record(outcome)
            report.outcomes.append(outcome)

        emit_event(
            "session.finished",
            dry_run=dry_run,
            applied=report.applied,
            deleted=report.deleted,
            skipped=report.skipped,
            failed=report.failed,
        )
        return report

    def _record(self, outcome: ApplyOutcome) -> None:
        if outcome.status is OutcomeStatus.FAILED:
            LOGGER.warning("Failed to apply patch for %s: %s", outcome.path, outcome.reason)
        elif outcome.status is OutcomeStatus.SKIPPED:
            LOGGER.info("Skipped %s: %s", outcome.path, outcome.reason)
        for warning in outcome.warnings:
            LOGGER.warning("%s: %s", outcome.path, warning)
        emit_event(
            f"file.{outcome.status.value}",
            index=outcome.index,
            path=outcome.path,
            change_type=outcome.change_type,
            reason=outcome.reason,
            warnings=outcome.warnings,
        )

    def _outcome(self, patch: FilePatch, status: OutcomeStatus, **fields: Any) -> ApplyOutcome:
        fields.setdefault("warnings", patch.warnings)
        return ApplyOutcome(
            index=patch.index,
            path=patch.display_path,
            status=status,
            change_type=patch.change_type,
            patch=patch,
            **fields,
        )

    def _resolve(self, patch: FilePatch) -> Any:
        path = patch.target_path
        resolution = self.provider.resolve(path, creating=patch.is_creation)
        if resolution.kind is ResolutionKind.UNIQUE:
            return resolution.location

        if self.selector is not None:
            choice = self.selector(path, resolution.candidates)
            if choice is None:
                raise _SelectionCancelled(path)
            return choice

        if resolution.kind is ResolutionKind.MULTIPLE:
            shown = ", ".join(str(candidate) for candidate in resolution.candidates)
            raise TargetNotFound(
                f"Ambiguous target '{path}': {len(resolution.candidates)} candidates ({shown}).",
                details={"path": path, "candidates": list(resolution.candidates)},
            )
        raise TargetNotFound(f"Target file '{path}' not found.", details={"path": path})

    def _apply_file(self, patch: FilePatch, *, dry_run: bool) -> ApplyOutcome:
        if not patch.hunks:
            return self._outcome(patch, OutcomeStatus.SKIPPED, reason="no changes")
        if not patch.target_path:
            return self._outcome(
                patch,
                OutcomeStatus.FAILED,
                reason=f"could not determine a target path (old={patch.old_path!r}, new={patch.new_path!r})",
            )

        try:
            location = self._resolve(patch)
        except _SelectionCancelled:
            return self._outcome(patch, OutcomeStatus.SKIPPED, reason="cancelled")
        except PatchError as error:
            return self._outcome(patch, OutcomeStatus.FAILED, reason=str(error), error=error)

        try:
            original = self._load_original(patch, location)
        except _OverwriteDeclined:
            return self._outcome(patch, OutcomeStatus.SKIPPED, reason="target exists", location=location)
        except PatchError as error:
            return self._outcome(patch, OutcomeStatus.FAILED, reason=str(error), location=location, error=error)
        except (OSError, UnicodeDecodeError) as error:
            return self._outcome(
                patch, OutcomeStatus.FAILED, reason=f"read failed: {error}", location=location, error=error
            )

        try:
            content = apply_hunks(original, patch.hunks, self.fuzz)
        except PatchError as error:
            return self._outcome(patch, OutcomeStatus.FAILED, reason=str(error), location=location, error=error)

        status = OutcomeStatus.APPLIED
        warnings = patch.warnings
        if patch.is_deletion:
            if content == "":
                status = OutcomeStatus.DELETED
            else:
                warnings = (*warnings, "deletion patch left content behind; file updated instead of deleted")

        if not dry_run:
            try:
                if status is OutcomeStatus.DELETED:
                    self.provider.delete(location)
                else:
                    self.provider.write(location, content)
            except OSError as error:
                return self._outcome(
                    patch, OutcomeStatus.FAILED, reason=f"write failed: {error}", location=location, error=error
                )

        return self._outcome(patch, status, content=content, location=location, warnings=warnings)

    def _load_original(self, patch: FilePatch, location: Any) -> str:
        exists = self.provider.exists(location)
        if exists and not self.provider.is_file(location):
            raise TargetIsNotAFile(f"Target '{location}' is not a regular file.", details={"location": location})

        if patch.is_creation:
            if exists and not self._may_overwrite(patch, location):
                raise _OverwriteDeclined(patch.target_path)
            return ""

        if not exists:
            raise TargetNotFound(f"Target file '{location}' not found.", details={"location": location})
        return self.provider.read(location)

    def _may_overwrite(self, patch: FilePatch, location: Any) -> bool:
        if self.overwrite_existing:
            return True
        if self.confirm_overwrite is not None:
            return bool(self.confirm_overwrite(patch, location))
        return False


__all__ = [
    "ApplyOutcome",
    "ContentProvider",
    "DEFAULT_FUZZ",
    "FilePreview",
    "OutcomeStatus",
    "OverwriteConfirmer",
    "PatchSession",
    "Resolution",
    "ResolutionKind",
    "SessionReport",
    "TargetSelector",
]
