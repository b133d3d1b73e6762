"""CLI commands for previewing and applying unified diffs."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import typer

from .config import DEFAULT_CONFIG_NAME, PatchConfig, load_config, write_config
from .errors import ConfigError, NoPatchesFound
from .session import FilePreview, OutcomeStatus, OverwriteConfirmer, PatchSession, SessionReport, TargetSelector
from .structured import FilePatch, PatchSet
from .telemetry import configure_logging
from .workspace import WorkspaceFiles

APP_HELP = "Preview and apply unified diffs with bounded fuzz."

app = typer.Typer(help=APP_HELP)

_SIDES = ("both", "original", "modified")


def _read_diff(source: str) -> str:
    """Read diff text from a file path or ``-`` for stdin."""
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.is_file():
        raise typer.BadParameter(f"Diff file not found: {path}", param_hint="DIFF")
    return path.read_text(encoding="utf-8")


def _load(config: str) -> tuple[Path, PatchConfig]:
    config_path = Path(config)
    try:
        loaded = load_config(config_path)
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error
    configure_logging(loaded.logging.level)
    return config_path, loaded


def _parse_or_exit(session: PatchSession, raw_text: str) -> PatchSet:
    try:
        return session.parse(raw_text)
    except NoPatchesFound as error:
        typer.echo(f"Could not parse the diff: {error}")
        raise typer.Exit(code=1) from error


def _describe_patch(patch: FilePatch) -> str:
    hunk_label = "hunk" if len(patch.hunks) == 1 else "hunks"
    return f"{patch.display_path} [{patch.change_type}] {len(patch.hunks)} {hunk_label}"


def _render_previews(previews: Sequence[FilePreview], side: str) -> None:
    for preview in previews:
        if preview.skipped:
            typer.echo(f"Skipping {preview.patch.display_path}: {preview.skipped}")
            continue
        typer.echo(f"=== {preview.title} ===")
        if side in ("both", "original"):
            typer.echo("--- original")
            typer.echo(preview.original, nl=False)
            if preview.original and not preview.original.endswith("\n"):
                typer.echo()
        if side in ("both", "modified"):
            typer.echo("+++ modified")
            typer.echo(preview.modified, nl=False)
            if preview.modified and not preview.modified.endswith("\n"):
                typer.echo()


def _render_report(report: SessionReport, workspace: WorkspaceFiles) -> None:
    for outcome in report.outcomes:
        label = outcome.path
        if outcome.location is not None:
            label = workspace.relative_label(outcome.location)
        typer.echo(f"- {label}: {outcome.status.value} ({outcome.change_type})")
        if outcome.reason:
            typer.echo(f"    reason: {outcome.reason}")
        for warning in outcome.warnings:
            typer.echo(f"    ! {warning}")
    typer.echo(report.summary())


def _prompt_selector(workspace: WorkspaceFiles) -> TargetSelector:
    """Build a selector that asks the user to disambiguate a target."""

    def select(path: str, candidates: Sequence[Path]) -> Optional[Path]:
        if candidates:
            typer.echo(f"Multiple files found for '{path}':")
            for number, candidate in enumerate(candidates, start=1):
                typer.echo(f"  {number}. {workspace.relative_label(candidate)}")
            prompt = "Pick a number or enter a path (blank cancels)"
        else:
            prompt = f"'{path}' was not found. Enter a path (blank cancels)"
        choice = typer.prompt(prompt, default="", show_default=False).strip()
        if not choice:
            return None
        if choice.isdigit() and 1 <= int(choice) <= len(candidates):
            return candidates[int(choice) - 1]
        return workspace.resolve(choice, creating=True).location

    return select


def _prompt_overwrite(workspace: WorkspaceFiles) -> OverwriteConfirmer:
    def confirm(patch: FilePatch, location: Any) -> bool:
        label = workspace.relative_label(location)
        return typer.confirm(
            f"Target {label} for new file patch '{patch.display_path}' already exists. Overwrite?",
            default=False,
        )

    return confirm


@app.command()
def preview(
    diff: str = typer.Argument("-", help="Diff file to read, or '-' for stdin."),
    side: str = typer.Option("both", "--side", "-s", help="Which side to print: both, original or modified."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Path to the configuration file."),
) -> None:
    """Print the before/after text each file patch describes."""
    if side not in _SIDES:
        raise typer.BadParameter(f"Expected one of {', '.join(_SIDES)}.", param_hint="--side")
    _, settings = _load(config)
    session = PatchSession.from_config(settings, WorkspaceFiles.from_config(settings))
    patch_set = _parse_or_exit(session, _read_diff(diff))
    _render_previews(session.preview(patch_set), side)
    for error in patch_set.errors:
        typer.echo(f"Error in section for {error.display_path}: {error.message}")
    if patch_set.errors:
        raise typer.Exit(code=1)


@app.command()
def check(
    diff: str = typer.Argument("-", help="Diff file to read, or '-' for stdin."),
    strict: bool = typer.Option(False, "--strict", help="Treat hunk line-count mismatches as errors."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Path to the configuration file."),
) -> None:
    """Parse a diff and report its file sections without touching files."""
    _, settings = _load(config)
    session = PatchSession.from_config(settings, WorkspaceFiles.from_config(settings), strict=strict or None)
    patch_set = _parse_or_exit(session, _read_diff(diff))
    for patch in patch_set.files:
        typer.echo(f"- {_describe_patch(patch)}")
        for warning in patch.warnings:
            typer.echo(f"    ! {warning}")
    for error in patch_set.errors:
        typer.echo(f"- {error.display_path} [error] {error.message}")
    typer.echo(
        f"Parsed {len(patch_set.files)} file(s), {patch_set.total_hunks()} hunk(s), "
        f"{len(patch_set.errors)} error(s)."
    )
    if patch_set.errors:
        raise typer.Exit(code=1)


@app.command()
def apply(
    diff: str = typer.Argument("-", help="Diff file to read, or '-' for stdin."),
    root: Optional[str] = typer.Option(None, "--root", "-r", help="Workspace root (defaults to workspace.root)."),
    fuzz: Optional[int] = typer.Option(None, "--fuzz", "-f", min=0, help="Context lines of drift tolerated per hunk."),
    strict: bool = typer.Option(False, "--strict", help="Treat hunk line-count mismatches as errors."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report outcomes without writing files."),
    force: bool = typer.Option(False, "--force", help="Overwrite existing files targeted by creation patches."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Never prompt; ambiguous targets fail."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Path to the configuration file."),
) -> None:
    """Apply every file patch of a diff to the workspace."""
    config_path, settings = _load(config)
    workspace_root = Path(root).resolve() if root else settings.resolve_root(config_path)
    if not workspace_root.is_dir():
        raise typer.BadParameter(f"Workspace root is not a directory: {workspace_root}", param_hint="--root")
    workspace = WorkspaceFiles.from_config(settings, root=workspace_root)

    session = PatchSession.from_config(
        settings,
        workspace,
        fuzz=fuzz,
        strict=strict or None,
        overwrite_existing=force or None,
        selector=None if yes else _prompt_selector(workspace),
        confirm_overwrite=None if yes else _prompt_overwrite(workspace),
    )
    patch_set = _parse_or_exit(session, _read_diff(diff))
    report = session.apply_all(patch_set, dry_run=dry_run)
    _render_report(report, workspace)

    if not report.ok:
        raise typer.Exit(code=1)
    if not any(outcome.status in (OutcomeStatus.APPLIED, OutcomeStatus.DELETED) for outcome in report.outcomes):
        typer.echo("No patches were applied.")


@app.command("init-config")
def init_config(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Where to write the configuration file."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing configuration file."),
) -> None:
    """Write the default configuration file."""
    config_path = Path(config)
    if config_path.exists() and not overwrite:
        typer.echo(f"Configuration already exists at {config_path}; use --overwrite to replace it.")
        raise typer.Exit(code=1)
    write_config(config_path)
    typer.echo(f"Created configuration at {config_path}.")


if __name__ == "__main__":
    app()
