from __future__ import annotations

from pathlib import Path

import pytest
import typer

from patchfit.cli import _prompt_overwrite, _prompt_selector
from patchfit.structured import FilePatch
from patchfit.workspace import WorkspaceFiles

MODIFY = "--- a/x.txt\n+++ b/x.txt\n@@ -1,3 +1,3 @@\n a\n-b\n+B\n c\n"
CREATE = "--- /dev/null\n+++ b/docs/new.md\n@@ -0,0 +1 @@\n+# Title\n"


def test_cli_apply_reads_diff_from_stdin(workspace) -> None:
    workspace.write("x.txt", "a\nb\nc\n")

    result = workspace.run_cli("apply", "--yes", stdin=MODIFY + CREATE)

    assert result.returncode == 0, result.stderr
    assert "- x.txt: applied (modify)" in result.stdout
    assert "- docs/new.md: applied (create)" in result.stdout
    assert "Patch application finished. Applied: 2, Deleted: 0, Skipped/Cancelled: 0, Errors: 0." in result.stdout
    assert workspace.read("x.txt") == "a\nB\nc\n"
    assert workspace.read("docs/new.md") == "# Title\n"


def test_cli_apply_reads_diff_file_and_honours_dry_run(workspace) -> None:
    workspace.write("x.txt", "a\nb\nc\n")
    workspace.write("change.diff", MODIFY)

    result = workspace.run_cli("apply", "change.diff", "--dry-run", "--yes")

    assert result.returncode == 0, result.stderr
    assert "Dry run finished." in result.stdout
    assert workspace.read("x.txt") == "a\nb\nc\n"


def test_cli_apply_exits_non_zero_on_failure(workspace) -> None:
    workspace.write("x.txt", "completely\ndifferent\n")

    result = workspace.run_cli("apply", "--yes", "--fuzz", "0", stdin=MODIFY)

    assert result.returncode == 1
    assert "- x.txt: failed (modify)" in result.stdout
    assert "Errors: 1." in result.stdout
    assert workspace.read("x.txt") == "completely\ndifferent\n"


def test_cli_apply_rejects_text_without_file_headers(workspace) -> None:
    result = workspace.run_cli("apply", "--yes", stdin="Sure, here is the fix.\n")

    assert result.returncode == 1
    assert "Could not parse the diff" in result.stdout


def test_cli_check_summarises_sections(workspace) -> None:
    broken = "--- a/y.txt\n+++ b/y.txt\n@@ -x +y @@\n-a\n+b\n"

    result = workspace.run_cli("check", stdin=MODIFY + CREATE + broken)

    assert result.returncode == 1
    assert "- x.txt [modify] 1 hunk" in result.stdout
    assert "- docs/new.md [create] 1 hunk" in result.stdout
    assert "- y.txt [error]" in result.stdout
    assert "Parsed 2 file(s), 2 hunk(s), 1 error(s)." in result.stdout


def test_cli_preview_prints_both_sides(workspace) -> None:
    result = workspace.run_cli("preview", stdin=MODIFY)

    assert result.returncode == 0, result.stderr
    assert result.stdout.splitlines() == [
        "=== Diff: x.txt ===",
        "--- original",
        "a",
        "b",
        "c",
        "+++ modified",
        "a",
        "B",
        "c",
    ]


def test_cli_preview_can_show_one_side(workspace) -> None:
    result = workspace.run_cli("preview", "--side", "modified", stdin=MODIFY)

    assert result.returncode == 0, result.stderr
    assert "--- original" not in result.stdout
    assert "+++ modified" in result.stdout


def test_cli_uses_configured_fuzz(workspace) -> None:
    workspace.write("patchfit.yaml", "apply:\n  fuzz: 0\n")
    workspace.write("x.txt", "\na\nb\nc\n")

    strict = workspace.run_cli("apply", "--yes", stdin=MODIFY)
    assert strict.returncode == 1

    fuzzy = workspace.run_cli("apply", "--yes", "--fuzz", "1", stdin=MODIFY)
    assert fuzzy.returncode == 0, fuzzy.stderr
    assert workspace.read("x.txt") == "\na\nB\nc\n"


def test_cli_reports_invalid_config(workspace) -> None:
    workspace.write("patchfit.yaml", "apply:\n  fuzz: -3\n")

    result = workspace.run_cli("check", stdin=MODIFY)

    assert result.returncode == 1
    assert "Invalid configuration" in result.stdout


def test_cli_init_config_writes_defaults_once(workspace) -> None:
    first = workspace.run_cli("init-config")
    second = workspace.run_cli("init-config")

    assert first.returncode == 0, first.stderr
    assert "fuzz: 2" in workspace.read("patchfit.yaml")
    assert second.returncode == 1
    assert "already exists" in second.stdout


def test_prompt_selector_maps_answers_to_locations(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    files = WorkspaceFiles(tmp_path)
    candidates = [files.root / "a" / "util.py", files.root / "b" / "util.py"]
    answers = iter(["2", "", "c/util.py"])
    monkeypatch.setattr(typer, "prompt", lambda *args, **kwargs: next(answers))

    select = _prompt_selector(files)

    assert select("util.py", candidates) == candidates[1]
    assert select("util.py", candidates) is None
    assert select("util.py", []) == files.root / "c" / "util.py"


def test_prompt_overwrite_returns_confirmation(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    files = WorkspaceFiles(tmp_path)
    questions: list[str] = []

    def answer(text: str, default: bool = False) -> bool:
        questions.append(text)
        return True

    monkeypatch.setattr(typer, "confirm", answer)
    confirm = _prompt_overwrite(files)

    assert confirm(FilePatch(old_path="/dev/null", new_path="b/new.txt"), files.root / "new.txt") is True
    assert questions == ["Target new.txt for new file patch 'new.txt' already exists. Overwrite?"]
