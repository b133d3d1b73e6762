from __future__ import annotations

import textwrap

import pytest

from patchfit.diff.parser import clean_diff_text, parse_patch, render_patch
from patchfit.errors import HunkLineCountMismatch, MalformedFileHeader, MalformedHunkHeader, NoPatchesFound
from patchfit.structured import PatchSet


def _diff(text: str) -> str:
    return textwrap.dedent(text).strip("\n")


def test_parse_patch_reads_paths_and_hunks() -> None:
    patch_set = parse_patch(
        _diff(
            """
            --- a/src/app.py\t2024-01-01 10:00:00
            +++ b/src/app.py\t2024-01-02 10:00:00
            @@ -1,3 +1,3 @@ def main():
             a
            -b
            +B
             c
            """
        )
    )

    assert len(patch_set) == 1
    patch = patch_set.files[0]
    assert patch.old_path == "a/src/app.py"
    assert patch.new_path == "b/src/app.py"
    assert patch.display_path == "src/app.py"
    assert patch.change_type == "modify"
    assert len(patch.hunks) == 1
    assert patch.hunks[0].section == "def main():"


def test_parse_patch_detects_creation_and_deletion_sentinels() -> None:
    patch_set = parse_patch(
        _diff(
            """
            --- /dev/null
            +++ b/newfile.txt
            @@ -0,0 +1,2 @@
            +x
            +y
            --- a/old.txt
            +++ b/dev/null
            @@ -1 +0,0 @@
            -gone
            """
        )
    )

    created, deleted = patch_set.files
    assert created.is_creation and not created.is_deletion
    assert created.target_path == "newfile.txt"
    assert deleted.is_deletion and not deleted.is_creation
    assert deleted.target_path == "old.txt"
    assert deleted.change_type == "delete"


def test_parse_patch_without_headers_raises() -> None:
    with pytest.raises(NoPatchesFound):
        parse_patch("Here is the change you asked for:\n@@ -1 +1 @@\n-a\n+b\n")


def test_parse_patch_isolates_malformed_sections() -> None:
    patch_set = parse_patch(
        _diff(
            """
            --- a/one.txt
            +++ b/one.txt
            @@ -1 +1 @@
            -a
            +b
            --- a/two.txt
            +++ b/two.txt
            @@ -x +y @@
            -a
            +b
            --- a/three.txt
            +++ b/three.txt
            @@ -1 +1 @@
            -c
            +d
            """
        )
    )

    assert [patch.display_path for patch in patch_set.files] == ["one.txt", "three.txt"]
    assert [patch.index for patch in patch_set.files] == [0, 2]
    assert len(patch_set.errors) == 1
    error = patch_set.errors[0]
    assert error.index == 1
    assert error.display_path == "two.txt"
    assert isinstance(error.error, MalformedHunkHeader)


def test_parse_patch_rejects_double_null_header() -> None:
    patch_set = parse_patch("--- /dev/null\n+++ /dev/null\n@@ -0,0 +1 @@\n+x\n")

    assert patch_set.files == ()
    assert isinstance(patch_set.errors[0].error, MalformedFileHeader)


def test_parse_patch_ignores_git_preamble_and_commentary() -> None:
    patch_set = parse_patch(
        _diff(
            """
            diff --git a/x.txt b/x.txt
            index 1111111..2222222 100644
            --- a/x.txt
            +++ b/x.txt
            @@ -1,2 +1,2 @@
             keep
            -old
            +new

            This replaces the old value.
            diff --git a/y.txt b/y.txt
            new file mode 100644
            --- /dev/null
            +++ b/y.txt
            @@ -0,0 +1 @@
            +hello
            """
        )
    )

    assert [patch.display_path for patch in patch_set.files] == ["x.txt", "y.txt"]
    assert patch_set.files[0].hunks[0].new_lines == ["keep", "new"]
    assert patch_set.errors == ()


def test_parse_patch_keeps_zero_hunk_sections() -> None:
    patch_set = parse_patch("--- a/empty.txt\n+++ b/empty.txt\n--- a/x\n+++ b/x\n@@ -1 +1 @@\n-a\n+b\n")

    assert [len(patch.hunks) for patch in patch_set.files] == [0, 1]


def test_parse_patch_collects_count_warnings_unless_strict() -> None:
    text = "--- a/x\n+++ b/x\n@@ -1,2 +1,2 @@\n a\n-b\n+B\n c\n"

    lenient = parse_patch(text)
    assert lenient.files[0].hunks[0].old_length == 3
    assert len(lenient.files[0].warnings) == 1

    strict = parse_patch(text, strict=True)
    assert strict.files == ()
    assert isinstance(strict.errors[0].error, HunkLineCountMismatch)


def test_parse_patch_normalises_crlf_input() -> None:
    patch_set = parse_patch("--- a/x\r\n+++ b/x\r\n@@ -1 +1 @@\r\n-a\r\n+b\r\n")

    assert patch_set.files[0].hunks[0].old_lines == ["a"]
    assert patch_set.files[0].hunks[0].new_lines == ["b"]


def test_clean_diff_text_strips_code_fences() -> None:
    raw = "\n```diff\n--- a/x\n+++ b/x\n@@ -1 +1 @@\n-a\n+b\n```\n"

    cleaned = clean_diff_text(raw)

    assert cleaned.startswith("--- a/x")
    assert cleaned.endswith("+b")


def test_clean_diff_text_leaves_plain_diff_alone() -> None:
    raw = "--- a/x\n+++ b/x\n@@ -1 +1 @@\n-a\n+b"

    assert clean_diff_text(raw) == raw


def test_render_patch_round_trips_through_parser() -> None:
    text = _diff(
        """
        --- a/src/app.py\t2024-01-01
        +++ b/src/app.py
        @@ -1,4 +1,4 @@ def main():
         a
        -b
        +B
         c
         d
        @@ -10 +10,2 @@
         j
        +k
        --- a/notes.txt
        +++ b/notes.txt
        @@ -1 +1 @@
        -old
        \\ No newline at end of file
        +new
        \\ No newline at end of file
        """
    )

    parsed = parse_patch(text)
    rendered = render_patch(parsed)
    reparsed = parse_patch(rendered)

    assert reparsed == parsed
    assert rendered.splitlines()[0] == "--- a/src/app.py"
    assert "@@ -10 +10,2 @@" in rendered


def test_parse_patch_reads_double_dash_lines_inside_hunk_body() -> None:
    patch_set = parse_patch(
        "--- a/q.sql\n+++ b/q.sql\n@@ -1,2 +1,2 @@\n select 1;\n--- old comment\n+++ new comment\n"
    )

    assert [patch.display_path for patch in patch_set.files] == ["q.sql"]
    hunk = patch_set.files[0].hunks[0]
    assert hunk.old_lines == ["select 1;", "-- old comment"]
    assert hunk.new_lines == ["select 1;", "++ new comment"]
    assert hunk.warnings == ()


def test_parse_patch_splits_at_header_once_hunk_counts_are_met() -> None:
    patch_set = parse_patch(
        "--- a/q.sql\n+++ b/q.sql\n@@ -1 +1 @@\n--- old\n+++ new\n"
        "--- a/next.sql\n+++ b/next.sql\n@@ -1 +1 @@\n-a\n+b\n"
    )

    assert [patch.display_path for patch in patch_set.files] == ["q.sql", "next.sql"]
    assert patch_set.files[0].hunks[0].old_lines == ["-- old"]
    assert patch_set.files[1].hunks[0].new_lines == ["b"]


def test_empty_patch_set_defaults() -> None:
    empty = PatchSet()

    assert (empty.files, empty.errors, len(empty), empty.total_hunks()) == ((), (), 0, 0)
    assert render_patch(empty) == ""
