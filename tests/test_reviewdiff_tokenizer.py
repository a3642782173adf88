from __future__ import annotations

import pytest

from pkg.reviewdiff import ChangeKind, parse_header_paths, tokenize_diff

MODIFIED = (
    "diff --git a/src/app.py b/src/app.py\n"
    "index 1111111..2222222 100644\n"
    "--- a/src/app.py\n"
    "+++ b/src/app.py\n"
    "@@ -1,3 +1,3 @@\n"
    " import os\n"
    "-x = 1\n"
    "+x = 2\n"
    " print(x)\n"
)

ADDED = (
    "diff --git a/new.txt b/new.txt\n"
    "new file mode 100644\n"
    "index 0000000..3333333\n"
    "--- /dev/null\n"
    "+++ b/new.txt\n"
    "@@ -0,0 +1,2 @@\n"
    "+hello\n"
    "+world\n"
)

DELETED = (
    "diff --git a/old.txt b/old.txt\n"
    "deleted file mode 100644\n"
    "index 4444444..0000000\n"
    "--- a/old.txt\n"
    "+++ /dev/null\n"
    "@@ -1,2 +0,0 @@\n"
    "-bye\n"
    "-now\n"
)

RENAMED = (
    "diff --git a/lib/before.py b/lib/after.py\n"
    "similarity index 90%\n"
    "rename from lib/before.py\n"
    "rename to lib/after.py\n"
    "index 5555555..6666666 100644\n"
    "--- a/lib/before.py\n"
    "+++ b/lib/after.py\n"
    "@@ -1,2 +1,2 @@\n"
    "-a = 1\n"
    "+a = 2\n"
    " b = 3\n"
)

BINARY = (
    "diff --git a/logo.png b/logo.png\n"
    "index 7777777..8888888 100644\n"
    "Binary files a/logo.png and b/logo.png differ\n"
)


def test_splits_one_block_per_file_in_order() -> None:
    blocks = tokenize_diff(MODIFIED + ADDED + DELETED)

    assert [b.new_path for b in blocks] == ["src/app.py", "new.txt", "old.txt"]
    assert blocks[0].raw_text == MODIFIED
    assert blocks[1].raw_text == ADDED
    assert blocks[2].raw_text == DELETED


@pytest.mark.parametrize(
    "text",
    [
        MODIFIED + ADDED + DELETED + RENAMED + BINARY,
        MODIFIED.rstrip("\n"),
        MODIFIED.replace("\n", "\r\n") + ADDED,
        ADDED + "@@ -5,1 +5,1 @@ truncated mid\n+li",
    ],
)
def test_blocks_reconstruct_input_exactly(text: str) -> None:
    blocks = tokenize_diff(text)
    assert blocks
    assert "".join(b.raw_text for b in blocks) == text


def test_classifies_change_kinds() -> None:
    blocks = tokenize_diff(MODIFIED + ADDED + DELETED + RENAMED + BINARY)

    assert [b.change_kind for b in blocks] == [
        ChangeKind.MODIFIED,
        ChangeKind.ADDED,
        ChangeKind.DELETED,
        ChangeKind.RENAMED,
        ChangeKind.MODIFIED,
    ]
    assert [b.is_binary for b in blocks] == [False, False, False, False, True]


def test_git_binary_patch_marker_is_binary() -> None:
    text = (
        "diff --git a/font.woff b/font.woff\n"
        "new file mode 100644\n"
        "index 0000000..9999999\n"
        "GIT binary patch\n"
        "literal 12\n"
        "zcmZ?wbhEHbQ\n"
    )
    [block] = tokenize_diff(text)
    assert block.is_binary
    assert block.change_kind is ChangeKind.ADDED


def test_rename_paths_come_from_rename_metadata() -> None:
    [block] = tokenize_diff(RENAMED)
    assert block.old_path == "lib/before.py"
    assert block.new_path == "lib/after.py"


def test_paths_with_spaces() -> None:
    text = (
        "diff --git a/docs/my notes b/x.md b/docs/my notes b/x.md\n"
        "index 1..2 100644\n"
        "--- a/docs/my notes b/x.md\n"
        "+++ b/docs/my notes b/x.md\n"
        "@@ -1 +1 @@\n"
        "-a\n"
        "+b\n"
    )
    [block] = tokenize_diff(text)
    assert block.old_path == "docs/my notes b/x.md"
    assert block.new_path == "docs/my notes b/x.md"


def test_header_paths_with_spaces_without_markers() -> None:
    assert parse_header_paths("diff --git a/My File.txt b/My File.txt") == ("My File.txt", "My File.txt")
    # Differing halves fall back to the greedy two-path match.
    assert parse_header_paths("diff --git a/old name.txt b/new name.txt") == ("old name.txt", "new name.txt")


def test_quoted_header_paths_are_unquoted() -> None:
    header = 'diff --git "a/caf\\303\\251.txt" "b/caf\\303\\251.txt"'
    assert parse_header_paths(header) == ("café.txt", "café.txt")


def test_malformed_header_yields_empty_paths() -> None:
    [block] = tokenize_diff("diff --git nonsense\n@@ -1 +1 @@\n+x\n")
    assert block.old_path == ""
    assert block.new_path == ""
    assert block.change_kind is ChangeKind.MODIFIED


def test_empty_input_yields_no_blocks() -> None:
    assert tokenize_diff("") == []
    assert tokenize_diff(None) == []


def test_input_without_leading_header_yields_no_blocks() -> None:
    assert tokenize_diff("From 123 Mon Sep 17 00:00:00 2001\n" + MODIFIED) == []
    assert tokenize_diff("just some text\n") == []


def test_header_text_inside_a_line_does_not_split() -> None:
    text = MODIFIED.replace(" print(x)\n", " print('diff --git a/x b/x')\n")
    assert len(tokenize_diff(text)) == 1


def test_lines_split_on_newline_only() -> None:
    text = MODIFIED.replace(" print(x)\n", " print('a b\x0cc')\n")
    [block] = tokenize_diff(text)
    assert len(block.lines) == len(MODIFIED.splitlines())
