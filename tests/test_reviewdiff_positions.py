from __future__ import annotations

from pkg.reviewdiff import LineKind, build_position_index, parse_hunk_header, tokenize_diff
from pkg.reviewdiff.positions import index_lines


def _file(path: str, *body: str, header: tuple[str, ...] = ()) -> str:
    lines = [
        f"diff --git a/{path} b/{path}",
        *header,
        "index 1111111..2222222 100644",
        f"--- a/{path}",
        f"+++ b/{path}",
        *body,
    ]
    return "\n".join(lines) + "\n"


def test_parse_hunk_header_defaults_counts_to_one() -> None:
    assert parse_hunk_header("@@ -1,3 +1,4 @@") == (1, 3, 1, 4)
    assert parse_hunk_header("@@ -10 +20 @@ def handler():") == (10, 1, 20, 1)
    assert parse_hunk_header("@@ -a,b +c,d @@") is None
    assert parse_hunk_header("@@ broken") is None


def test_single_hunk_maps_context_and_additions() -> None:
    diff = _file("x.py", "@@ -1,3 +1,4 @@", " line1", "-line2", "+line2b", " line3", "+line4")
    [hunk] = build_position_index(tokenize_diff(diff))["x.py"].hunks

    assert hunk.position == 1
    assert [(l.kind, l.position, l.new_line) for l in hunk.lines] == [
        (LineKind.CONTEXT, 2, 1),
        (LineKind.DELETION, 3, None),
        (LineKind.ADDITION, 4, 2),
        (LineKind.CONTEXT, 5, 3),
        (LineKind.ADDITION, 6, 4),
    ]
    assert hunk.lines[2].text == "line2b"


def test_new_line_numbers_skip_deletions() -> None:
    diff = _file("x.py", "@@ -10,3 +10,3 @@", " ctx", "+add1", "-del", "+add2")
    [hunk] = build_position_index(tokenize_diff(diff))["x.py"].hunks
    assert [l.new_line for l in hunk.lines] == [10, 11, None, 12]


def test_positions_continue_across_hunks_and_new_lines_reset() -> None:
    diff = _file(
        "x.py",
        "@@ -1,2 +1,3 @@",
        " a",
        "+b",
        " c",
        "@@ -10 +20,2 @@ def later():",
        " d",
        "+e",
    )
    first, second = build_position_index(tokenize_diff(diff))["x.py"].hunks

    assert [l.position for l in first.lines] == [2, 3, 4]
    assert second.position == 5
    assert [(l.position, l.new_line) for l in second.lines] == [(6, 20), (7, 21)]


def test_positions_are_monotonic_from_one() -> None:
    diff = _file(
        "x.py",
        "@@ -1,4 +1,4 @@",
        " a",
        "-b",
        "+B",
        " c",
        "@@ -30,2 +30,3 @@",
        " d",
        "+e",
        " f",
    )
    file_index = build_position_index(tokenize_diff(diff))["x.py"]
    positions: list[int] = []
    for hunk in file_index.hunks:
        positions.append(hunk.position)
        positions.extend(l.position for l in hunk.lines)
    assert positions == list(range(1, len(positions) + 1))


def test_empty_line_is_context() -> None:
    diff = _file("x.py", "@@ -1,3 +1,3 @@", " line1", "", " line3")
    [hunk] = build_position_index(tokenize_diff(diff))["x.py"].hunks
    assert [(l.kind, l.position, l.new_line) for l in hunk.lines] == [
        (LineKind.CONTEXT, 2, 1),
        (LineKind.CONTEXT, 3, 2),
        (LineKind.CONTEXT, 4, 3),
    ]


def test_no_newline_marker_takes_a_position_but_no_line() -> None:
    hunks = index_lines(["@@ -1,2 +1,2 @@", " line1", "\\ No newline at end of file", " line2"])
    [hunk] = hunks
    assert [(l.position, l.new_line) for l in hunk.lines] == [(2, 1), (4, 2)]


def test_malformed_hunk_header_is_skipped() -> None:
    hunks = index_lines(
        [
            "@@ -1,2 +1,2 @@",
            " a",
            "+b",
            "@@ -x,y +z @@",
            " lost",
            "+lost too",
            "@@ -40 +50,2 @@",
            " c",
            "+d",
        ]
    )
    assert len(hunks) == 2
    first, second = hunks
    assert [l.text for l in first.lines] == ["a", "b"]
    # The malformed header and its body still occupy positions 4-6.
    assert second.position == 7
    assert [(l.position, l.new_line) for l in second.lines] == [(8, 50), (9, 51)]


def test_deleted_and_binary_files_are_not_indexed() -> None:
    deleted = (
        "diff --git a/gone.py b/gone.py\n"
        "deleted file mode 100644\n"
        "--- a/gone.py\n"
        "+++ /dev/null\n"
        "@@ -1 +0,0 @@\n"
        "-x\n"
    )
    binary = (
        "diff --git a/img.png b/img.png\n"
        "new file mode 100644\n"
        "Binary files /dev/null and b/img.png differ\n"
    )
    kept = _file("keep.py", "@@ -1 +1 @@", "-a", "+b")

    index = build_position_index(tokenize_diff(deleted + binary + kept))
    assert list(index) == ["keep.py"]


def test_renamed_file_is_keyed_by_new_path() -> None:
    diff = (
        "diff --git a/old/name.py b/new/name.py\n"
        "similarity index 95%\n"
        "rename from old/name.py\n"
        "rename to new/name.py\n"
        "--- a/old/name.py\n"
        "+++ b/new/name.py\n"
        "@@ -3 +3 @@\n"
        "-x = 1\n"
        "+x = 2\n"
    )
    index = build_position_index(tokenize_diff(diff))
    assert list(index) == ["new/name.py"]
    assert index["new/name.py"].old_path == "old/name.py"


def test_file_without_hunks_has_empty_index() -> None:
    diff = "diff --git a/mode.sh b/mode.sh\nold mode 100644\nnew mode 100755\n"
    index = build_position_index(tokenize_diff(diff))
    assert index["mode.sh"].hunks == ()


def test_added_file_end_to_end_positions() -> None:
    body = [f"+line {i}" for i in range(1, 21)]
    diff = (
        "\n".join(
            [
                "diff --git a/src/feature.py b/src/feature.py",
                "new file mode 100644",
                "index 0000000..abcdef0",
                "--- /dev/null",
                "+++ b/src/feature.py",
                "@@ -0,0 +1,20 @@",
                *body,
            ]
        )
        + "\n"
    )
    [hunk] = build_position_index(tokenize_diff(diff))["src/feature.py"].hunks
    assert {l.new_line: l.position for l in hunk.lines} == {n: n + 1 for n in range(1, 21)}
