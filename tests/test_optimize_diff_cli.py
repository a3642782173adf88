from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import optimize_diff_cli
from pkg.reviewdiff.optimizer import DELETED_PLACEHOLDER, RENAME_PLACEHOLDER

DIFF = (
    "diff --git a/keep.py b/keep.py\n"
    "index 1111111..2222222 100644\n"
    "--- a/keep.py\n"
    "+++ b/keep.py\n"
    "@@ -1 +1 @@\n"
    "-a = 1\n"
    "+a = 2\n"
    "diff --git a/gone.py b/gone.py\n"
    "deleted file mode 100644\n"
    "index 3333333..0000000\n"
    "--- a/gone.py\n"
    "+++ /dev/null\n"
    "@@ -1,2 +0,0 @@\n"
    "-x = 1\n"
    "-y = 2\n"
    "diff --git a/old.py b/new.py\n"
    "similarity index 98%\n"
    "rename from old.py\n"
    "rename to new.py\n"
    "--- a/old.py\n"
    "+++ b/new.py\n"
    "@@ -1 +1 @@\n"
    "-z = 1\n"
    "+z = 3\n"
)


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "pr_diff.txt"
    p.write_text(text, encoding="utf-8")
    return p


def test_writes_optimized_diff_to_stdout(tmp_path: Path, capsys) -> None:
    assert optimize_diff_cli.main([str(_write(tmp_path, DIFF))]) == 0

    out, err = capsys.readouterr()
    assert "+a = 2\n" in out
    assert DELETED_PLACEHOLDER in out
    assert RENAME_PLACEHOLDER in out
    assert "-x = 1" not in out
    assert "::notice::Diff optimized: 0 added, 1 modified, 1 deleted, 1 renamed" in err


def test_output_and_stats_files(tmp_path: Path, capsys) -> None:
    out_path = tmp_path / "optimized.diff"
    stats_path = tmp_path / "stats.json"
    code = optimize_diff_cli.main(
        [
            str(_write(tmp_path, DIFF)),
            "--output",
            str(out_path),
            "--stats-json",
            str(stats_path),
            "--rename-threshold",
            "0",
        ]
    )
    assert code == 0
    assert capsys.readouterr().out == ""

    optimized = out_path.read_text(encoding="utf-8")
    assert RENAME_PLACEHOLDER not in optimized
    assert "+z = 3\n" in optimized

    stats = json.loads(stats_path.read_text(encoding="utf-8"))
    assert stats["files"] == {"added": 0, "modified": 1, "deleted": 1, "renamed": 1, "binary": 0}
    assert stats["summarized_paths"] == ["gone.py"]


def test_non_diff_input_warns_and_writes_nothing(tmp_path: Path, capsys) -> None:
    assert optimize_diff_cli.main([str(_write(tmp_path, "hello\n"))]) == 0
    out, err = capsys.readouterr()
    assert out == ""
    assert "does not start with a 'diff --git' header" in err


def test_missing_input_exits_2(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        optimize_diff_cli.main([str(tmp_path / "missing.diff")])
    assert exc_info.value.code == 2


def test_negative_threshold_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        optimize_diff_cli.main([str(_write(tmp_path, DIFF)), "--rename-threshold", "-1"])
    assert exc_info.value.code == 2
