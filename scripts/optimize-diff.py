#!/usr/bin/env python3
"""Reduce a unified diff before sending it to a size-limited reviewer.

Deleted files, binary files and renames without material changes are replaced
by short placeholders; every other file is kept verbatim.

Usage:
    optimize-diff.py <diff-file> [--output PATH] [--stats-json PATH]
                     [--rename-threshold N]

Writes the optimized diff to --output (stdout when omitted) and logs a stats
summary to stderr.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pkg.reviewdiff import DEFAULT_RENAME_MATERIALITY_THRESHOLD, optimize_diff, tokenize_diff


def fail(message: str, code: int = 2) -> None:
    print(f"optimize-diff: {message}", file=sys.stderr)
    sys.exit(code)


def notice(message: str) -> None:
    print(f"::notice::{message}", file=sys.stderr)


def non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected integer, got {raw!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return value


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Optimize a unified diff for review.")
    parser.add_argument("diff_file", help="Path to unified diff")
    parser.add_argument("--output", help="Write optimized diff here (default: stdout)")
    parser.add_argument("--stats-json", help="Write optimizer stats as JSON here")
    parser.add_argument(
        "--rename-threshold",
        type=non_negative_int,
        default=DEFAULT_RENAME_MATERIALITY_THRESHOLD,
        help="Renamed files with at most N added/removed lines are summarized",
    )
    args = parser.parse_args(argv)

    try:
        diff_text = Path(args.diff_file).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        fail(f"unable to read {args.diff_file}: {exc}")

    blocks = tokenize_diff(diff_text)
    if diff_text.strip() and not blocks:
        print(
            "::warning::input does not start with a 'diff --git' header; nothing to optimize",
            file=sys.stderr,
        )
    optimized, stats = optimize_diff(blocks, rename_threshold=args.rename_threshold)

    if args.output:
        try:
            Path(args.output).write_text(optimized, encoding="utf-8")
        except OSError as exc:
            fail(f"unable to write {args.output}: {exc}")
    else:
        sys.stdout.write(optimized)

    if args.stats_json:
        try:
            Path(args.stats_json).write_text(json.dumps(stats.as_dict(), indent=2), encoding="utf-8")
        except OSError as exc:
            fail(f"unable to write {args.stats_json}: {exc}")

    notice(f"Diff optimized: {stats.summary()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
