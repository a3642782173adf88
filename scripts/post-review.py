#!/usr/bin/env python3
"""Post the AI review as a single PR review with inline comments.

Inline comments are anchored with GitHub diff `position`s computed from the
raw PR diff. Findings whose line cannot be placed on the diff are listed in
the review body instead of being dropped.
"""

from __future__ import annotations

import argparse
import json
import os
import subprocess
import sys
from pathlib import Path

from lib.github import ReviewPermissionError, TransientGitHubError
from lib.github_reviews import (
    ReviewComment,
    ReviewEvent,
    create_pr_review,
    find_review_id_by_marker,
    list_pr_reviews,
)
from lib.markdown import location_label, recommendation_label, severity_icon
from lib.review_prompt import (
    SEVERITIES,
    InlineFinding,
    Recommendation,
    ReviewParseError,
    ReviewResult,
    load_review_result,
)
from lib.reviewer_config import ConfigError, load_reviewer_config
from pkg.reviewdiff import PositionIndex, build_position_index, tokenize_diff
from pkg.reviewdiff.resolver import find_file, resolve_in_file

REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG = REPO_ROOT / "defaults" / "config.yml"
MAX_COMMENT_CHARS = 2000

SEVERITY_ORDER = {name: rank for rank, name in enumerate(SEVERITIES)}

EVENT_FOR_RECOMMENDATION = {
    Recommendation.APPROVE: ReviewEvent.APPROVE,
    Recommendation.APPROVE_WITH_SUGGESTIONS: ReviewEvent.COMMENT,
    Recommendation.REQUEST_CHANGES: ReviewEvent.REQUEST_CHANGES,
}


def fail(message: str, code: int = 2) -> None:
    print(f"post-review: {message}", file=sys.stderr)
    sys.exit(code)


def warn(message: str) -> None:
    print(f"::warning::{message}", file=sys.stderr)


def notice(message: str) -> None:
    print(f"::notice::{message}", file=sys.stderr)


def review_marker(head_sha: str) -> str:
    short = head_sha[:12] if head_sha else "<head-sha>"
    return f"<!-- ai-code-review sha={short} -->"


def truncate(text: str, *, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1].rstrip() + "…"


def render_inline_comment(finding: InlineFinding) -> str:
    icon = severity_icon(finding.severity)
    body = truncate(finding.body, max_len=MAX_COMMENT_CHARS)
    return f"{icon} **{finding.severity.capitalize()}**\n\n{body}\n"


def place_findings(
    findings: list[InlineFinding],
    index: PositionIndex,
    *,
    max_comments: int,
) -> tuple[list[ReviewComment], list[InlineFinding]]:
    """Split findings into anchored comments (capped) and unplaced findings."""
    anchored: list[tuple[tuple[int, str, int], ReviewComment]] = []
    unplaced: list[InlineFinding] = []

    for finding in findings:
        file_index = find_file(index, finding.file)
        position = resolve_in_file(file_index, finding.line) if file_index is not None else None
        if file_index is None or position is None:
            unplaced.append(finding)
            continue
        comment = ReviewComment(
            path=file_index.path,
            position=position,
            body=render_inline_comment(finding),
        )
        sort_key = (SEVERITY_ORDER.get(finding.severity, len(SEVERITY_ORDER)), file_index.path, finding.line)
        anchored.append((sort_key, comment))

    anchored.sort(key=lambda item: item[0])
    return [comment for _key, comment in anchored[:max_comments]], unplaced


def render_review_body(
    *,
    marker: str,
    result: ReviewResult,
    posted: int,
    omitted: int,
    unplaced: list[InlineFinding],
) -> str:
    lines = [marker, "## 🤖 AI Code Review", ""]
    if result.summary:
        lines.extend([result.summary, ""])
    lines.append(f"**Recommendation**: {recommendation_label(result.recommendation.value)}")
    lines.append(f"- Inline comments posted: {posted}/{len(result.comments)}")
    if omitted:
        lines.append(f"- Omitted by inline comment cap: {omitted}")
    if unplaced:
        lines.extend(["", "### Comments outside the diff", ""])
        for finding in unplaced:
            first_line = finding.body.strip().splitlines()[0] if finding.body.strip() else ""
            lines.append(
                f"- {severity_icon(finding.severity)} {location_label(finding.file, finding.line)}: "
                f"{truncate(first_line, max_len=300)}"
            )
    lines.append("")
    return "\n".join(lines)


def main() -> None:
    action_path = Path(os.environ.get("ACTION_PATH") or os.getcwd())

    p = argparse.ArgumentParser(description="Post the AI review as a PR review with inline comments.")
    p.add_argument("--repo", required=True, help="owner/repo")
    p.add_argument("--pr", type=int, required=True, help="PR number")
    p.add_argument("--head-sha", default="", help="Head SHA (default: env GH_HEAD_SHA)")
    p.add_argument("--diff-file", type=Path, default=action_path / "pr_diff.txt")
    p.add_argument("--review-json", type=Path, default=action_path / "review.json")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    args = p.parse_args()

    head_sha = (args.head_sha or os.environ.get("GH_HEAD_SHA") or "").strip()
    if not head_sha:
        fail("missing head sha (set --head-sha or GH_HEAD_SHA)")

    try:
        config = load_reviewer_config(args.config)
    except ConfigError as exc:
        fail(str(exc))

    try:
        result = load_review_result(json.loads(args.review_json.read_text(encoding="utf-8")))
    except OSError as exc:
        fail(f"unable to read {args.review_json}: {exc}")
    except (json.JSONDecodeError, ReviewParseError) as exc:
        fail(f"invalid review JSON in {args.review_json}: {exc}")

    try:
        diff_text = args.diff_file.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        fail(f"unable to read {args.diff_file}: {exc}")

    marker = review_marker(head_sha)
    try:
        reviews = list_pr_reviews(args.repo, args.pr)
        if find_review_id_by_marker(reviews, marker) is not None:
            notice(f"AI review already posted for sha={head_sha[:12]} (marker match). Skipping.")
            return

        index = build_position_index(tokenize_diff(diff_text))
        max_comments = config.review.max_inline_comments
        inline, unplaced = place_findings(result.comments, index, max_comments=max_comments)
        anchorable = len(result.comments) - len(unplaced)
        omitted = max(0, anchorable - len(inline))
        if unplaced:
            notice(f"{len(unplaced)} comment(s) could not be anchored to the diff; listed in review body.")

        body = render_review_body(
            marker=marker,
            result=result,
            posted=len(inline),
            omitted=omitted,
            unplaced=unplaced,
        )
        create_pr_review(
            repo=args.repo,
            pr_number=args.pr,
            commit_id=head_sha,
            body=body,
            comments=inline,
            event=EVENT_FOR_RECOMMENDATION[result.recommendation],
        )
        notice(f"Posted AI review for sha={head_sha[:12]} with {len(inline)} inline comments.")
    except ReviewPermissionError as exc:
        print(f"::error::{exc}", file=sys.stderr)
        sys.exit(1)
    except TransientGitHubError as exc:
        warn(str(exc))
        warn(f"Could not {exc.action} due to GitHub outage; review_output.md is still available.")
    except subprocess.CalledProcessError as exc:
        print(f"post-review: gh command failed: {exc.stderr or exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
