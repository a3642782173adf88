"""GitHub PR review submission.

A review is posted in one request: overall body, event, and every inline
comment. GitHub accepts or rejects the whole payload, so positions must be
resolved before calling `create_pr_review`.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from enum import Enum

from lib import github as gh


class ReviewEvent(str, Enum):
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


@dataclass(frozen=True)
class ReviewComment:
    path: str
    position: int
    body: str


def list_pr_reviews(repo: str, pr_number: int) -> list[dict]:
    result = gh.run_gh(
        ["api", f"repos/{repo}/pulls/{pr_number}/reviews?per_page=100"],
        action="list PR reviews",
    )
    data = json.loads(result.stdout or "[]")
    return data if isinstance(data, list) else []


def find_review_id_by_marker(reviews: list[dict], marker: str) -> int | None:
    for review in reviews:
        if not isinstance(review, dict):
            continue
        body = str(review.get("body", "") or "")
        if marker in body:
            rid = review.get("id")
            if isinstance(rid, int):
                return rid
    return None


def build_review_payload(
    *,
    commit_id: str,
    body: str,
    event: ReviewEvent,
    comments: list[ReviewComment],
) -> dict[str, object]:
    payload: dict[str, object] = {
        "event": event.value,
        "commit_id": commit_id,
        "body": body,
    }
    if comments:
        payload["comments"] = [
            {"path": c.path, "position": c.position, "body": c.body} for c in comments
        ]
    return payload


def create_pr_review(
    *,
    repo: str,
    pr_number: int,
    commit_id: str,
    body: str,
    comments: list[ReviewComment],
    event: ReviewEvent = ReviewEvent.COMMENT,
) -> dict:
    payload = build_review_payload(commit_id=commit_id, body=body, event=event, comments=comments)

    with tempfile.NamedTemporaryFile("w", encoding="utf-8", suffix=".json", delete=False) as handle:
        json.dump(payload, handle)
        tmp_path = handle.name

    try:
        result = gh.run_gh(
            [
                "api",
                "-X",
                "POST",
                f"repos/{repo}/pulls/{pr_number}/reviews",
                "--input",
                tmp_path,
            ],
            action="post PR review",
        )
    finally:
        os.unlink(tmp_path)
    data = json.loads(result.stdout or "{}")
    return data if isinstance(data, dict) else {}
