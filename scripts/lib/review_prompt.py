"""Review prompt rendering and response parsing.

Extracted so the CLIs stay thin and the prompt/response contract with the
model can be unit-tested without network access.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from .prompt_sanitize import code_fence_for, escape_untrusted_xml

TRUNCATION_MARKER = "\n\n... [diff truncated due to size]"
JSON_BLOCK_RE = re.compile(r"```json\s*(\{.*?\})\s*```", re.DOTALL)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert code reviewer. Provide thorough, constructive feedback that helps "
    "developers improve their code. Be specific, cite line numbers, and explain the "
    "reasoning behind your suggestions."
)


class ReviewParseError(ValueError):
    """Model output does not contain a usable JSON review."""


class Recommendation(str, Enum):
    APPROVE = "approve"
    APPROVE_WITH_SUGGESTIONS = "approve_with_suggestions"
    REQUEST_CHANGES = "request_changes"


SEVERITIES = ("critical", "major", "minor", "suggestion")


@dataclass(frozen=True)
class FocusArea:
    name: str
    description: str


FOCUS_CATALOG: dict[str, FocusArea] = {
    "security": FocusArea("Security", "Flag any security concerns, vulnerabilities, or unsafe practices"),
    "performance": FocusArea(
        "Performance", "Identify performance bottlenecks, inefficient algorithms, or resource issues"
    ),
    "bugs": FocusArea("Potential Bugs", "Look for logic errors, edge cases, null checks, or runtime issues"),
    "quality": FocusArea("Code Quality", "Identify code smells, anti-patterns, or areas needing improvement"),
    "readability": FocusArea("Readability", "Comment on code clarity, naming, and maintainability"),
    "testing": FocusArea("Testing", "Evaluate test coverage, test quality, and suggest additional tests"),
    "documentation": FocusArea("Documentation", "Check for missing or outdated documentation and comments"),
    "architecture": FocusArea(
        "Architecture", "Review design patterns, separation of concerns, and modularity"
    ),
    "accessibility": FocusArea("Accessibility", "Check for accessibility issues in UI code"),
    "error-handling": FocusArea(
        "Error Handling", "Review error handling, logging, and recovery mechanisms"
    ),
}

DEFAULT_FOCUS_AREAS: tuple[FocusArea, ...] = (
    FocusArea("Code Quality", "Identify any code smells, anti-patterns, or areas that could be improved"),
    FocusArea("Potential Bugs", "Look for logic errors, edge cases, or potential runtime issues"),
    FocusArea("Security", "Flag any security concerns or vulnerabilities"),
    FocusArea("Performance", "Note any performance implications"),
    FocusArea("Best Practices", "Suggest improvements based on industry best practices"),
    FocusArea("Readability", "Comment on code clarity and maintainability"),
)


@dataclass(frozen=True)
class PullRequestContext:
    repo: str
    number: str
    title: str
    body: str


def load_pr_context(env: Mapping[str, str]) -> PullRequestContext:
    return PullRequestContext(
        repo=str(env.get("REPO_NAME", "") or ""),
        number=str(env.get("PR_NUMBER", "") or ""),
        title=str(env.get("PR_TITLE", "") or ""),
        body=str(env.get("PR_BODY", "") or ""),
    )


@dataclass(frozen=True)
class InlineFinding:
    file: str
    line: int
    body: str
    severity: str = "suggestion"


@dataclass(frozen=True)
class ReviewResult:
    summary: str
    recommendation: Recommendation
    comments: list[InlineFinding] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "recommendation": self.recommendation.value,
            "comments": [
                {"file": c.file, "line": c.line, "severity": c.severity, "body": c.body}
                for c in self.comments
            ],
        }


def resolve_focus_areas(keys: list[str] | None) -> list[FocusArea]:
    """Map focus keys to catalog entries; unknown keys are ignored."""
    areas = [FOCUS_CATALOG[key] for key in (keys or []) if key in FOCUS_CATALOG]
    return areas or list(DEFAULT_FOCUS_AREAS)


def truncate_diff(diff: str, max_size: int) -> tuple[str, bool]:
    if len(diff) <= max_size:
        return diff, False
    return diff[:max_size] + TRUNCATION_MARKER, True


def build_system_prompt(override: str = "") -> str:
    return override.strip() or DEFAULT_SYSTEM_PROMPT


def build_review_prompt(
    *,
    diff: str,
    pr_context: PullRequestContext,
    focus_areas: list[FocusArea],
    custom_prompt: str = "",
) -> str:
    # UNTRUSTED: PR fields are attacker-controlled input.
    title = escape_untrusted_xml(pr_context.title)
    body = escape_untrusted_xml(pr_context.body) or "No description provided"
    fence = code_fence_for(diff)
    focus_text = "\n".join(
        f"{i}. **{area.name}**: {area.description}" for i, area in enumerate(focus_areas, start=1)
    )

    prompt = f"""You are an experienced software engineer performing a code review on a Pull Request.

## Pull Request Information
- **Repository**: {pr_context.repo}
- **PR Number**: #{pr_context.number}
<pr_title trust="UNTRUSTED">{title}</pr_title>
<pr_description trust="UNTRUSTED">
{body}
</pr_description>

## Code Changes (Diff)
Deleted files, binary files and renames without significant changes are summarized
by a one-line placeholder.

{fence}diff
{diff}
{fence}

## Your Task
Please review the code changes and provide constructive feedback. Focus on:

{focus_text}

## Response Format
Write the review in markdown with the sections Summary, Highlights, Issues & Suggestions
and Overall Recommendation. Reference issues as `filename:line` using line numbers of the
new version of the file.

Then end your answer with one fenced JSON block:

```json
{{"summary": "...", "recommendation": "approve | approve_with_suggestions | request_changes",
  "comments": [{{"file": "path/in/repo", "line": 42, "severity": "critical | major | minor | suggestion",
                 "body": "issue and suggested fix"}}]}}
```
"""

    if custom_prompt.strip():
        prompt += f"\n## Additional Instructions\n{custom_prompt.strip()}\n"
    return prompt


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _normalize_recommendation(value: object) -> Recommendation:
    text = "_".join(str(value or "").strip().lower().replace("-", " ").split())
    try:
        return Recommendation(text)
    except ValueError:
        return Recommendation.APPROVE_WITH_SUGGESTIONS


def _normalize_severity(value: object) -> str:
    text = str(value or "").strip().lower()
    return text if text in SEVERITIES else "suggestion"


def extract_json_block(text: str) -> str | None:
    matches = JSON_BLOCK_RE.findall(text or "")
    if matches:
        return matches[-1]
    stripped = (text or "").strip()
    if stripped.startswith("{") and stripped.endswith("}"):
        return stripped
    return None


def strip_json_block(text: str) -> str:
    """Return the markdown part of a response, without the JSON block."""
    return JSON_BLOCK_RE.sub("", text or "").strip()


def parse_review_response(text: str) -> ReviewResult:
    """Parse the model's JSON review; drop comments without file or line."""
    raw = extract_json_block(text)
    if raw is None:
        raise ReviewParseError("no JSON review block in model output")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ReviewParseError(f"invalid JSON review block: {exc}") from exc
    if not isinstance(data, dict):
        raise ReviewParseError("JSON review must be an object")

    comments: list[InlineFinding] = []
    raw_comments = data.get("comments")
    if isinstance(raw_comments, list):
        for item in raw_comments:
            if not isinstance(item, dict):
                continue
            path = str(item.get("file") or item.get("path") or "").strip()
            line = _as_int(item.get("line"))
            body = str(item.get("body") or item.get("comment") or "").strip()
            if not path or line is None or line <= 0 or not body:
                continue
            comments.append(
                InlineFinding(
                    file=path,
                    line=line,
                    body=body,
                    severity=_normalize_severity(item.get("severity")),
                )
            )

    return ReviewResult(
        summary=str(data.get("summary") or "").strip(),
        recommendation=_normalize_recommendation(data.get("recommendation")),
        comments=comments,
    )


def load_review_result(data: Any) -> ReviewResult:
    """Rebuild a ReviewResult from its `as_dict()` form."""
    return parse_review_response(json.dumps(data))


def format_review_output(review: str, *, model: str, pr_number: str) -> str:
    return f"""## 🤖 AI Code Review

> **Model**: `{model}`
> **PR**: #{pr_number}

---

{review}

---
<sub>🔄 This review was automatically generated via OpenRouter API.</sub>
"""
