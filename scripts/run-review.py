#!/usr/bin/env python3
"""Run an AI code review over a PR diff via OpenRouter.

Usage:
    run-review.py [--diff-file PATH] [--config PATH] [--output-dir DIR]

Env:
    OPENROUTER_API_KEY  Required.
    ACTION_PATH         Directory holding pr_diff.txt and receiving outputs
                        (default: current directory).
    AI_MODEL, TEMPERATURE, MAX_DIFF_SIZE, REVIEW_FOCUS, CUSTOM_PROMPT,
    SYSTEM_PROMPT       Override defaults/config.yml.
    PR_TITLE, PR_BODY, PR_NUMBER, REPO_NAME
                        Pull request metadata for the prompt.

Outputs (in --output-dir):
    review_output.md    Markdown review for the PR conversation.
    review.json         Structured review (summary, recommendation, inline
                        comments keyed by file and new-file line) consumed by
                        post-review.py.

Exit codes:
    0  Review written.
    1  Missing API key, empty diff, or completion request failure.
    2  Invalid configuration or unreadable input.
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Mapping

from lib.openrouter import OpenRouterError, chat_completion
from lib.review_prompt import (
    Recommendation,
    ReviewParseError,
    ReviewResult,
    build_review_prompt,
    build_system_prompt,
    format_review_output,
    load_pr_context,
    parse_review_response,
    resolve_focus_areas,
    strip_json_block,
    truncate_diff,
)
from lib.reviewer_config import ConfigError, ReviewerConfig, load_reviewer_config
from pkg.reviewdiff import analyze_diff

REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG = REPO_ROOT / "defaults" / "config.yml"


def eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def warn(message: str) -> None:
    eprint(f"::warning::{message}")


def prepare_diff(diff_text: str, config: ReviewerConfig) -> tuple[str, dict]:
    """Optimize then truncate; returns the prompt diff and a stats record."""
    analysis = analyze_diff(diff_text, rename_threshold=config.diff.rename_materiality_threshold)
    if analysis.blocks:
        reduced = analysis.optimized_text
        eprint(f"Diff optimized: {analysis.stats.summary()}")
    else:
        warn("diff does not start with a 'diff --git' header; sending it unoptimized")
        reduced = diff_text

    prompt_diff, truncated = truncate_diff(reduced, config.diff.max_size)
    if truncated:
        eprint(
            f"Diff is too large ({len(reduced)} chars), truncating to {config.diff.max_size} chars"
        )
    stats = analysis.stats.as_dict()
    stats["truncated"] = truncated
    return prompt_diff, stats


def parse_or_fallback(response: str) -> ReviewResult:
    try:
        return parse_review_response(response)
    except ReviewParseError as exc:
        warn(f"no structured review in model output ({exc}); inline comments disabled")
        return ReviewResult(summary="", recommendation=Recommendation.APPROVE_WITH_SUGGESTIONS)


def main(argv: list[str] | None = None, env: Mapping[str, str] | None = None) -> int:
    env = os.environ if env is None else env
    action_path = Path(env.get("ACTION_PATH") or os.getcwd())

    parser = argparse.ArgumentParser(description="Run an AI code review over a PR diff.")
    parser.add_argument("--diff-file", type=Path, default=action_path / "pr_diff.txt")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    parser.add_argument("--output-dir", type=Path, default=action_path)
    args = parser.parse_args(argv)

    try:
        config = load_reviewer_config(args.config, env)
    except ConfigError as exc:
        eprint(f"run-review: {exc}")
        return 2

    eprint("Starting AI Code Review...")
    eprint(f"Model: {config.model.default}")
    eprint(f"PR: {env.get('REPO_NAME', '')}#{env.get('PR_NUMBER', '')}")
    eprint(f"Temperature: {config.model.temperature}")
    eprint(f"Max diff size: {config.diff.max_size}")

    api_key = (env.get("OPENROUTER_API_KEY") or "").strip()
    if not api_key:
        eprint("::error::OPENROUTER_API_KEY is not set")
        return 1

    try:
        diff_text = args.diff_file.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        diff_text = ""
    except OSError as exc:
        eprint(f"run-review: unable to read {args.diff_file}: {exc}")
        return 2
    if not diff_text.strip():
        eprint("::error::No diff content found")
        return 1
    eprint(f"Diff size: {len(diff_text)} characters")

    prompt_diff, diff_stats = prepare_diff(diff_text, config)
    pr_context = load_pr_context(env)
    prompt = build_review_prompt(
        diff=prompt_diff,
        pr_context=pr_context,
        focus_areas=resolve_focus_areas(config.review.focus),
        custom_prompt=config.review.custom_prompt,
    )

    eprint("Calling OpenRouter API...")
    try:
        response = chat_completion(
            api_key=api_key,
            model=config.model.default,
            system_prompt=build_system_prompt(config.review.system_prompt),
            prompt=prompt,
            temperature=config.model.temperature,
            max_tokens=config.model.max_tokens,
            repo=pr_context.repo,
        )
    except OpenRouterError as exc:
        eprint(f"::error::Error during review: {exc}")
        return 1

    result = parse_or_fallback(response)
    review_markdown = strip_json_block(response) or result.summary or response.strip()

    output_md = args.output_dir / "review_output.md"
    output_json = args.output_dir / "review.json"
    record = {
        **result.as_dict(),
        "model": config.model.default,
        "diff_stats": diff_stats,
    }
    try:
        args.output_dir.mkdir(parents=True, exist_ok=True)
        output_md.write_text(
            format_review_output(review_markdown, model=config.model.default, pr_number=pr_context.number),
            encoding="utf-8",
        )
        output_json.write_text(json.dumps(record, indent=2), encoding="utf-8")
    except OSError as exc:
        eprint(f"run-review: unable to write outputs: {exc}")
        return 2

    eprint("Review completed successfully!")
    eprint(f"Output saved to {output_md}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
