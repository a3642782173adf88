"""`gh api` runner for the review poster.

Every call names the step it performs ("list PR reviews", "post PR review")
so a failure can say which step broke. A missing token permission is fatal
and never retried. GitHub 502/503/504 answers are retried with backoff before
being raised as transient.
"""
from __future__ import annotations

import random
import re
import subprocess
import sys
import time
from dataclasses import dataclass

_PERMISSION_RE = re.compile(r"http 403|resource not accessible|insufficient", re.IGNORECASE)
_TRANSIENT_RE = re.compile(r"\bhttp 50[234]\b", re.IGNORECASE)


class GitHubError(RuntimeError):
    """A `gh` step failed in a way the review poster reports specially."""

    def __init__(self, action: str, message: str) -> None:
        super().__init__(message)
        self.action = action


class ReviewPermissionError(GitHubError):
    """Token cannot read or write pull request reviews."""


class TransientGitHubError(GitHubError):
    """GitHub kept answering 5xx until the retries ran out."""


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    base_delay: float = 1.0
    jitter: float = 0.5

    def delay(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt) + random.uniform(0, self.jitter)


DEFAULT_RETRY = RetryPolicy()


def is_permission_failure(stderr: str) -> bool:
    return bool(_PERMISSION_RE.search(stderr or ""))


def is_transient_failure(stderr: str) -> bool:
    # gh prints "(HTTP 503)"; raw API errors print "HTTP 503".
    return bool(_TRANSIENT_RE.search(stderr or ""))


def _permission_message(action: str) -> str:
    return (
        f"Unable to {action}: token lacks pull-requests: write permission.\n"
        "Add this to your workflow:\n"
        "permissions:\n"
        "  contents: read\n"
        "  pull-requests: write"
    )


def run_gh(
    args: list[str],
    *,
    action: str,
    retry: RetryPolicy = DEFAULT_RETRY,
) -> subprocess.CompletedProcess[str]:
    """Run `gh <args>` for the named step.

    Raises:
        ReviewPermissionError: the token lacks pull-requests permission
        TransientGitHubError: GitHub returned 502/503/504 on every attempt
        subprocess.CalledProcessError: any other gh failure
    """
    attempts = max(1, retry.attempts)
    for attempt in range(attempts):
        result = subprocess.run(["gh", *args], capture_output=True, text=True, check=False)
        if result.returncode == 0:
            return result

        stderr = result.stderr or ""
        if is_permission_failure(stderr):
            raise ReviewPermissionError(action, _permission_message(action))
        if not is_transient_failure(stderr):
            raise subprocess.CalledProcessError(
                result.returncode, result.args, result.stdout, result.stderr
            )
        if attempt == attempts - 1:
            break

        delay = retry.delay(attempt)
        print(
            f"::warning::{action}: GitHub API error (attempt {attempt + 1}/{attempts}), "
            f"retrying in {delay:.1f}s...",
            file=sys.stderr,
        )
        time.sleep(delay)

    raise TransientGitHubError(
        action,
        f"{action}: GitHub API returned transient error after {attempts} attempts: {stderr.strip()}",
    )
