"""Markdown helpers for review bodies and inline comments.

Keep surface area small: severity badges + a file:line location label.
"""

from __future__ import annotations

_SEVERITY_ICON = {
    "critical": "🔴",
    "major": "🟠",
    "minor": "🟡",
    "suggestion": "💡",
}

_RECOMMENDATION_LABEL = {
    "approve": "✅ Approve",
    "approve_with_suggestions": "⚠️ Approve with suggestions",
    "request_changes": "🔄 Request changes",
}


def severity_icon(severity: str | None) -> str:
    text = str(severity or "").strip().lower()
    return _SEVERITY_ICON.get(text, _SEVERITY_ICON["suggestion"])


def recommendation_label(recommendation: str | None) -> str:
    text = str(recommendation or "").strip().lower()
    return _RECOMMENDATION_LABEL.get(text, _RECOMMENDATION_LABEL["approve_with_suggestions"])


def location_label(path: str, line: int | None) -> str:
    path = (path or "").strip()
    if not path:
        return "`unknown`"
    if line is not None and line > 0:
        return f"`{path}:{line}`"
    return f"`{path}`"
