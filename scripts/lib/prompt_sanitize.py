"""Helpers for embedding untrusted PR content in the review prompt.

PR titles, descriptions and diffs are attacker-controlled. They are data for
the model, and must not be able to close the tags or code fences that wrap
them in the prompt.
"""

from __future__ import annotations

import html
import re

_BACKTICK_RUN_RE = re.compile(r"`{3,}")


def escape_untrusted_xml(text: str) -> str:
    """Escape &, <, > so text cannot break out of an XML-ish element."""
    return html.escape(text or "", quote=False)


def code_fence_for(text: str) -> str:
    """Return a backtick fence longer than any backtick run inside `text`."""
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN_RE.finditer(text or "")), default=2)
    return "`" * max(3, longest + 1)
