"""Split a unified diff into per-file blocks.

The tokenizer is deliberately permissive: diffs handed to a reviewer are often
truncated, so anything it cannot make sense of degrades to fewer blocks or
empty path fields instead of an exception.
"""

from __future__ import annotations

import re

from .models import ChangeKind, DiffBlock, header_area, split_lines

FILE_HEADER_PREFIX = "diff --git "

_FILE_HEADER_RE = re.compile(r"^diff --git ", re.MULTILINE)
# Greedy on the old side so the last " b/" separates the two paths.
_TWO_PATH_RE = re.compile(r"^a/(?P<old>.+) b/(?P<new>.+)$")
_QUOTED_TWO_PATH_RE = re.compile(
    r'^(?P<old>"(?:[^"\\]|\\.)*"|\S+) (?P<new>"(?:[^"\\]|\\.)*"|\S+)$'
)
_ESCAPE_RE = re.compile(r"\\([0-7]{3}|.)", re.DOTALL)
_C_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    '"': '"',
    "\\": "\\",
}


def _strip_prefix(path: str, prefix: str) -> str:
    return path[len(prefix):] if path.startswith(prefix) else path


def _unquote(token: str) -> str:
    """Decode a git C-quoted path ("a/caf\\303\\251" -> a/café)."""
    if len(token) < 2 or not (token.startswith('"') and token.endswith('"')):
        return token
    body = token[1:-1]
    out = bytearray()
    pos = 0
    for match in _ESCAPE_RE.finditer(body):
        out.extend(body[pos:match.start()].encode("utf-8"))
        escape = match.group(1)
        if len(escape) == 3:
            out.append(int(escape, 8) & 0xFF)
        else:
            out.extend(_C_ESCAPES.get(escape, escape).encode("utf-8"))
        pos = match.end()
    out.extend(body[pos:].encode("utf-8"))
    return out.decode("utf-8", errors="replace")


def parse_header_paths(header: str) -> tuple[str, str]:
    """Return (old_path, new_path) from a `diff --git` line.

    Paths may contain spaces, so the line is never split on whitespace. A
    header that matches none of the known shapes yields ("", "").
    """
    header = header.rstrip("\r")
    if not header.startswith(FILE_HEADER_PREFIX):
        return "", ""
    rest = header[len(FILE_HEADER_PREFIX):]

    if '"' in rest:
        m = _QUOTED_TWO_PATH_RE.match(rest)
        if m:
            old = _strip_prefix(_unquote(m.group("old")), "a/")
            new = _strip_prefix(_unquote(m.group("new")), "b/")
            return old, new

    # Unrenamed files have identical halves: "a/<p> b/<p>".
    if rest.startswith("a/") and (len(rest) - 5) > 0 and (len(rest) - 5) % 2 == 0:
        size = (len(rest) - 5) // 2
        old, sep, new = rest[2:2 + size], rest[2 + size:5 + size], rest[5 + size:]
        if sep == " b/" and old == new:
            return old, new

    m = _TWO_PATH_RE.match(rest)
    if m:
        return m.group("old"), m.group("new")
    return "", ""


def _marker_path(line: str, marker: str, prefix: str) -> str | None:
    """Path from a `--- a/x` / `+++ b/x` line, None for /dev/null."""
    value = line[len(marker):].rstrip("\r")
    # Non-git tools may append "\t<timestamp>".
    value = value.split("\t", 1)[0]
    value = _unquote(value)
    if not value or value == "/dev/null":
        return None
    return _strip_prefix(value, prefix)


def classify_header_area(area: list[str]) -> ChangeKind:
    deleted = added = renamed = False
    for raw in area:
        line = raw.rstrip("\r")
        if line.startswith("deleted file mode") or line == "+++ /dev/null":
            deleted = True
        elif line.startswith("new file mode") or line == "--- /dev/null":
            added = True
        elif line.startswith(("rename from ", "rename to ")):
            renamed = True
    if deleted:
        return ChangeKind.DELETED
    if added:
        return ChangeKind.ADDED
    if renamed:
        return ChangeKind.RENAMED
    return ChangeKind.MODIFIED


def is_binary_marker(line: str) -> bool:
    line = line.rstrip("\r")
    return (line.startswith("Binary files ") and line.endswith(" differ")) or line == "GIT binary patch"


def _build_block(raw_text: str) -> DiffBlock:
    lines = split_lines(raw_text)
    old_path, new_path = parse_header_paths(lines[0] if lines else "")

    area = header_area(lines)

    marker_old: str | None = None
    marker_new: str | None = None
    rename_from: str | None = None
    rename_to: str | None = None
    for raw in area:
        line = raw.rstrip("\r")
        if line.startswith("rename from "):
            rename_from = _unquote(line[len("rename from "):])
        elif line.startswith("rename to "):
            rename_to = _unquote(line[len("rename to "):])
        elif line.startswith("--- "):
            marker_old = _marker_path(line, "--- ", "a/")
        elif line.startswith("+++ "):
            marker_new = _marker_path(line, "+++ ", "b/")

    old_path = rename_from or marker_old or old_path
    new_path = rename_to or marker_new or new_path

    return DiffBlock(
        old_path=old_path,
        new_path=new_path,
        change_kind=classify_header_area(area),
        is_binary=any(is_binary_marker(line) for line in lines),
        raw_text=raw_text,
    )


def tokenize_diff(text: str | None) -> list[DiffBlock]:
    """Split `text` into one DiffBlock per `diff --git` header.

    Input that does not begin with a file header yields no blocks. Otherwise
    the blocks' raw_text values concatenate back to `text` exactly.
    """
    text = text or ""
    starts = [m.start() for m in _FILE_HEADER_RE.finditer(text)]
    if not starts or starts[0] != 0:
        return []
    bounds = starts + [len(text)]
    return [_build_block(text[start:end]) for start, end in zip(bounds, bounds[1:])]
