"""Resolve (path, new-file line) to a diff position for an inline comment.

Reviewers sometimes cite a line next to the changed one, so a miss falls back
to the closest addressable line of the hunk whose new-line range encloses the
request. Anything outside every hunk is unresolvable (`None`): the caller
should report it outside the inline comments rather than guess.
"""

from __future__ import annotations

from .models import FileIndex, PositionIndex


def normalize_path(path: object) -> str:
    text = str(path or "").strip()
    if text.startswith(("a/", "b/")):
        text = text[2:]
    if text.startswith("./"):
        text = text[2:]
    return text


def _lookup_keys(path: object) -> list[str]:
    """The path as given first, then with diff/relative prefixes removed."""
    raw = str(path or "").strip()
    keys = [raw] if raw else []
    normalized = normalize_path(raw)
    if normalized and normalized != raw:
        keys.append(normalized)
    return keys


def find_file(index: PositionIndex, path: object) -> FileIndex | None:
    """Look up by new path, then by the pre-rename path.

    A repo path may itself begin with "a/" or "b/", so the unmodified path is
    tried before the prefix-stripped one.
    """
    keys = _lookup_keys(path)
    for key in keys:
        entry = index.get(key)
        if entry is not None:
            return entry
    for key in keys:
        for candidate in index.values():
            if candidate.old_path == key:
                return candidate
    return None


def _as_line(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        line = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return line if line > 0 else None


def resolve_in_file(file_index: FileIndex, line: object) -> int | None:
    target = _as_line(line)
    if target is None:
        return None

    for hunk in file_index.hunks:
        for diff_line in hunk.addressable_lines():
            if diff_line.new_line == target:
                return diff_line.position

    for hunk in file_index.hunks:
        bounds = hunk.new_line_range()
        if bounds is None or not (bounds[0] <= target <= bounds[1]):
            continue
        best = min(
            hunk.addressable_lines(),
            key=lambda candidate: abs(candidate.new_line - target),  # type: ignore[operator]
        )
        return best.position
    return None


def resolve_position(index: PositionIndex, path: object, line: object) -> int | None:
    """Return the diff position for `line` of `path`, or None when unplaceable."""
    file_index = find_file(index, path)
    if file_index is None:
        return None
    return resolve_in_file(file_index, line)
