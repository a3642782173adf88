"""Map new-file line numbers to GitHub review diff positions.

GitHub's PR review API accepts `position`, a 1-indexed line offset within a
file's diff: the first `@@` hunk header is position 1, and every following
line of the file's patch (later hunk headers included) adds one. The counter
is file-scoped and is never reset between hunks.

New-file line numbers restart at every hunk from the header's `+newStart`
and only advance on context and addition lines.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from .models import ChangeKind, DiffBlock, DiffLine, FileIndex, Hunk, LineKind, PositionIndex

_HUNK_RE = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? \+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@"
)

_LINE_KINDS = {
    " ": LineKind.CONTEXT,
    "+": LineKind.ADDITION,
    "-": LineKind.DELETION,
}


def parse_hunk_header(line: str) -> tuple[int, int, int, int] | None:
    """Return (old_start, old_count, new_start, new_count); counts default to 1."""
    m = _HUNK_RE.match(line)
    if not m:
        return None
    old_count = m.group("old_count")
    new_count = m.group("new_count")
    return (
        int(m.group("old_start")),
        int(old_count) if old_count is not None else 1,
        int(m.group("new_start")),
        int(new_count) if new_count is not None else 1,
    )


@dataclass
class _OpenHunk:
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    position: int
    lines: list[DiffLine] = field(default_factory=list)

    def freeze(self) -> Hunk:
        return Hunk(
            old_start=self.old_start,
            old_count=self.old_count,
            new_start=self.new_start,
            new_count=self.new_count,
            position=self.position,
            lines=tuple(self.lines),
        )


def is_indexable(block: DiffBlock) -> bool:
    return (
        block.change_kind is not ChangeKind.DELETED
        and not block.is_binary
        and bool(block.new_path)
    )


def index_lines(lines: Iterable[str]) -> list[Hunk]:
    """Build hunks from the lines that follow a file header.

    A malformed `@@` line still occupies a position, but no hunk is open
    until the next valid header, so the lines in between are not indexed.
    """
    hunks: list[Hunk] = []
    current: _OpenHunk | None = None
    position = 0  # file-scoped, continuous across hunks
    new_offset = 0  # non-deletion lines already seen in the current hunk
    in_hunks = False

    for line in lines:
        if line.startswith("@@"):
            in_hunks = True
            position += 1
            if current is not None:
                hunks.append(current.freeze())
                current = None
            header = parse_hunk_header(line)
            if header is not None:
                old_start, old_count, new_start, new_count = header
                current = _OpenHunk(old_start, old_count, new_start, new_count, position)
                new_offset = 0
            continue

        if not in_hunks:
            continue

        if line.startswith("\\"):
            # "\ No newline at end of file"
            position += 1
            continue

        body = line.rstrip("\r")
        if body == "":
            kind = LineKind.CONTEXT
        elif line[0] in _LINE_KINDS:
            kind = _LINE_KINDS[line[0]]
        else:
            continue

        position += 1
        if current is None:
            continue

        if kind is LineKind.DELETION:
            new_line = None
        else:
            new_line = current.new_start + new_offset
            new_offset += 1
        current.lines.append(DiffLine(kind=kind, position=position, new_line=new_line, text=body[1:]))

    if current is not None:
        hunks.append(current.freeze())
    return hunks


def index_block(block: DiffBlock) -> FileIndex:
    return FileIndex(
        path=block.new_path,
        old_path=block.old_path,
        change_kind=block.change_kind,
        hunks=tuple(index_lines(block.lines[1:])),
    )


def build_position_index(blocks: Iterable[DiffBlock]) -> PositionIndex:
    """Index every block except deleted and binary files, keyed by new path."""
    index: PositionIndex = {}
    for block in blocks:
        if not is_indexable(block):
            continue
        if block.new_path in index:
            continue
        index[block.new_path] = index_block(block)
    return index

