"""Value types shared by the diff tokenizer, optimizer, indexer and resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


def split_lines(text: str) -> list[str]:
    """Split on "\\n" only; a trailing newline does not produce an empty line.

    `str.splitlines` also breaks on form feeds and Unicode separators, which
    would shift diff positions for lines that contain them.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def header_area(lines: list[str]) -> list[str]:
    """Lines between the file header and the first hunk header."""
    area: list[str] = []
    for line in lines[1:]:
        if line.startswith("@@"):
            break
        area.append(line)
    return area


class ChangeKind(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class LineKind(str, Enum):
    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"


@dataclass(frozen=True)
class DiffBlock:
    """One file's slice of a unified diff, header included."""

    old_path: str
    new_path: str
    change_kind: ChangeKind
    is_binary: bool
    raw_text: str

    @property
    def path(self) -> str:
        """Best display path: new path, or old path for malformed headers."""
        return self.new_path or self.old_path

    @property
    def lines(self) -> list[str]:
        return split_lines(self.raw_text)

    @property
    def header_line(self) -> str:
        lines = self.lines
        return lines[0] if lines else ""

    def header_area(self) -> list[str]:
        return header_area(self.lines)


@dataclass(frozen=True)
class DiffLine:
    kind: LineKind
    position: int
    new_line: int | None
    text: str = ""

    @property
    def is_deletion(self) -> bool:
        return self.kind is LineKind.DELETION


@dataclass(frozen=True)
class Hunk:
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    position: int
    lines: tuple[DiffLine, ...] = field(default_factory=tuple)

    def addressable_lines(self) -> list[DiffLine]:
        """Context and addition lines, in scan order."""
        return [line for line in self.lines if not line.is_deletion]

    def new_line_range(self) -> tuple[int, int] | None:
        addressable = self.addressable_lines()
        if not addressable:
            return None
        return addressable[0].new_line, addressable[-1].new_line  # type: ignore[return-value]


@dataclass(frozen=True)
class FileIndex:
    """Hunks of one file, addressable by new-file line number."""

    path: str
    old_path: str
    change_kind: ChangeKind
    hunks: tuple[Hunk, ...] = field(default_factory=tuple)

    def position_for(self, line: int) -> int | None:
        from .resolver import resolve_in_file

        return resolve_in_file(self, line)


PositionIndex = dict[str, FileIndex]
