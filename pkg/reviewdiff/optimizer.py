"""Token reduction for diffs sent to a size-limited reviewer.

Blocks that carry little review signal (deleted files, binaries, renames with
only cosmetic edits) are replaced by a file header, the metadata lines that
classify them, and a one-line placeholder. Everything else is passed through
byte-for-byte. The output is meant for a text consumer only; it cannot be
applied as a patch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .models import ChangeKind, DiffBlock, header_area
from .tokenizer import is_binary_marker

DEFAULT_RENAME_MATERIALITY_THRESHOLD = 5

DELETED_PLACEHOLDER = "[deleted file: content omitted]"
BINARY_PLACEHOLDER = "[binary file: content omitted]"
RENAME_PLACEHOLDER = "[renamed file: no significant code changes]"

# Header-area lines that survive summarization; they are what the tokenizer
# reads to classify a block, so a second pass sees the same block.
_RETAINED_PREFIXES = (
    "old mode ",
    "new mode ",
    "deleted file mode",
    "new file mode",
    "similarity index ",
    "dissimilarity index ",
    "rename from ",
    "rename to ",
    "copy from ",
    "copy to ",
)
_RETAINED_LINES = {"--- /dev/null", "+++ /dev/null"}


@dataclass
class OptimizerStats:
    """Counters for operator-facing logging."""

    added: int = 0
    modified: int = 0
    deleted: int = 0
    renamed: int = 0
    binary: int = 0
    summarized: int = 0
    original_chars: int = 0
    optimized_chars: int = 0
    elided_chars: int = 0
    summarized_paths: list[str] = field(default_factory=list)

    def count(self, kind: ChangeKind) -> None:
        setattr(self, kind.value, getattr(self, kind.value) + 1)

    def as_dict(self) -> dict[str, object]:
        return {
            "files": {
                "added": self.added,
                "modified": self.modified,
                "deleted": self.deleted,
                "renamed": self.renamed,
                "binary": self.binary,
            },
            "summarized": self.summarized,
            "summarized_paths": list(self.summarized_paths),
            "original_chars": self.original_chars,
            "optimized_chars": self.optimized_chars,
            "elided_chars": self.elided_chars,
        }

    def summary(self) -> str:
        return (
            f"{self.added} added, {self.modified} modified, {self.deleted} deleted, "
            f"{self.renamed} renamed, {self.binary} binary; "
            f"summarized {self.summarized} file(s), "
            f"~{self.elided_chars} chars elided ({self.original_chars} -> {self.optimized_chars})"
        )


def material_line_count(block: DiffBlock) -> int:
    """Count pure additions/deletions inside hunk bodies."""
    count = 0
    in_hunks = False
    for line in block.lines[1:]:
        if line.startswith("@@"):
            in_hunks = True
            continue
        if in_hunks and line.startswith(("+", "-")):
            count += 1
    return count


def _retained_metadata(block: DiffBlock) -> list[str]:
    kept: list[str] = []
    for line in header_area(block.lines):
        if is_binary_marker(line):
            break
        stripped = line.rstrip("\r")
        if stripped.startswith(_RETAINED_PREFIXES) or stripped in _RETAINED_LINES:
            kept.append(line)
    return kept


def _segment(lines: Iterable[str]) -> str:
    return "\n".join(lines) + "\n"


def summarize_block(block: DiffBlock, placeholder: str, *, binary_line: bool = False) -> str:
    lines = [block.header_line]
    lines.extend(_retained_metadata(block))
    if binary_line:
        lines.append(f"Binary files a/{block.old_path} and b/{block.new_path} differ")
    lines.append(placeholder)
    return _segment(lines)


def optimize_block(
    block: DiffBlock,
    *,
    rename_threshold: int = DEFAULT_RENAME_MATERIALITY_THRESHOLD,
) -> str | None:
    """Return the placeholder text for `block`, or None to keep it verbatim."""
    if block.change_kind is ChangeKind.DELETED:
        return summarize_block(block, DELETED_PLACEHOLDER)
    if block.is_binary:
        return summarize_block(block, BINARY_PLACEHOLDER, binary_line=True)
    if block.change_kind is ChangeKind.RENAMED and material_line_count(block) <= rename_threshold:
        return summarize_block(block, RENAME_PLACEHOLDER)
    return None


def optimize_diff(
    blocks: Iterable[DiffBlock],
    *,
    rename_threshold: int = DEFAULT_RENAME_MATERIALITY_THRESHOLD,
) -> tuple[str, OptimizerStats]:
    """Concatenate blocks, replacing low-information ones with placeholders."""
    stats = OptimizerStats()
    parts: list[str] = []

    for block in blocks:
        stats.count(block.change_kind)
        if block.is_binary:
            stats.binary += 1
        stats.original_chars += len(block.raw_text)

        replacement = optimize_block(block, rename_threshold=rename_threshold)
        if replacement is None:
            parts.append(block.raw_text)
            continue

        stats.summarized += 1
        stats.summarized_paths.append(block.path)
        stats.elided_chars += max(0, len(block.raw_text) - len(replacement))
        parts.append(replacement)

    text = "".join(parts)
    stats.optimized_chars = len(text)
    return text, stats
