"""Tokenize once, then derive the reduced diff and the position index."""

from __future__ import annotations

from dataclasses import dataclass

from .models import DiffBlock, PositionIndex
from .optimizer import DEFAULT_RENAME_MATERIALITY_THRESHOLD, OptimizerStats, optimize_diff
from .positions import build_position_index
from .resolver import resolve_position
from .tokenizer import tokenize_diff


@dataclass(frozen=True)
class DiffAnalysis:
    blocks: tuple[DiffBlock, ...]
    optimized_text: str
    stats: OptimizerStats
    index: PositionIndex

    def resolve(self, path: object, line: object) -> int | None:
        return resolve_position(self.index, path, line)


def analyze_diff(
    text: str | None,
    *,
    rename_threshold: int = DEFAULT_RENAME_MATERIALITY_THRESHOLD,
) -> DiffAnalysis:
    blocks = tokenize_diff(text)
    optimized_text, stats = optimize_diff(blocks, rename_threshold=rename_threshold)
    return DiffAnalysis(
        blocks=tuple(blocks),
        optimized_text=optimized_text,
        stats=stats,
        index=build_position_index(blocks),
    )
