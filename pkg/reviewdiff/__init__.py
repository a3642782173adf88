"""Unified diff reduction and GitHub review position indexing."""

from .models import ChangeKind, DiffBlock, DiffLine, FileIndex, Hunk, LineKind, PositionIndex
from .optimizer import DEFAULT_RENAME_MATERIALITY_THRESHOLD, OptimizerStats, optimize_diff
from .pipeline import DiffAnalysis, analyze_diff
from .positions import build_position_index, parse_hunk_header
from .resolver import normalize_path, resolve_position
from .tokenizer import parse_header_paths, tokenize_diff

__all__ = [
    "ChangeKind",
    "DEFAULT_RENAME_MATERIALITY_THRESHOLD",
    "DiffAnalysis",
    "DiffBlock",
    "DiffLine",
    "FileIndex",
    "Hunk",
    "LineKind",
    "OptimizerStats",
    "PositionIndex",
    "analyze_diff",
    "build_position_index",
    "normalize_path",
    "optimize_diff",
    "parse_header_paths",
    "parse_hunk_header",
    "resolve_position",
    "tokenize_diff",
]
