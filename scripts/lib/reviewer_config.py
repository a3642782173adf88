"""Typed loader for defaults/config.yml plus action environment overrides.

Centralizes parsing/validation so the CLIs never read raw YAML or env vars.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_MODEL = "anthropic/claude-3.5-sonnet"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 4000
DEFAULT_MAX_DIFF_SIZE = 100_000
DEFAULT_RENAME_MATERIALITY_THRESHOLD = 5
DEFAULT_MAX_INLINE_COMMENTS = 30


class ConfigError(RuntimeError):
    """Invalid or missing reviewer configuration."""


@dataclass(frozen=True)
class ModelConfig:
    """Completion request settings."""
    default: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS


@dataclass(frozen=True)
class DiffConfig:
    """Diff size limits and optimizer tuning."""
    max_size: int = DEFAULT_MAX_DIFF_SIZE
    rename_materiality_threshold: int = DEFAULT_RENAME_MATERIALITY_THRESHOLD


@dataclass(frozen=True)
class ReviewConfig:
    """Prompt and inline comment settings."""
    focus: list[str] = field(default_factory=list)
    max_inline_comments: int = DEFAULT_MAX_INLINE_COMMENTS
    custom_prompt: str = ""
    system_prompt: str = ""


@dataclass(frozen=True)
class ReviewerConfig:
    model: ModelConfig = field(default_factory=ModelConfig)
    diff: DiffConfig = field(default_factory=DiffConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)


def _require_mapping(value: Any, ctx: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{ctx}: expected mapping")
    return value


def _require_str(value: Any, ctx: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{ctx}: expected string")
    s = value.strip()
    if not s:
        raise ConfigError(f"{ctx}: must be non-empty")
    return s


def _optional_text(value: Any, ctx: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{ctx}: expected string")
    return value.strip()


def _require_positive_int(value: Any, ctx: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{ctx}: expected integer")
    if value < 1:
        raise ConfigError(f"{ctx}: must be >= 1")
    return value


def _require_non_negative_int(value: Any, ctx: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{ctx}: expected integer")
    if value < 0:
        raise ConfigError(f"{ctx}: must be >= 0")
    return value


def _require_temperature(value: Any, ctx: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{ctx}: expected number")
    as_float = float(value)
    if as_float < 0 or as_float > 2:
        raise ConfigError(f"{ctx}: must be between 0 and 2")
    return as_float


def _focus_list(value: Any, ctx: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ConfigError(f"{ctx}: expected list or comma-separated string")
    out: list[str] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str):
            raise ConfigError(f"{ctx}[{idx}]: expected string")
        key = item.strip().lower()
        if key and key not in out:
            out.append(key)
    return out


def _load_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text())
    except FileNotFoundError:
        raise ConfigError(f"missing config file: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e


def parse_reviewer_config(raw: Any) -> ReviewerConfig:
    if raw is None:
        return ReviewerConfig()
    cfg = _require_mapping(raw, "config")

    model = ModelConfig()
    if cfg.get("model") is not None:
        model_cfg = _require_mapping(cfg["model"], "config.model")
        model = ModelConfig(
            default=_require_str(model_cfg.get("default", DEFAULT_MODEL), "config.model.default"),
            temperature=_require_temperature(
                model_cfg.get("temperature", DEFAULT_TEMPERATURE), "config.model.temperature"
            ),
            max_tokens=_require_positive_int(
                model_cfg.get("max_tokens", DEFAULT_MAX_TOKENS), "config.model.max_tokens"
            ),
        )

    diff = DiffConfig()
    if cfg.get("diff") is not None:
        diff_cfg = _require_mapping(cfg["diff"], "config.diff")
        diff = DiffConfig(
            max_size=_require_positive_int(
                diff_cfg.get("max_size", DEFAULT_MAX_DIFF_SIZE), "config.diff.max_size"
            ),
            rename_materiality_threshold=_require_non_negative_int(
                diff_cfg.get("rename_materiality_threshold", DEFAULT_RENAME_MATERIALITY_THRESHOLD),
                "config.diff.rename_materiality_threshold",
            ),
        )

    review = ReviewConfig()
    if cfg.get("review") is not None:
        review_cfg = _require_mapping(cfg["review"], "config.review")
        review = ReviewConfig(
            focus=_focus_list(review_cfg.get("focus"), "config.review.focus"),
            max_inline_comments=_require_positive_int(
                review_cfg.get("max_inline_comments", DEFAULT_MAX_INLINE_COMMENTS),
                "config.review.max_inline_comments",
            ),
            custom_prompt=_optional_text(review_cfg.get("custom_prompt"), "config.review.custom_prompt"),
            system_prompt=_optional_text(review_cfg.get("system_prompt"), "config.review.system_prompt"),
        )

    return ReviewerConfig(model=model, diff=diff, review=review)


def _env_positive_int(env: Mapping[str, str], name: str) -> int | None:
    raw = (env.get(name) or "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name}: expected integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{name}: must be >= 1")
    return value


def _env_temperature(env: Mapping[str, str], name: str) -> float | None:
    raw = (env.get(name) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name}: expected number, got {raw!r}") from None
    return _require_temperature(value, name)


def apply_env_overrides(config: ReviewerConfig, env: Mapping[str, str]) -> ReviewerConfig:
    """Layer the action's environment variables over file settings."""
    model = config.model
    model_name = (env.get("AI_MODEL") or "").strip()
    if model_name:
        model = replace(model, default=model_name)
    temperature = _env_temperature(env, "TEMPERATURE")
    if temperature is not None:
        model = replace(model, temperature=temperature)

    diff = config.diff
    max_size = _env_positive_int(env, "MAX_DIFF_SIZE")
    if max_size is not None:
        diff = replace(diff, max_size=max_size)

    review = config.review
    if (env.get("REVIEW_FOCUS") or "").strip():
        review = replace(review, focus=_focus_list(env["REVIEW_FOCUS"], "REVIEW_FOCUS"))
    if (env.get("CUSTOM_PROMPT") or "").strip():
        review = replace(review, custom_prompt=env["CUSTOM_PROMPT"].strip())
    if (env.get("SYSTEM_PROMPT") or "").strip():
        review = replace(review, system_prompt=env["SYSTEM_PROMPT"].strip())

    return ReviewerConfig(model=model, diff=diff, review=review)


def load_reviewer_config(path: Path | None, env: Mapping[str, str] | None = None) -> ReviewerConfig:
    """Load config from `path` (defaults when None) and apply env overrides."""
    config = parse_reviewer_config(_load_yaml(path)) if path is not None else ReviewerConfig()
    if env is not None:
        config = apply_env_overrides(config, env)
    return config
