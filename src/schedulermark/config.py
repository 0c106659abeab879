"""Model pools and runtime settings resolved from CLI flags and the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .client import DEFAULT_BASE_URL, DEFAULT_REFERER, DEFAULT_TITLE

DEFAULT_MODELS: tuple[str, ...] = (
    "google/gemini-3-pro-preview",
    "anthropic/claude-sonnet-4.5",
    "openai/gpt-5.1",
    "anthropic/claude-opus-4.1",
    "x-ai/grok-4",
    "qwen/qwen3-max",
    "openai/gpt-5.1-codex",
    "moonshotai/kimi-k2-thinking",
)


class ConfigError(ValueError):
    """Settings are missing or unusable; the run cannot start."""


@dataclass(frozen=True)
class BenchmarkSettings:
    api_key: str
    solver_models: tuple[str, ...] = DEFAULT_MODELS
    judge_models: tuple[str, ...] = DEFAULT_MODELS
    base_url: str = DEFAULT_BASE_URL
    referer: str = DEFAULT_REFERER
    title: str = DEFAULT_TITLE
    output_dir: Path = Path(".")
    solver_max_tokens: int = 4096
    judge_max_tokens: int = 4096
    request_timeout: int = 600


def _clean_models(models: Sequence[str] | None, default: tuple[str, ...], label: str) -> tuple[str, ...]:
    if models is None:
        return default
    cleaned = tuple(m.strip() for m in models if m and m.strip())
    if not cleaned:
        raise ConfigError(f"No {label} models configured.")
    return cleaned


def resolve_settings(
    *,
    api_key: str | None = None,
    solver_models: Sequence[str] | None = None,
    judge_models: Sequence[str] | None = None,
    base_url: str | None = None,
    referer: str | None = None,
    title: str | None = None,
    output_dir: str | Path | None = None,
    solver_max_tokens: int = 4096,
    judge_max_tokens: int = 4096,
    request_timeout: int = 600,
    env: Mapping[str, str] | None = None,
    require_api_key: bool = True,
) -> BenchmarkSettings:
    """Merge explicit values over ``OPENROUTER_*`` / ``SCHEDULERMARK_*`` environment variables."""

    environ = os.environ if env is None else env

    key = api_key or environ.get("OPENROUTER_API_KEY") or ""
    if require_api_key and not key:
        raise ConfigError("Missing OPENROUTER_API_KEY in environment.")

    if solver_max_tokens <= 0 or judge_max_tokens <= 0:
        raise ConfigError("Token budgets must be positive.")

    return BenchmarkSettings(
        api_key=key,
        solver_models=_clean_models(solver_models, DEFAULT_MODELS, "solver"),
        judge_models=_clean_models(judge_models, DEFAULT_MODELS, "judge"),
        base_url=base_url or environ.get("OPENROUTER_BASE_URL") or DEFAULT_BASE_URL,
        referer=referer or environ.get("OPENROUTER_REFERER") or DEFAULT_REFERER,
        title=title or environ.get("OPENROUTER_TITLE") or DEFAULT_TITLE,
        output_dir=Path(output_dir or environ.get("SCHEDULERMARK_OUTPUT_DIR") or ".").expanduser(),
        solver_max_tokens=solver_max_tokens,
        judge_max_tokens=judge_max_tokens,
        request_timeout=request_timeout,
    )
