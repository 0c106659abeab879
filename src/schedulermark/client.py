"""Chat-completions client used for both solver and judge requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import requests

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_REFERER = "https://schedulermark.com"
DEFAULT_TITLE = "SchedulerMark"
DEFAULT_MAX_TOKENS = 4096


class CompletionError(RuntimeError):
    """Base class for a failed completion call."""


class RequestFailure(CompletionError):
    """The endpoint answered with a non-success status (or could not be reached)."""

    def __init__(self, model: str, status: int | None, reason: str, body: str) -> None:
        self.model = model
        self.status = status
        self.reason = reason
        self.body = body
        status_text = f"{status} {reason}".strip() if status is not None else reason
        super().__init__(f"OpenRouter error for {model}: {status_text}\n{body}")


class ShapeMismatch(CompletionError):
    """The response body did not carry message content in a recognised shape."""


class ChatClient(Protocol):
    """Minimal protocol for single-prompt completion backends."""

    def complete(self, model: str, prompt: str, *, max_tokens: int | None = None) -> str:
        ...


def _coerce_content(value: Any) -> str | None:
    """Normalize message content into text; ``None`` means an unknown shape."""

    if isinstance(value, str):
        return value

    if isinstance(value, list):
        chunks: list[str] = []
        for item in value:
            if isinstance(item, str):
                chunks.append(item)
                continue
            text = item.get("text") if isinstance(item, dict) else None
            chunks.append(text if isinstance(text, str) else "")
        return "\n".join(chunks)

    return None


@dataclass
class OpenRouterClient:
    """Client for the OpenRouter (OpenAI-compatible) chat completions API.

    Every call is a single request: there is no retry, backoff or rate limiting.
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    referer: str = DEFAULT_REFERER
    title: str = DEFAULT_TITLE
    timeout_sec: int = 600
    default_max_tokens: int = DEFAULT_MAX_TOKENS

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }

    def complete(self, model: str, prompt: str, *, max_tokens: int | None = None) -> str:
        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens if max_tokens is not None else self.default_max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        try:
            response = requests.post(
                f"{self.base_url.rstrip('/')}/chat/completions",
                json=payload,
                headers=self._headers(),
                timeout=self.timeout_sec,
            )
        except requests.RequestException as exc:
            raise RequestFailure(model, None, type(exc).__name__, str(exc)) from exc

        if not 200 <= response.status_code < 300:
            raise RequestFailure(
                model,
                response.status_code,
                response.reason or "",
                response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ShapeMismatch(f"Unexpected response shape for {model}: body is not JSON") from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = _coerce_content(message.get("content") if isinstance(message, dict) else None)

        if content is None:
            raise ShapeMismatch(f"Unexpected response shape for {model}")
        return content
