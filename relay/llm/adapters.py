"""
Provider Adapters — per-provider wire-format translation.

Each provider family is one ProviderAdapter: a bundle of plain functions
looked up by provider name. There is no class hierarchy; adding a provider
means adding one entry to ADAPTERS (and a descriptor to the registry),
never touching the router.

Capabilities per adapter:
- build_request_body: abstract request → provider JSON body
- extract_text: full response body → text ("" if the path is absent)
- extract_token_usage: full response body → TokenUsage or None (never raises)
- extract_stream_chunk_text: one decoded SSE payload → text increment
- auth_headers: credential → HTTP headers

Wire formats:
- OpenAI / DeepSeek: chat-completions, system persona inline as a
  "system" message, deltas in choices[0].delta.content
- Claude: messages API, system persona in the top-level "system" field,
  deltas in content_block_delta events
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from relay.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"

DEFAULT_SYSTEM_PROMPT = (
    "You are an assistant specialized in analyzing data about currency "
    "exchange offices in Romania. Answer concisely and directly, giving "
    "relevant and factual information."
)


# ---------------------------------------------------------------------------
# Token Usage
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TokenUsage:
    """Token accounting reported by a provider. Advisory only."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


# ---------------------------------------------------------------------------
# Adapter Type
# ---------------------------------------------------------------------------

BodyBuilder = Callable[[str, str, int, float, str], dict[str, Any]]


@dataclass(frozen=True)
class ProviderAdapter:
    """The function set that bridges one provider family."""

    build_request_body: BodyBuilder
    extract_text: Callable[[Any], str]
    extract_token_usage: Callable[[Any], Optional[TokenUsage]]
    extract_stream_chunk_text: Callable[[Any], str]
    auth_headers: Callable[[str], dict[str, str]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _dig(data: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists; return None as soon as a step is missing."""
    current = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _best_effort(
    func: Callable[[Any], Optional[TokenUsage]],
) -> Callable[[Any], Optional[TokenUsage]]:
    """Token accounting must never fail a request: errors become None."""

    def wrapper(body: Any) -> Optional[TokenUsage]:
        try:
            return func(body)
        except Exception as e:
            logger.warning(
                "token_usage_unavailable",
                extra={"error": str(e)[:200]},
            )
            return None

    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    return wrapper


def _bearer_headers(credential: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {credential}",
    }


# ---------------------------------------------------------------------------
# Chat-completions family (OpenAI, DeepSeek)
# ---------------------------------------------------------------------------

def _chat_completion_body(
    prompt: str,
    model: str,
    max_tokens: int,
    temperature: float,
    system_prompt: str,
) -> dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ],
        "max_tokens": max_tokens,
        "temperature": temperature,
    }


def _chat_completion_text(body: Any) -> str:
    return _as_text(_dig(body, "choices", 0, "message", "content"))


def _chat_completion_usage(body: Any) -> Optional[TokenUsage]:
    usage = _dig(body, "usage")
    if not isinstance(usage, dict):
        return None
    return TokenUsage(
        prompt_tokens=int(usage.get("prompt_tokens") or 0),
        completion_tokens=int(usage.get("completion_tokens") or 0),
        total_tokens=int(usage.get("total_tokens") or 0),
    )


def _chat_completion_delta(event: Any) -> str:
    return _as_text(_dig(event, "choices", 0, "delta", "content"))


# ---------------------------------------------------------------------------
# Anthropic messages (Claude)
# ---------------------------------------------------------------------------

def _claude_body(
    prompt: str,
    model: str,
    max_tokens: int,
    temperature: float,
    system_prompt: str,
) -> dict[str, Any]:
    return {
        "model": model,
        "system": system_prompt,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": max_tokens,
        "temperature": temperature,
    }


def _claude_text(body: Any) -> str:
    return _as_text(_dig(body, "content", 0, "text"))


def _claude_usage(body: Any) -> Optional[TokenUsage]:
    usage = _dig(body, "usage")
    if not isinstance(usage, dict):
        return None
    input_tokens = int(usage.get("input_tokens") or 0)
    output_tokens = int(usage.get("output_tokens") or 0)
    return TokenUsage(
        prompt_tokens=input_tokens,
        completion_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
    )


def _claude_delta(event: Any) -> str:
    if _dig(event, "type") != "content_block_delta":
        return ""
    return _as_text(_dig(event, "delta", "text"))


def _claude_headers(credential: str) -> dict[str, str]:
    headers = _bearer_headers(credential)
    headers["x-api-key"] = credential
    headers["anthropic-version"] = ANTHROPIC_VERSION
    return headers


# ---------------------------------------------------------------------------
# Adapter Table
# ---------------------------------------------------------------------------

CHAT_COMPLETIONS_ADAPTER = ProviderAdapter(
    build_request_body=_chat_completion_body,
    extract_text=_chat_completion_text,
    extract_token_usage=_best_effort(_chat_completion_usage),
    extract_stream_chunk_text=_chat_completion_delta,
    auth_headers=_bearer_headers,
)

CLAUDE_ADAPTER = ProviderAdapter(
    build_request_body=_claude_body,
    extract_text=_claude_text,
    extract_token_usage=_best_effort(_claude_usage),
    extract_stream_chunk_text=_claude_delta,
    auth_headers=_claude_headers,
)

ADAPTERS: dict[str, ProviderAdapter] = {
    "openai": CHAT_COMPLETIONS_ADAPTER,
    "claude": CLAUDE_ADAPTER,
    "deepseek": CHAT_COMPLETIONS_ADAPTER,
}


def get_adapter(
    provider_name: str,
    adapters: Optional[dict[str, ProviderAdapter]] = None,
) -> ProviderAdapter:
    """Return the adapter for a provider, or raise ConfigurationError."""
    table = ADAPTERS if adapters is None else adapters
    adapter = table.get(provider_name)
    if adapter is None:
        raise ConfigurationError(
            f"No adapter registered for provider '{provider_name}'",
            provider=provider_name,
        )
    return adapter
