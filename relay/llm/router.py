"""
Request Router — provider selection, dispatch, caching and fallback.

send_request() walks one request through:

    CacheCheck → ProviderSelect → Dispatch → {stream | sync} → CacheStore

- CacheCheck / CacheStore apply to non-streaming requests only.
- ProviderSelect asks the registry; an explicit provider is honored when
  it has a credential, otherwise the best available provider is used.
- Dispatch builds the provider body through the adapter and POSTs it with
  httpx. Streaming requests (when the provider streams and a callback is
  given) are decoded frame by frame and reported through the callback.
- Failure: if the caller pinned a provider, the request is retried exactly
  once with the provider cleared. Otherwise the error surfaces as
  ProviderCommunicationError. There is no retry loop.

Usage:
    from relay.llm.router import RequestRouter, LLMRequest

    async with RequestRouter(registry, ResponseCache()) as router:
        response = await router.send_request(
            LLMRequest(prompt="Which office has the best EUR rate?")
        )
        print(response.text, response.provider_name, response.token_usage)
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

import httpx

from relay.exceptions import (
    ConfigurationError,
    NoProviderAvailable,
    ProviderCommunicationError,
)
from relay.llm.adapters import (
    DEFAULT_SYSTEM_PROMPT,
    ProviderAdapter,
    TokenUsage,
    get_adapter,
)
from relay.llm.cache import DEFAULT_TEMPERATURE, ResponseCache
from relay.llm.registry import ProviderDescriptor, ProviderRegistry
from relay.llm.streaming import StreamAccumulator
from relay.observability.logging_config import (
    clear_request_id,
    get_request_id,
    set_request_id,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1000
DEFAULT_TIMEOUT_SECONDS = 60.0


# ---------------------------------------------------------------------------
# Request / Response Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LLMRequest:
    """A caller's request. Immutable once submitted."""

    prompt: str
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: float = DEFAULT_TEMPERATURE
    provider_name: Optional[str] = None
    streaming: bool = False
    on_stream_update: Optional[Callable[[str], None]] = field(
        default=None, compare=False, repr=False,
    )


@dataclass(frozen=True)
class LLMResponse:
    """Normalized result from any provider. Shared by cache hits, so frozen."""

    text: str
    provider_name: str
    model_name: str
    token_usage: Optional[TokenUsage] = None


# ---------------------------------------------------------------------------
# Request Router
# ---------------------------------------------------------------------------

class RequestRouter:
    """
    Routes requests across providers with caching and bounded fallback.

    Safe to share between concurrent asyncio tasks: per-call state lives on
    the stack, the cache never awaits, and usage counters are additive.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        cache: Optional[ResponseCache] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        adapters: Optional[dict[str, ProviderAdapter]] = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        default_max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._registry = registry
        self._cache = cache if cache is not None else ResponseCache()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._adapters = adapters
        self._system_prompt = system_prompt
        self._default_max_tokens = default_max_tokens

        # Usage tracking
        self._dispatch_count: int = 0
        self._cache_hits: int = 0
        self._fallback_count: int = 0
        self._total_prompt_tokens: int = 0
        self._total_completion_tokens: int = 0

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def dispatch_count(self) -> int:
        return self._dispatch_count

    # --- Lifecycle ---

    async def aclose(self) -> None:
        """Close the HTTP client if this router created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RequestRouter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # --- Public API ---

    def list_available(self) -> list[ProviderDescriptor]:
        return self._registry.list_available()

    def clear_cache(self) -> int:
        return self._cache.clear()

    async def send_request(self, request: LLMRequest) -> LLMResponse:
        """
        Send a request to the best provider and return a normalized response.

        Raises:
            NoProviderAvailable: no provider has a credential
            ConfigurationError: the selected provider has no adapter
            ProviderCommunicationError: dispatch failed and no fallback remains
        """
        owns_request_id = get_request_id() is None
        if owns_request_id:
            set_request_id(uuid.uuid4().hex[:12])
        try:
            return await self._send(request)
        finally:
            if owns_request_id:
                clear_request_id()

    # --- State Machine ---

    async def _send(self, request: LLMRequest) -> LLMResponse:
        cache_key: Optional[str] = None
        if not request.streaming:
            cache_key = ResponseCache.make_key(
                request.provider_name,
                request.model,
                request.max_tokens,
                request.temperature,
                request.prompt,
            )
            cached = self._cache.get(cache_key)
            if cached is not None:
                self._cache_hits += 1
                logger.info(
                    "llm_cache_hit",
                    extra={
                        "provider": cached.provider_name,
                        "model": cached.model_name,
                    },
                )
                return cached

        provider = self._registry.resolve(request.provider_name)
        if provider is None:
            raise NoProviderAvailable(requested_provider=request.provider_name)

        adapter = get_adapter(provider.name, self._adapters)
        model = request.model or provider.default_model
        max_tokens = min(
            request.max_tokens or self._default_max_tokens,
            provider.max_tokens,
        )
        temperature = (
            DEFAULT_TEMPERATURE if request.temperature is None else request.temperature
        )

        try:
            body = adapter.build_request_body(
                request.prompt, model, max_tokens, temperature, self._system_prompt,
            )
            if (
                request.streaming
                and provider.supports_streaming
                and request.on_stream_update is not None
            ):
                return await self._dispatch_stream(provider, adapter, model, body, request)
            response = await self._dispatch_sync(provider, adapter, model, body)
        except ConfigurationError:
            raise
        except Exception as e:
            failure = e
        else:
            if cache_key is not None:
                self._cache.put(
                    cache_key, response, provider=provider.name, model=model,
                )
            return response

        logger.warning(
            "llm_provider_failed",
            extra={
                "provider": provider.name,
                "model": model,
                "requested_provider": request.provider_name,
                "error": str(failure)[:200],
            },
        )

        if request.provider_name:
            self._fallback_count += 1
            logger.info(
                "llm_fallback_attempt",
                extra={"requested_provider": request.provider_name},
            )
            return await self._send(replace(request, provider_name=None))

        status_code = None
        if isinstance(failure, httpx.HTTPStatusError):
            status_code = failure.response.status_code
        raise ProviderCommunicationError(
            f"Error communicating with the LLM API: {failure}",
            provider=provider.name,
            status_code=status_code,
        ) from failure

    # --- Dispatch ---

    async def _dispatch_sync(
        self,
        provider: ProviderDescriptor,
        adapter: ProviderAdapter,
        model: str,
        body: dict[str, Any],
    ) -> LLMResponse:
        """POST the body and normalize the full JSON response."""
        start = time.monotonic()
        self._dispatch_count += 1
        logger.debug(
            "llm_dispatch",
            extra={"provider": provider.name, "model": model},
        )

        resp = await self._client.post(
            provider.endpoint,
            json=body,
            headers=adapter.auth_headers(provider.credential),
        )
        resp.raise_for_status()
        data = resp.json()

        text = adapter.extract_text(data)
        usage = adapter.extract_token_usage(data)
        elapsed = (time.monotonic() - start) * 1000

        if usage is not None:
            self._total_prompt_tokens += usage.prompt_tokens
            self._total_completion_tokens += usage.completion_tokens

        logger.info(
            "llm_completed",
            extra={
                "provider": provider.name,
                "model": model,
                "tokens": usage.total_tokens if usage else None,
                "latency_ms": round(elapsed, 1),
            },
        )

        return LLMResponse(
            text=text,
            provider_name=provider.name,
            model_name=model,
            token_usage=usage,
        )

    async def _dispatch_stream(
        self,
        provider: ProviderDescriptor,
        adapter: ProviderAdapter,
        model: str,
        body: dict[str, Any],
        request: LLMRequest,
    ) -> LLMResponse:
        """POST with stream=true and accumulate SSE frames via the callback."""
        start = time.monotonic()
        self._dispatch_count += 1
        accumulator = StreamAccumulator(
            adapter.extract_stream_chunk_text,
            request.on_stream_update,
            provider=provider.name,
        )

        async with self._client.stream(
            "POST",
            provider.endpoint,
            json={**body, "stream": True},
            headers=adapter.auth_headers(provider.credential),
        ) as resp:
            resp.raise_for_status()
            await accumulator.consume(resp.aiter_lines())

        elapsed = (time.monotonic() - start) * 1000
        logger.info(
            "llm_stream_completed",
            extra={
                "provider": provider.name,
                "model": model,
                "chunks": accumulator.chunk_count,
                "dropped_frames": accumulator.dropped_frames,
                "latency_ms": round(elapsed, 1),
            },
        )

        return LLMResponse(
            text=accumulator.text,
            provider_name=provider.name,
            model_name=model,
        )

    # --- Usage Tracking ---

    def get_usage_stats(self) -> dict[str, Any]:
        """Return cumulative usage statistics."""
        return {
            "dispatches": self._dispatch_count,
            "cache_hits": self._cache_hits,
            "fallbacks": self._fallback_count,
            "total_prompt_tokens": self._total_prompt_tokens,
            "total_completion_tokens": self._total_completion_tokens,
            "total_tokens": self._total_prompt_tokens + self._total_completion_tokens,
        }

    def reset_usage(self) -> None:
        """Reset usage counters."""
        self._dispatch_count = 0
        self._cache_hits = 0
        self._fallback_count = 0
        self._total_prompt_tokens = 0
        self._total_completion_tokens = 0
