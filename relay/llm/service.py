"""
LLM Service — the inbound contract used by the UI layer.

Wires config, registry, cache and router together once, then exposes:
list_available, send_request, generate_report, interpret_question,
suggest_insights and clear_cache.

Usage:
    from relay.llm.service import LLMService

    async with LLMService.from_env() as service:
        insights = await service.suggest_insights({"offices": [...]})
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

import httpx

from relay.config.loader import build_registry, load_relay_config
from relay.config.schema import RelayConfig
from relay.llm import insights
from relay.llm.cache import ResponseCache
from relay.llm.registry import ProviderDescriptor
from relay.llm.router import LLMRequest, LLMResponse, RequestRouter


class LLMService:
    """Facade over one RequestRouter and its cache."""

    def __init__(self, router: RequestRouter):
        self._router = router

    @classmethod
    def from_config(
        cls,
        config: RelayConfig,
        env: Optional[Mapping[str, str]] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "LLMService":
        registry = build_registry(config, env)
        cache = ResponseCache(
            ttl_seconds=config.cache_ttl_seconds,
            max_entries=config.cache_max_entries,
        )
        router = RequestRouter(
            registry,
            cache,
            client=client,
            system_prompt=config.system_prompt,
            default_max_tokens=config.default_max_tokens,
            timeout=config.request_timeout_seconds,
        )
        return cls(router)

    @classmethod
    def from_env(
        cls,
        config_path: Optional[str | Path] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "LLMService":
        """Build the service from RELAY_CONFIG_PATH / defaults and os.environ."""
        return cls.from_config(load_relay_config(config_path), client=client)

    @property
    def router(self) -> RequestRouter:
        return self._router

    async def aclose(self) -> None:
        await self._router.aclose()

    async def __aenter__(self) -> "LLMService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # --- Inbound Contract ---

    def list_available(self) -> list[ProviderDescriptor]:
        return self._router.list_available()

    async def send_request(self, request: LLMRequest) -> LLMResponse:
        return await self._router.send_request(request)

    async def generate_report(
        self, data_context: Any, template: str, **options: Any
    ) -> str:
        return await insights.generate_report(
            self._router, data_context, template, **options
        )

    async def interpret_question(
        self, question: str, data_context: Any, **options: Any
    ) -> str:
        return await insights.interpret_question(
            self._router, question, data_context, **options
        )

    async def suggest_insights(self, data_context: Any, **options: Any) -> list[str]:
        return await insights.suggest_insights(self._router, data_context, **options)

    def clear_cache(self) -> int:
        return self._router.clear_cache()
