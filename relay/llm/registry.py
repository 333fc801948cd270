"""
Provider Registry — static table of LLM backends and priority selection.

A provider is "available" iff its credential is non-empty. Selection is a
pure function of the registry contents, which are fixed at startup:

- list_available(): credentialed providers, ascending priority, ties kept
  in declaration order
- resolve(name): the named provider if known and available, otherwise the
  best available one, otherwise None

Usage:
    from relay.llm.registry import ProviderRegistry, DEFAULT_PROVIDERS

    registry = ProviderRegistry.from_credentials(
        DEFAULT_PROVIDERS, {"claude": "sk-ant-...", "deepseek": "sk-..."},
    )
    registry.resolve()          # → claude (openai has no key)
    registry.resolve("deepseek")  # → deepseek (explicit choice honored)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Provider Descriptor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProviderDescriptor:
    """Immutable description of one LLM backend."""

    name: str                       # Registry id, e.g. "openai"
    endpoint: str                   # Chat-completion URL
    supported_models: tuple[str, ...]
    credential: str = ""            # Empty → provider unavailable
    display_name: str = ""          # Human label, e.g. "OpenAI"
    max_tokens: int = 4096          # Upper bound on completion tokens
    supports_streaming: bool = False
    priority: int = 99              # Lower = more preferred

    @property
    def is_available(self) -> bool:
        return bool(self.credential)

    @property
    def default_model(self) -> str:
        return self.supported_models[0] if self.supported_models else ""

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def __repr__(self) -> str:
        # Keep credentials out of logs and tracebacks
        return (
            f"ProviderDescriptor(name={self.name!r}, priority={self.priority}, "
            f"available={self.is_available})"
        )


# ---------------------------------------------------------------------------
# Default Provider Table
# ---------------------------------------------------------------------------

OPENAI = ProviderDescriptor(
    name="openai",
    display_name="OpenAI",
    endpoint="https://api.openai.com/v1/chat/completions",
    supported_models=("gpt-4-turbo", "gpt-3.5-turbo"),
    max_tokens=4096,
    supports_streaming=True,
    priority=1,
)

CLAUDE = ProviderDescriptor(
    name="claude",
    display_name="Claude",
    endpoint="https://api.anthropic.com/v1/messages",
    supported_models=("claude-3-5-sonnet",),
    max_tokens=4096,
    supports_streaming=True,
    priority=2,
)

DEEPSEEK = ProviderDescriptor(
    name="deepseek",
    display_name="DeepSeek",
    endpoint="https://api.deepseek.com/v1/chat/completions",
    supported_models=("deepseek-chat",),
    max_tokens=2048,
    supports_streaming=False,
    priority=3,
)

DEFAULT_PROVIDERS: tuple[ProviderDescriptor, ...] = (OPENAI, CLAUDE, DEEPSEEK)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class ProviderRegistry:
    """
    Ordered, read-only collection of provider descriptors.

    Declaration order is preserved and used as the tie-breaker between
    providers with equal priority.
    """

    def __init__(self, providers: Iterable[ProviderDescriptor]):
        self._providers: dict[str, ProviderDescriptor] = {}
        for provider in providers:
            if provider.name in self._providers:
                logger.warning(
                    "registry_duplicate_provider",
                    extra={"provider": provider.name},
                )
            self._providers[provider.name] = provider

    @classmethod
    def from_credentials(
        cls,
        providers: Iterable[ProviderDescriptor],
        credentials: Mapping[str, Optional[str]],
    ) -> "ProviderRegistry":
        """Build a registry, attaching credentials by provider name."""
        return cls(
            replace(p, credential=(credentials.get(p.name) or "").strip())
            for p in providers
        )

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def names(self) -> list[str]:
        """All declared provider ids, in declaration order."""
        return list(self._providers)

    def get(self, name: str) -> Optional[ProviderDescriptor]:
        """Look up a provider by id, regardless of availability."""
        return self._providers.get(name)

    def list_available(self) -> list[ProviderDescriptor]:
        """Credentialed providers sorted by ascending priority (stable)."""
        return sorted(
            (p for p in self._providers.values() if p.is_available),
            key=lambda p: p.priority,
        )

    def resolve(self, name: Optional[str] = None) -> Optional[ProviderDescriptor]:
        """
        Pick the provider for a request.

        An explicit, known and available provider is honored even when a
        higher-priority one exists. Anything else falls through to the best
        available provider.
        """
        if name:
            provider = self._providers.get(name)
            if provider is not None and provider.is_available:
                return provider
            logger.debug(
                "registry_requested_unavailable",
                extra={"requested_provider": name},
            )

        available = self.list_available()
        return available[0] if available else None
