"""
Pydantic configuration schema for the LLM relay.

A relay.yaml file (optional) conforms to RelayConfig. Without one, the
built-in defaults reproduce the standard provider table: OpenAI, Claude
and DeepSeek, keyed by OPENAI_API_KEY, ANTHROPIC_API_KEY and
DEEPSEEK_API_KEY.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from relay.llm.adapters import DEFAULT_SYSTEM_PROMPT
from relay.llm.registry import DEFAULT_PROVIDERS, ProviderDescriptor


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------

class ProviderConfig(BaseModel):
    """One provider entry. The credential itself never lives in the file."""
    name: str = Field(..., description="Registry id; must match an adapter")
    display_name: str = ""
    endpoint: str
    api_key_env: str = Field(
        ..., description="Environment variable holding the API key"
    )
    models: list[str] = Field(..., description="Supported models, default first")
    max_tokens: int = Field(4096, gt=0)
    supports_streaming: bool = False
    priority: int = 99

    @field_validator("models")
    @classmethod
    def models_not_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("at least one model is required")
        return v

    def to_descriptor(self, credential: Optional[str] = None) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=self.name,
            display_name=self.display_name or self.name,
            endpoint=self.endpoint,
            supported_models=tuple(self.models),
            credential=(credential or "").strip(),
            max_tokens=self.max_tokens,
            supports_streaming=self.supports_streaming,
            priority=self.priority,
        )


_DEFAULT_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
}


def default_provider_configs() -> list[ProviderConfig]:
    return [
        ProviderConfig(
            name=p.name,
            display_name=p.display_name,
            endpoint=p.endpoint,
            api_key_env=_DEFAULT_KEY_ENV[p.name],
            models=list(p.supported_models),
            max_tokens=p.max_tokens,
            supports_streaming=p.supports_streaming,
            priority=p.priority,
        )
        for p in DEFAULT_PROVIDERS
    ]


# ---------------------------------------------------------------------------
# Root Config
# ---------------------------------------------------------------------------

class RelayConfig(BaseModel):
    """Complete relay configuration."""
    providers: list[ProviderConfig] = Field(default_factory=default_provider_configs)
    cache_ttl_seconds: float = Field(30 * 60, gt=0)
    cache_max_entries: int = Field(1000, gt=0)
    default_max_tokens: int = Field(1000, gt=0)
    request_timeout_seconds: float = Field(60.0, gt=0)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    @field_validator("providers")
    @classmethod
    def unique_provider_names(cls, v: list[ProviderConfig]) -> list[ProviderConfig]:
        names = [p.name for p in v]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"duplicate provider names: {sorted(duplicates)}")
        return v
