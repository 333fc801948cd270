"""Shared fixtures for the relay test suite."""

from __future__ import annotations

import pytest

from relay.llm.registry import DEFAULT_PROVIDERS, ProviderRegistry
from relay.observability.logging_config import clear_request_id


@pytest.fixture(autouse=True)
def _cleanup_request_id():
    clear_request_id()
    yield
    clear_request_id()


@pytest.fixture
def all_keys() -> dict[str, str]:
    return {"openai": "sk-openai", "claude": "sk-ant", "deepseek": "sk-ds"}


@pytest.fixture
def registry(all_keys) -> ProviderRegistry:
    """Default provider table with every credential set."""
    return ProviderRegistry.from_credentials(DEFAULT_PROVIDERS, all_keys)
