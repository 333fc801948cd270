"""
Tests for the provider registry: availability, priority ordering and
provider resolution.
"""

from __future__ import annotations

import pytest

from relay.llm.registry import (
    CLAUDE,
    DEEPSEEK,
    DEFAULT_PROVIDERS,
    OPENAI,
    ProviderDescriptor,
    ProviderRegistry,
)


def _p(name: str, priority: int, credential: str = "key") -> ProviderDescriptor:
    return ProviderDescriptor(
        name=name,
        endpoint=f"https://{name}.test/v1",
        supported_models=(f"{name}-model",),
        credential=credential,
        priority=priority,
    )


# ===========================================================================
# ProviderDescriptor
# ===========================================================================


class TestProviderDescriptor:

    def test_available_iff_credential(self):
        assert _p("a", 1, "k").is_available
        assert not _p("a", 1, "").is_available

    def test_default_model_is_first(self):
        assert OPENAI.default_model == "gpt-4-turbo"

    def test_label_falls_back_to_name(self):
        assert _p("x", 1).label == "x"
        assert CLAUDE.label == "Claude"

    def test_repr_hides_credential(self):
        assert "sk-secret" not in repr(_p("a", 1, "sk-secret"))

    def test_default_table(self):
        assert [p.priority for p in DEFAULT_PROVIDERS] == [1, 2, 3]
        assert DEEPSEEK.max_tokens == 2048
        assert not DEEPSEEK.supports_streaming
        assert OPENAI.supports_streaming and CLAUDE.supports_streaming


# ===========================================================================
# list_available
# ===========================================================================


class TestListAvailable:

    def test_filters_and_sorts(self):
        registry = ProviderRegistry([_p("A", 2), _p("B", 1, ""), _p("C", 3)])
        assert [p.name for p in registry.list_available()] == ["A", "C"]

    def test_sorted_by_priority_not_declaration(self):
        registry = ProviderRegistry([_p("slow", 5), _p("fast", 1)])
        assert [p.name for p in registry.list_available()] == ["fast", "slow"]

    def test_ties_keep_declaration_order(self):
        registry = ProviderRegistry([_p("first", 1), _p("second", 1), _p("third", 1)])
        assert [p.name for p in registry.list_available()] == ["first", "second", "third"]

    def test_empty_when_no_credentials(self):
        registry = ProviderRegistry.from_credentials(DEFAULT_PROVIDERS, {})
        assert registry.list_available() == []

    def test_is_deterministic(self, registry):
        assert registry.list_available() == registry.list_available()


# ===========================================================================
# resolve
# ===========================================================================


class TestResolve:

    def test_best_available_without_name(self, registry):
        assert registry.resolve().name == "openai"

    def test_explicit_available_provider_honored(self, registry):
        assert registry.resolve("deepseek").name == "deepseek"

    def test_explicit_unavailable_falls_through(self):
        registry = ProviderRegistry.from_credentials(
            DEFAULT_PROVIDERS, {"claude": "sk-ant", "deepseek": "sk-ds"}
        )
        assert registry.resolve("openai").name == "claude"

    def test_unknown_name_falls_through(self, registry):
        assert registry.resolve("mistral").name == "openai"

    def test_none_when_nothing_available(self):
        registry = ProviderRegistry.from_credentials(
            DEFAULT_PROVIDERS, {"openai": "  "}
        )
        assert registry.resolve() is None
        assert registry.resolve("openai") is None


# ===========================================================================
# Construction
# ===========================================================================


class TestRegistryConstruction:

    def test_from_credentials_attaches_keys(self, all_keys):
        registry = ProviderRegistry.from_credentials(DEFAULT_PROVIDERS, all_keys)
        assert registry.get("claude").credential == "sk-ant"
        # Module-level descriptors stay credential-free
        assert CLAUDE.credential == ""

    def test_names_and_membership(self, registry):
        assert registry.names() == ["openai", "claude", "deepseek"]
        assert "claude" in registry
        assert "mistral" not in registry
        assert len(registry) == 3

    def test_get_unknown_is_none(self, registry):
        assert registry.get("mistral") is None

    def test_duplicate_name_last_wins(self, caplog):
        registry = ProviderRegistry([_p("a", 1, "old"), _p("a", 2, "new")])
        assert len(registry) == 1
        assert registry.get("a").credential == "new"
        assert "registry_duplicate_provider" in caplog.text

    @pytest.mark.parametrize("name", ["openai", "claude", "deepseek"])
    def test_descriptors_are_frozen(self, registry, name):
        with pytest.raises(AttributeError):
            registry.get(name).priority = 0  # type: ignore[misc]
