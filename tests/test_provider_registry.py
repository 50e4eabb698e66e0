"""Tests for apirelay/providers/registry.py — provider singleton registry."""

import pytest

import apirelay.providers.registry as registry_mod
from apirelay.providers.anthropic import AnthropicProvider


@pytest.fixture(autouse=True)
def reset_registry(monkeypatch):
    """Clear the provider registry between tests."""
    monkeypatch.setattr(registry_mod, "_providers", {})
    yield
    monkeypatch.setattr(registry_mod, "_providers", {})


class TestGetProvider:

    def test_creates_anthropic_provider(self):
        provider = registry_mod.get_provider("anthropic")
        assert isinstance(provider, AnthropicProvider)

    def test_default_is_anthropic(self):
        assert isinstance(registry_mod.get_provider(), AnthropicProvider)

    def test_singleton_behavior(self):
        p1 = registry_mod.get_provider("anthropic")
        p2 = registry_mod.get_provider("anthropic")
        assert p1 is p2

    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            registry_mod.get_provider("fake-provider")


class TestCloseAllProviders:

    async def test_close_all(self):
        registry_mod.get_provider("anthropic")
        await registry_mod.close_all_providers()
        assert registry_mod._providers == {}
