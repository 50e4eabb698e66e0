"""Provider registry — singleton map of provider name → instance."""

from apirelay.providers.anthropic import AnthropicProvider
from apirelay.providers.base import ModelProvider

DEFAULT_PROVIDER = "anthropic"

_providers: dict[str, ModelProvider] = {}


def get_provider(name: str = DEFAULT_PROVIDER) -> ModelProvider:
    """Get or create a provider instance by name."""
    if name in _providers:
        return _providers[name]

    if name == "anthropic":
        _providers[name] = AnthropicProvider()
    else:
        raise ValueError(f"Unknown provider: {name}")

    return _providers[name]


async def close_all_providers() -> None:
    """Gracefully shut down all provider connections."""
    for provider in _providers.values():
        await provider.close()
    _providers.clear()
