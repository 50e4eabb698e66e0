"""Tests for apirelay/providers/anthropic.py — Anthropic streaming provider."""

from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest
from fastapi import HTTPException

from apirelay.providers.anthropic import AnthropicProvider


@pytest.fixture
def provider():
    return AnthropicProvider()


def _mock_stream(texts=(), error: Exception | None = None):
    """Build a mock messages.stream() async context manager."""
    stream = MagicMock()
    stream.text_stream = _async_iter(texts, error)
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=stream)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


def _client_with(ctx=None, side_effect=None):
    client = MagicMock()
    client.messages.stream = MagicMock(return_value=ctx, side_effect=side_effect)
    client.close = AsyncMock()
    return client


async def _collect(provider, system="sys", prompt="hi"):
    return [text async for text in provider.stream_text(system, prompt)]


class TestAnthropicStreaming:

    async def test_yields_text_deltas(self, provider, override_settings):
        override_settings(ANTHROPIC_MODEL="claude-test", ANTHROPIC_MAX_TOKENS="64")
        client = _client_with(_mock_stream(["Hel", "lo", "", " world"]))
        provider._client = client

        texts = await _collect(provider, system="be brief", prompt="greet me")

        assert texts == ["Hel", "lo", " world"]
        kwargs = client.messages.stream.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 64
        assert kwargs["temperature"] == 0.2
        assert kwargs["system"] == "be brief"
        assert kwargs["messages"] == [{"role": "user", "content": "greet me"}]

    async def test_connection_error_raises_502(self, provider, override_settings):
        override_settings()
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        provider._client = _client_with(
            side_effect=anthropic.APIConnectionError(request=request)
        )

        with pytest.raises(HTTPException) as exc_info:
            await _collect(provider)
        assert exc_info.value.status_code == 502

    async def test_timeout_raises_504(self, provider, override_settings):
        override_settings()
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        provider._client = _client_with(_mock_stream(["partial"], anthropic.APITimeoutError(request=request)))

        texts = []
        with pytest.raises(HTTPException) as exc_info:
            async for text in provider.stream_text("sys", "hi"):
                texts.append(text)
        assert exc_info.value.status_code == 504
        assert texts == ["partial"]

    async def test_status_error_keeps_status(self, provider, override_settings):
        override_settings()
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        response = httpx.Response(429, request=request, json={"error": {"message": "slow down"}})
        error = anthropic.RateLimitError("slow down", response=response, body=None)
        provider._client = _client_with(side_effect=error)

        with pytest.raises(HTTPException) as exc_info:
            await _collect(provider)
        assert exc_info.value.status_code == 429


class TestClose:

    async def test_close(self, provider):
        client = _client_with()
        provider._client = client

        await provider.close()
        client.close.assert_awaited_once()
        assert provider._client is None

    async def test_close_when_no_client(self, provider):
        """Closing without a client should not raise."""
        await provider.close()


async def _async_iter(items, error=None):
    """Helper to make a sync list into an async iterator."""
    for item in items:
        yield item
    if error is not None:
        raise error
