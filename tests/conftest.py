"""Shared fixtures for the api-relay test suite."""

from collections.abc import AsyncGenerator

import httpx
import pytest

from apirelay.clients.api_client import APIClient
from apirelay.clients.cache import ResponseCache
from apirelay.config.settings import get_settings
from apirelay.providers.base import ModelProvider
from apirelay.security.auth import BearerCredentials
from apirelay.security.ratelimit import RateLimiter

BASE_URL = "https://api.test"


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(AUTH_TYPE="oauth2", RATE_LIMIT_POINTS="5")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()


class FakeProvider(ModelProvider):
    """Provider that replays a fixed list of tokens and records its inputs."""

    def __init__(self, tokens: list[str], error: Exception | None = None):
        self.tokens = tokens
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def stream_text(self, system: str, prompt: str) -> AsyncGenerator[str, None]:
        self.calls.append((system, prompt))
        for token in self.tokens:
            yield token
        if self.error is not None:
            raise self.error


def make_tokens(text: str, chunk_size: int = 5) -> list[str]:
    """Split text into small token-like fragments."""
    return [text[i:i + chunk_size] for i in range(0, len(text), chunk_size)]


class Upstream:
    """httpx.MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


def make_api_client(
    upstream: Upstream,
    credentials=None,
    points: int = 100,
    block_seconds: float = 60,
    ttl: float = 300,
) -> APIClient:
    """APIClient wired to a mock transport."""
    client = APIClient(
        base_url=BASE_URL,
        credentials=credentials or BearerCredentials(token="tok-123"),
        rate_limiter=RateLimiter(points=points, duration_seconds=60, block_duration_seconds=block_seconds),
        cache=ResponseCache(default_ttl=ttl, check_period=60),
    )
    client._client = httpx.AsyncClient(
        base_url=BASE_URL, transport=httpx.MockTransport(upstream)
    )
    return client
