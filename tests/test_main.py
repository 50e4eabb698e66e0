"""Integration tests for apirelay/main.py — chat relay over ASGI transport."""

from unittest.mock import patch

import httpx
import pytest
from fastapi import HTTPException

import apirelay.providers.registry as registry_mod
from tests.conftest import FakeProvider, make_tokens


@pytest.fixture(autouse=True)
def reset_registry(monkeypatch):
    monkeypatch.setattr(registry_mod, "_providers", {})
    yield
    monkeypatch.setattr(registry_mod, "_providers", {})


@pytest.fixture
def chat_client(override_settings):
    """Factory fixture: app client whose provider replays the given tokens."""
    patches = []

    def _make(provider: FakeProvider) -> httpx.AsyncClient:
        override_settings(ANTHROPIC_API_KEY="sk-test")
        ctx = patch("apirelay.main.get_provider", return_value=provider)
        ctx.start()
        patches.append(ctx)
        from apirelay.main import app
        transport = httpx.ASGITransport(app=app)
        return httpx.AsyncClient(transport=transport, base_url="http://test")

    yield _make

    for ctx in patches:
        ctx.stop()


class TestHealthEndpoint:

    async def test_health(self, chat_client):
        client = chat_client(FakeProvider([]))
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["service"] == "chat-relay"
        assert "timestamp" in data


class TestChatEndpoint:

    async def test_streams_plain_text(self, chat_client):
        provider = FakeProvider(make_tokens("Hello there, friend."))
        client = chat_client(provider)

        resp = await client.post("/api/claude", json={"prompt": "hi"})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert resp.text == "Hello there, friend."
        assert provider.calls[0][1] == "hi"

    async def test_tool_output_appended(self, chat_client):
        tokens = ["The result is ", '{"tool":"echo","parameters":{"text":"hi"}}']
        client = chat_client(FakeProvider(tokens))

        resp = await client.post("/api/claude", json={"prompt": "echo hi"})

        assert resp.text.endswith('\n\n(Tool Output from "echo"):\nhi')

    async def test_unknown_tool_notice(self, chat_client):
        client = chat_client(FakeProvider(['{"tool":"doesNotExist","parameters":{}}']))
        resp = await client.post("/api/claude", json={"prompt": "x"})
        assert resp.status_code == 200
        assert 'Unknown tool "doesNotExist"' in resp.text

    async def test_missing_prompt_returns_400(self, chat_client):
        client = chat_client(FakeProvider([]))
        resp = await client.post("/api/claude", json={"message": "hi"})
        assert resp.status_code == 400

    async def test_non_json_body_returns_400(self, chat_client):
        client = chat_client(FakeProvider([]))
        resp = await client.post(
            "/api/claude", content=b"not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400

    async def test_provider_failure_reported_in_body(self, chat_client):
        provider = FakeProvider(
            ["partial "], error=HTTPException(status_code=502, detail="Cannot reach model provider")
        )
        client = chat_client(provider)

        resp = await client.post("/api/claude", json={"prompt": "hi"})

        assert resp.status_code == 200
        assert resp.text.startswith("partial ")
        assert "Stream error: Cannot reach model provider" in resp.text

    async def test_request_id_header(self, chat_client):
        client = chat_client(FakeProvider(["ok"]))
        resp = await client.post("/api/claude", json={"prompt": "hi"})
        assert len(resp.headers["x-request-id"]) == 12
