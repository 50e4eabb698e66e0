"""Anthropic Messages API provider."""

from collections.abc import AsyncGenerator

import anthropic
from fastapi import HTTPException

from apirelay.config.settings import get_settings
from apirelay.providers.base import ModelProvider


class AnthropicProvider(ModelProvider):
    """Streams text deltas from the Anthropic Messages API."""

    def __init__(self):
        self._client: anthropic.AsyncAnthropic | None = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            settings = get_settings()
            self._client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key or None)
        return self._client

    async def stream_text(self, system: str, prompt: str) -> AsyncGenerator[str, None]:
        settings = get_settings()
        client = self._get_client()
        try:
            async with client.messages.stream(
                model=settings.anthropic_model,
                max_tokens=settings.anthropic_max_tokens,
                temperature=settings.anthropic_temperature,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield text
        except anthropic.APITimeoutError:
            raise HTTPException(status_code=504, detail="Model provider timed out")
        except anthropic.APIConnectionError:
            raise HTTPException(status_code=502, detail="Cannot reach model provider")
        except anthropic.APIStatusError as e:
            raise HTTPException(status_code=e.status_code, detail=f"Model provider error: {e.message}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
