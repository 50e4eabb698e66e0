"""Abstract base for model providers that stream text."""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator


class ModelProvider(ABC):
    """Base class for token-streaming model providers."""

    @abstractmethod
    def stream_text(self, system: str, prompt: str) -> AsyncGenerator[str, None]:
        """Stream the model's reply to prompt as text deltas.

        Args:
            system: System instruction prepended to the conversation.
            prompt: The user's message.

        Yields:
            Text fragments in arrival order.
        """
        ...

    async def close(self) -> None:
        """Cleanup resources. Override if provider holds connections."""
        pass
