"""Abstract chat provider interface: port for text-generation adapters.

Each AI provider (OpenRouter, Azure OpenAI, etc.) implements this
interface; the answer streamer only depends on the port.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from bac_guide.domain.entities import ChatMessage, ChatCompletionResult


class ChatProvider(ABC):
    """Port: defines what the application layer needs from any chat provider."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider (e.g. 'openrouter')."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        """Send a non-streaming chat completion request.

        Raises:
            GenerationFailure: If the provider returns an error.
        """
        ...

    @abstractmethod
    def stream_text(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Send a streaming chat completion request.

        Implemented as an async generator yielding text fragments in
        generation order. Closing the generator releases the underlying
        HTTP response.

        Raises:
            GenerationFailure: When opening or consuming the stream fails.
        """
        ...
