from abc import ABC, abstractmethod
from typing import Any

from .cancellation import CancellationToken
from .models import ChatMessage, LLMResponse, StreamingResponse


class LLMProvider(ABC):
    """A chat completion endpoint the teacher conversation talks to.

    The chat session only sees this interface, so the wire format, the
    authentication scheme and the HTTP library stay inside the provider.
    Failures surface as ``neey.llm.errors`` types, never as transport errors.

    One provider is built per send and closed afterwards:
        async with factory(api_key) as provider:
            stream = await provider.chat_completion_stream(history)
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Return the whole answer in one response.

        Raises:
            LLMAuthenticationError: The API key was rejected
            LLMConnectionError: Anything else went wrong on the way
        """

    @abstractmethod
    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        cancel_token: CancellationToken | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Start a streamed answer.

        The request is sent lazily, when iteration begins. Iterating yields
        content fragments in arrival order; ``usage`` is filled in if the
        server reports it.

        Args:
            messages: System prompt followed by the conversation
            model: Overrides the provider's default model
            temperature: Sampling temperature
            max_tokens: Optional cap on generated tokens
            cancel_token: Checked before every response line; once set, the
                iteration ends without an error

        Raises:
            LLMAuthenticationError: The API key was rejected (during iteration)
            LLMConnectionError: Transport, status or decode failure (during iteration)
        """

    @abstractmethod
    async def close(self) -> None:
        """Release HTTP clients."""

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        try:
            await self.close()
        except RuntimeError as e:
            # httpx/anyio may close after the loop on interpreter shutdown
            # (https://github.com/encode/httpx/issues/914)
            if "Event loop is closed" not in str(e):
                raise
