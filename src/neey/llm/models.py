from collections.abc import AsyncIterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class StreamingResponse:
    """Content fragments of one streamed answer, plus token usage.

    ``usage`` stays ``None`` until the server reports it, which happens at
    the end of the stream if at all.
    """

    def __init__(self, fragments: AsyncIterator[str]):
        self._fragments = fragments
        self.usage: dict[str, Any] | None = None

    def set_usage(self, usage: dict[str, Any]) -> None:
        self.usage = usage

    def __aiter__(self) -> "StreamingResponse":
        return self

    async def __anext__(self) -> str:
        return await anext(self._fragments)

    async def aclose(self) -> None:
        """Stop early and let the generator release its HTTP response."""
        if hasattr(self._fragments, "aclose"):
            await self._fragments.aclose()


class ChatMessage(BaseModel):
    """One entry of the `messages` array sent to the endpoint."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class LLMResponse(BaseModel):
    """A complete, non-streamed answer."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage information"
    )


class DeltaContent(BaseModel):
    content: str | None = None


class StreamChoice(BaseModel):
    delta: DeltaContent


class StreamChunk(BaseModel):
    """One decoded ``data:`` frame of a streamed completion."""

    choices: list[StreamChoice] = Field(default_factory=list)
    usage: dict[str, Any] | None = None
