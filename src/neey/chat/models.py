"""Data models for chat turns.

These models define the structure of a conversation independent of the
storage backend used.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..llm.models import ChatMessage
from .parser import ParsedResponse, parse_response


class MessageRole(str, Enum):
    """Who produced a message."""

    SENT = "sent"
    RECEIVED = "received"


class Message(BaseModel):
    """A single chat turn.

    ``main_content`` and ``follow_up_prompts`` are derived from ``text`` on
    every access, so replacing ``text`` during streaming can never leave them
    stale. They are included when serializing and ignored when loading.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: UUID = Field(default_factory=uuid4, frozen=True)
    role: MessageRole = Field(frozen=True)
    text: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def sent(cls, text: str) -> "Message":
        """Create a user message."""
        return cls(role=MessageRole.SENT, text=text)

    @classmethod
    def placeholder(cls) -> "Message":
        """Create an empty received message to be filled by a stream."""
        return cls(role=MessageRole.RECEIVED, text="")

    @property
    def parsed(self) -> ParsedResponse:
        if self.role is MessageRole.RECEIVED:
            return parse_response(self.text)
        return ParsedResponse(main_content=self.text)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def main_content(self) -> str:
        return self.parsed.main_content

    @computed_field  # type: ignore[prop-decorator]
    @property
    def follow_up_prompts(self) -> list[str]:
        return list(self.parsed.follow_up_prompts)

    def to_chat_message(self) -> ChatMessage:
        """Convert to the completion API format."""
        role = "user" if self.role is MessageRole.SENT else "assistant"
        return ChatMessage(role=role, content=self.text)
