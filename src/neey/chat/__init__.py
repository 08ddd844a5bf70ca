"""Conversation model, response parsing and the chat session."""

from .events import ChatEvent, ChatEventKind
from .models import Message, MessageRole
from .parser import (
    ParsedResponse,
    ResponseSection,
    SectionKind,
    parse_response,
    parse_sections,
)
from .session import ChatSession, SendOutcome
from .store import ConversationStore

__all__ = [
    "ChatEvent",
    "ChatEventKind",
    "ChatSession",
    "ConversationStore",
    "Message",
    "MessageRole",
    "ParsedResponse",
    "ResponseSection",
    "SectionKind",
    "SendOutcome",
    "parse_response",
    "parse_sections",
]
