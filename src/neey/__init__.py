"""
Neey: a German-teacher chat client with streamed, structured answers.

Typed or spoken input goes to an OpenAI-compatible completion endpoint; the
reply streams into a persisted conversation and is parsed into vocabulary,
example sentences, conjugation and follow-up prompts.
"""

__version__ = "0.1.0"

from .chat import (
    ChatSession,
    ConversationStore,
    Message,
    MessageRole,
    SendOutcome,
    parse_response,
    parse_sections,
)
from .languages import Language

__all__ = [
    "ChatSession",
    "ConversationStore",
    "Language",
    "Message",
    "MessageRole",
    "SendOutcome",
    "parse_response",
    "parse_sections",
]
