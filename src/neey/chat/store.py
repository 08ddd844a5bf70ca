"""Conversation and preference persistence.

The whole conversation is stored as one JSON array under a fixed key; the
language preference is stored as its raw enum value under another.
"""

import logging

from pydantic import TypeAdapter, ValidationError

from ..config import LANGUAGE_KEY, MESSAGES_KEY
from ..languages import Language
from ..storage import KeyValueStore
from .models import Message

logger = logging.getLogger(__name__)

_MESSAGES = TypeAdapter(list[Message])


class ConversationStore:
    """Reads and writes chat state through a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        messages_key: str = MESSAGES_KEY,
        language_key: str = LANGUAGE_KEY,
    ):
        self._store = store
        self._messages_key = messages_key
        self._language_key = language_key

    @property
    def backend(self) -> KeyValueStore:
        return self._store

    async def load_messages(self) -> list[Message]:
        """Load the persisted conversation; empty when unset or unreadable."""
        raw = await self._store.get(self._messages_key)
        if raw is None:
            return []
        try:
            return _MESSAGES.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable conversation (%d errors)", e.error_count())
            return []

    async def save_messages(self, messages: list[Message]) -> None:
        """Persist the full conversation."""
        await self._store.set(self._messages_key, _MESSAGES.dump_json(messages).decode("utf-8"))

    async def clear_messages(self) -> None:
        await self._store.delete(self._messages_key)

    async def load_language(self) -> Language | None:
        """Load the language preference; None when unset or unknown."""
        raw = await self._store.get(self._language_key)
        if raw is None:
            return None
        try:
            return Language(raw)
        except ValueError:
            logger.warning("Ignoring unknown stored language %r", raw)
            return None

    async def save_language(self, language: Language) -> None:
        await self._store.set(self._language_key, language.value)
