"""State-change notifications for chat front ends."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

logger = logging.getLogger(__name__)


class ChatEventKind(str, Enum):
    MESSAGES_CHANGED = "messages_changed"      # message appended or removed
    MESSAGE_UPDATED = "message_updated"        # text of one message replaced
    PROCESSING_CHANGED = "processing_changed"
    LANGUAGE_CHANGED = "language_changed"
    HISTORY_CLEARED = "history_cleared"


@dataclass(frozen=True)
class ChatEvent:
    kind: ChatEventKind
    message_id: UUID | None = None


Listener = Callable[[ChatEvent], None]


class EventEmitter:
    """Synchronous listener registry.

    Listeners run in registration order on the caller's thread. A failing
    listener is logged and skipped so one broken view cannot stall a stream.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, kind: ChatEventKind, message_id: UUID | None = None) -> None:
        event = ChatEvent(kind, message_id)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Chat listener failed on %s", kind.value)
