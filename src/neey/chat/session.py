"""Chat session: the single source of truth a front end renders.

Hidden design decisions:
- Sends are serialized by rejection; at most one reply streams at a time
- Each send owns a fresh cancellation token, polled before the request,
  after acquiring the processing state and before every response line
- A failed or cancelled reply leaves no trace: its placeholder is removed
  and nothing about it is persisted
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from ..config import (
    CREDENTIAL_ACCOUNT,
    CREDENTIAL_SERVICE,
    DEFAULT_TEMPERATURE,
    SILENCE_THRESHOLD_SECONDS,
)
from ..credentials import CredentialStore
from ..languages import Language
from ..llm import (
    CancellationToken,
    ChatMessage,
    LLMAuthenticationError,
    LLMError,
    LLMProvider,
)
from ..prompts import render_system_prompt
from ..speech import RecordingInProgressError, RecordingSession, SpeechRecognizer
from ..speech.recording import TranscriptHandler
from .events import ChatEventKind, EventEmitter, Listener
from .models import Message
from .store import ConversationStore

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], LLMProvider]


class SendOutcome(str, Enum):
    """How a send ended."""

    COMPLETED = "completed"
    EMPTY = "empty"                  # blank input, nothing sent
    BUSY = "busy"                    # another reply is still streaming
    NEEDS_API_KEY = "needs_api_key"  # no key stored, or the key was rejected
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def accepted(self) -> bool:
        """False when the send was turned away or needs a usable key."""
        return self not in (SendOutcome.EMPTY, SendOutcome.BUSY, SendOutcome.NEEDS_API_KEY)


@dataclass
class _ActiveReply:
    token: CancellationToken
    placeholder_id: UUID


class ChatSession:
    """Conversation state, send path and persistence.

    Usage:
        session = ChatSession(provider_factory, conversation_store, credentials)
        await session.load()
        session.subscribe(render)
        outcome = await session.send("Hund")
    """

    def __init__(
        self,
        provider_factory: ProviderFactory,
        store: ConversationStore,
        credentials: CredentialStore,
        model: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
    ):
        """Initialize the session.

        Args:
            provider_factory: Builds a provider for an API key; called per send
            store: Conversation and preference persistence
            credentials: API key storage
            model: Model override (None uses the provider default)
            temperature: Sampling temperature
        """
        self._provider_factory = provider_factory
        self._store = store
        self._credentials = credentials
        self._model = model
        self._temperature = temperature

        self._messages: list[Message] = []
        self._language = Language.default()
        self._is_processing = False
        self._active: _ActiveReply | None = None
        self._recording: RecordingSession | None = None
        self._events = EventEmitter()

    # -- state -------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        """Messages in chronological order (a copy of the list)."""
        return list(self._messages)

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def is_streaming(self) -> bool:
        return self._active is not None

    @property
    def selected_language(self) -> Language:
        return self._language

    @property
    def system_prompt(self) -> str:
        return render_system_prompt(self._language)

    @property
    def recording(self) -> RecordingSession | None:
        return self._recording

    @property
    def store(self) -> ConversationStore:
        return self._store

    def get_message(self, message_id: UUID) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for state-change events; returns an unsubscribe function."""
        return self._events.subscribe(listener)

    # -- persistence -------------------------------------------------------

    async def load(self) -> None:
        """Restore the conversation and language preference."""
        self._messages = await self._store.load_messages()
        language = await self._store.load_language()
        if language is not None:
            self._language = language
        logger.info("Loaded %d messages (language: %s)", len(self._messages), self._language.value)
        self._events.emit(ChatEventKind.MESSAGES_CHANGED)
        self._events.emit(ChatEventKind.LANGUAGE_CHANGED)

    async def _persist(self) -> None:
        await self._store.save_messages(self._messages)

    # -- credentials and preferences ---------------------------------------

    async def _load_api_key(self) -> str | None:
        key = await self._credentials.load(CREDENTIAL_SERVICE, CREDENTIAL_ACCOUNT)
        return key.strip() if key and key.strip() else None

    async def has_api_key(self) -> bool:
        return await self._load_api_key() is not None

    async def save_api_key(self, key: str) -> bool:
        """Store an API key. Blank keys are ignored (returns False)."""
        if not key.strip():
            return False
        await self._credentials.save(key.strip(), CREDENTIAL_SERVICE, CREDENTIAL_ACCOUNT)
        return True

    async def clear_api_key(self) -> None:
        await self._credentials.delete(CREDENTIAL_SERVICE, CREDENTIAL_ACCOUNT)

    async def set_language(self, language: Language) -> None:
        """Select and persist the translation language."""
        self._language = language
        await self._store.save_language(language)
        if self._recording is not None:
            self._recording.locale = language.locale
        self._events.emit(ChatEventKind.LANGUAGE_CHANGED)

    # -- sending -----------------------------------------------------------

    def _set_processing(self, value: bool) -> None:
        if self._is_processing != value:
            self._is_processing = value
            self._events.emit(ChatEventKind.PROCESSING_CHANGED)

    def _append(self, message: Message) -> None:
        self._messages.append(message)
        self._events.emit(ChatEventKind.MESSAGES_CHANGED, message.id)

    def _remove(self, message_id: UUID) -> None:
        before = len(self._messages)
        self._messages = [m for m in self._messages if m.id != message_id]
        if len(self._messages) != before:
            self._events.emit(ChatEventKind.MESSAGES_CHANGED, message_id)

    def _replace_text(self, message_id: UUID, text: str) -> None:
        message = self.get_message(message_id)
        if message is None:
            logger.warning("Streaming message %s no longer in conversation", message_id)
            return
        message.text = text
        self._events.emit(ChatEventKind.MESSAGE_UPDATED, message_id)

    def _history(self) -> list[ChatMessage]:
        # Everything except the trailing placeholder
        return [ChatMessage(role="system", content=self.system_prompt)] + [
            message.to_chat_message() for message in self._messages[:-1]
        ]

    async def send(self, text: str, stream: bool = True) -> SendOutcome:
        """Send a user message and fill a reply placeholder.

        Args:
            text: Typed text, a transcription or a follow-up prompt
            stream: Stream the reply token by token (default) or set it once

        Returns:
            SendOutcome describing how the turn ended
        """
        if not text.strip():
            return SendOutcome.EMPTY

        if self._active is not None:
            logger.warning("Send rejected: a reply is still streaming")
            return SendOutcome.BUSY

        api_key = await self._load_api_key()
        if api_key is None:
            logger.warning("No API key stored; not sending")
            return SendOutcome.NEEDS_API_KEY

        # Re-check: another send may have started while the key was loading
        if self._active is not None:
            return SendOutcome.BUSY

        placeholder = Message.placeholder()
        active = _ActiveReply(CancellationToken(), placeholder.id)
        self._active = active
        try:
            self._append(Message.sent(text))
            await self._persist()
            self._append(placeholder)
            try:
                return await self._fill_reply(api_key, active, stream)
            except BaseException:
                logger.warning("Reply aborted by an unexpected error; dropping it")
                self._remove(placeholder.id)
                raise
        finally:
            self._active = None
            self._set_processing(False)

    async def _fill_reply(self, api_key: str, active: _ActiveReply, stream: bool) -> SendOutcome:
        token = active.token

        if token.cancelled:
            return self._abort(active, "before the request")

        self._set_processing(True)
        if token.cancelled:
            return self._abort(active, "after acquiring the processing state")

        history = self._history()
        try:
            async with self._provider_factory(api_key) as provider:
                if stream:
                    await self._stream_into(provider, history, active)
                else:
                    response = await provider.chat_completion(
                        history, model=self._model, temperature=self._temperature
                    )
                    if not token.cancelled:
                        self._replace_text(active.placeholder_id, response.content)
        except LLMAuthenticationError as e:
            logger.warning("API key rejected: %s", e)
            self._remove(active.placeholder_id)
            return SendOutcome.NEEDS_API_KEY
        except LLMError as e:
            logger.warning("Reply failed: %s", e)
            self._remove(active.placeholder_id)
            return SendOutcome.FAILED

        if token.cancelled:
            return self._abort(active, "while streaming")

        await self._persist()
        logger.info("Reply stored (%d characters)", len(self.get_message(active.placeholder_id).text))
        return SendOutcome.COMPLETED

    async def _stream_into(
        self,
        provider: LLMProvider,
        history: list[ChatMessage],
        active: _ActiveReply,
    ) -> None:
        response = await provider.chat_completion_stream(
            history,
            model=self._model,
            temperature=self._temperature,
            cancel_token=active.token,
        )
        accumulated = ""
        try:
            async for fragment in response:
                accumulated += fragment
                # Replace rather than append, so the placeholder always equals the accumulator
                self._replace_text(active.placeholder_id, accumulated)
        finally:
            await response.aclose()

    def _abort(self, active: _ActiveReply, where: str) -> SendOutcome:
        logger.info("Reply cancelled %s", where)
        self._remove(active.placeholder_id)
        return SendOutcome.CANCELLED

    async def send_transcript(self, text: str) -> bool:
        """Send a spoken message; False if it was turned away unsent."""
        outcome = await self.send(text)
        if not outcome.accepted:
            logger.warning("Transcript not sent (%s)", outcome.value)
            return False
        return True

    def cancel(self) -> bool:
        """Cancel the reply in flight, if any. Not an error for the caller."""
        if self._active is None:
            return False
        self._active.token.cancel()
        return True

    async def clear_history(self) -> None:
        """Discard any recording, cancel the reply in flight and forget the conversation."""
        if self._recording is not None:
            self._recording.cancel()
        self.cancel()
        self._set_processing(False)
        self._messages = []
        await self._store.clear_messages()
        self._events.emit(ChatEventKind.HISTORY_CLEARED)

    # -- recording ---------------------------------------------------------

    def create_recording_session(
        self,
        recognizer: SpeechRecognizer,
        silence_threshold: float = SILENCE_THRESHOLD_SECONDS,
        on_transcript: TranscriptHandler | None = None,
    ) -> RecordingSession:
        """Build a recording session that sends its transcript through this chat.

        The session's locale follows the selected language. ``on_transcript``
        replaces the default hand-off to :meth:`send_transcript`, e.g. to render
        the reply while it streams; it should return False when the transcript
        was not sent.

        Raises:
            RecordingInProgressError: If the previous session is still recording
        """
        if self._recording is not None and self._recording.is_recording:
            raise RecordingInProgressError("Stop or cancel the current recording first")

        self._recording = RecordingSession(
            recognizer,
            on_transcript=on_transcript or self.send_transcript,
            locale=self._language.locale,
            silence_threshold=silence_threshold,
        )
        return self._recording
