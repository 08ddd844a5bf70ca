"""Microphone recording session with silence auto-stop.

States::

    idle -> recording -> idle             (manual stop)
    recording -> auto_stopping -> idle    (silence timer elapsed)
    recording -> cancelled                (transcription discarded)

Recognition callbacks may arrive on any thread; they are marshalled onto the
event loop before touching session state. The recognition handle is released
exactly once on every exit path.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from ..config import SILENCE_THRESHOLD_SECONDS
from .base import RecognitionHandle, SpeechRecognizer, SpeechUnavailableError

logger = logging.getLogger(__name__)

TranscriptHandler = Callable[[str], Any]


class RecordingInProgressError(RuntimeError):
    """A second recording was requested while one is still capturing."""


class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    AUTO_STOPPING = "auto_stopping"
    CANCELLED = "cancelled"


class RecordingSession:
    """Captures one utterance at a time and hands it to the send path.

    Usage:
        async with RecordingSession(recognizer, chat.send, locale="fr-FR") as rec:
            if rec.start():
                await rec.wait()
    """

    def __init__(
        self,
        recognizer: SpeechRecognizer,
        on_transcript: TranscriptHandler,
        locale: str = "en-US",
        silence_threshold: float = SILENCE_THRESHOLD_SECONDS,
    ):
        """Initialize the session.

        Args:
            recognizer: Speech-to-text engine
            on_transcript: Receives a non-empty final transcript; may be async.
                Returning False marks the transcript as not sent
            locale: Recognition locale tag
            silence_threshold: Seconds without a partial result before auto-stop
        """
        self._recognizer = recognizer
        self._on_transcript = on_transcript
        self._locale = locale
        self._silence_threshold = silence_threshold

        self._state = RecordingState.IDLE
        self._transcription = ""
        self._handle: RecognitionHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._silence_timer: asyncio.TimerHandle | None = None
        self._auto_stop_task: asyncio.Task | None = None
        self._finished: asyncio.Event | None = None
        self._generation = 0

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state in (RecordingState.RECORDING, RecordingState.AUTO_STOPPING)

    @property
    def transcription(self) -> str:
        """Live transcription of the current recording."""
        return self._transcription

    @property
    def locale(self) -> str:
        return self._locale

    @locale.setter
    def locale(self, value: str) -> None:
        # Applies from the next start()
        self._locale = value

    def start(self) -> bool:
        """Begin recording. Must be called from a running event loop.

        Returns:
            True if recording started; False if already recording or the
            recognizer is unavailable
        """
        if self.is_recording:
            logger.warning("Recording already in progress; ignoring start")
            return False

        loop = asyncio.get_running_loop()
        if not self._recognizer.is_available(self._locale):
            logger.warning("Speech recognizer unavailable for %s", self._locale)
            return False

        self._loop = loop
        self._generation += 1
        try:
            handle = self._recognizer.start(self._locale, self._partial_callback(self._generation))
        except SpeechUnavailableError as e:
            logger.warning("Recording did not start: %s", e)
            return False

        self._handle = handle
        self._transcription = ""
        self._finished = asyncio.Event()
        self._state = RecordingState.RECORDING
        logger.info("Recording started (%s)", self._locale)
        return True

    def _partial_callback(self, generation: int) -> Callable[[str], None]:
        loop = self._loop

        def on_partial(text: str) -> None:
            loop.call_soon_threadsafe(self._handle_partial, generation, text)

        return on_partial

    def _handle_partial(self, generation: int, text: str) -> None:
        # Late results from a released handle are ignored
        if generation != self._generation or self._state is not RecordingState.RECORDING:
            return
        self._transcription = text
        self._restart_silence_timer()

    def _restart_silence_timer(self) -> None:
        self._cancel_silence_timer()
        self._silence_timer = self._loop.call_later(self._silence_threshold, self._on_silence)

    def _cancel_silence_timer(self) -> None:
        if self._silence_timer is not None:
            self._silence_timer.cancel()
            self._silence_timer = None

    def _on_silence(self) -> None:
        self._silence_timer = None
        if self._state is not RecordingState.RECORDING:
            return
        logger.info("No speech for %.1fs; stopping", self._silence_threshold)
        self._state = RecordingState.AUTO_STOPPING
        self._auto_stop_task = self._loop.create_task(self.stop())

    def _release(self) -> None:
        self._cancel_silence_timer()
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.release()

    async def stop(self) -> str | None:
        """Stop recording and send the transcription if it is not empty.

        Returns:
            The transcript that was sent, or None if it was empty or the
            send path turned it away
        """
        if not self.is_recording:
            return None

        transcript = self._transcription
        finished = self._finished
        try:
            self._release()
        finally:
            self._transcription = ""
            self._state = RecordingState.IDLE

        try:
            if not transcript.strip():
                logger.info("Recording stopped with empty transcription")
                return None

            logger.info("Recording stopped; sending %d characters", len(transcript))
            result = self._on_transcript(transcript)
            if inspect.isawaitable(result):
                result = await result
            if result is False:
                logger.warning("Transcript was not accepted by the send path")
                return None
            return transcript
        finally:
            finished.set()

    def cancel(self) -> bool:
        """Stop recording and discard the transcription.

        Returns:
            True if a recording was cancelled
        """
        if not self.is_recording:
            return False

        try:
            self._release()
        finally:
            self._transcription = ""
            self._state = RecordingState.CANCELLED
            self._finished.set()
        logger.info("Recording cancelled")
        return True

    async def wait(self) -> None:
        """Wait until the current recording has been stopped or cancelled."""
        if self._finished is not None:
            await self._finished.wait()

    async def __aenter__(self) -> "RecordingSession":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.cancel()
        if self._auto_stop_task is not None and not self._auto_stop_task.done():
            await self._auto_stop_task
