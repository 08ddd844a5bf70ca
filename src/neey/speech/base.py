"""Speech engine interfaces.

Recognition and synthesis engines are supplied by the host; these protocols
describe the small surface the recording session and speaker rely on.
"""

from collections.abc import Callable
from typing import Protocol


class SpeechUnavailableError(RuntimeError):
    """The recognizer, microphone or synthesizer cannot be acquired."""


PartialCallback = Callable[[str], None]


class RecognitionHandle(Protocol):
    """A live capture: microphone tap plus recognition task."""

    def release(self) -> None:
        """Stop capturing and recognizing. Must be safe to call once per handle."""
        ...


class SpeechRecognizer(Protocol):
    """Locale-tagged live speech-to-text engine."""

    def is_available(self, locale: str) -> bool:
        """Whether recognition for ``locale`` can start right now."""
        ...

    def start(self, locale: str, on_partial: PartialCallback) -> RecognitionHandle:
        """Begin capturing.

        ``on_partial`` receives the full transcription so far on every
        recognition update and may be called from any thread.

        Raises:
            SpeechUnavailableError: If the audio input cannot be acquired
        """
        ...


class SpeechSynthesizer(Protocol):
    """Text-to-speech engine."""

    @property
    def is_speaking(self) -> bool:
        ...

    def speak(self, text: str, locale: str, rate: float) -> None:
        """Speak ``text``; ``rate`` uses the 0..1 scale where 0.5 is normal."""
        ...

    def stop(self) -> None:
        """Stop the current utterance immediately."""
        ...
