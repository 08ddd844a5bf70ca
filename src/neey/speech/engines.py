"""Speech engine adapters over desktop libraries.

Hidden design decisions:
- SpeechRecognition's background listener for microphone capture; each
  recognized phrase extends the running transcription
- pyttsx3 for offline synthesis, with a voice picked by locale

Both libraries are optional (``pip install neey[speech]``) and imported
when an adapter is constructed.
"""

import logging
import threading
from collections.abc import Callable

from .base import PartialCallback, SpeechUnavailableError

logger = logging.getLogger(__name__)

# pyttsx3 speaks at roughly this many words per minute by default
_DEFAULT_WORDS_PER_MINUTE = 200


class _BackgroundListenerHandle:
    """Stops a SpeechRecognition background listener once."""

    def __init__(self, stop_listening: Callable[..., None]):
        self._stop_listening = stop_listening
        self._released = False

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._stop_listening(wait_for_stop=False)


class SpeechRecognitionRecognizer:
    """Microphone recognizer backed by the SpeechRecognition package.

    Uses the Google Web Speech API through ``recognize_google`` (network
    required, no key).
    """

    def __init__(self, phrase_time_limit: float | None = 8.0, ambient_duration: float = 0.3):
        import speech_recognition as sr

        self._sr = sr
        self._recognizer = sr.Recognizer()
        self._phrase_time_limit = phrase_time_limit
        self._ambient_duration = ambient_duration

    def is_available(self, locale: str) -> bool:
        try:
            return bool(self._sr.Microphone.list_microphone_names())
        except (AttributeError, OSError) as e:
            # AttributeError: PyAudio missing
            logger.warning("No microphone available: %s", e)
            return False

    def start(self, locale: str, on_partial: PartialCallback) -> _BackgroundListenerHandle:
        sr = self._sr
        try:
            microphone = sr.Microphone()
            with microphone as source:
                self._recognizer.adjust_for_ambient_noise(source, duration=self._ambient_duration)
        except (AttributeError, OSError) as e:
            raise SpeechUnavailableError(f"Cannot open microphone: {e}") from e

        phrases: list[str] = []
        lock = threading.Lock()

        def on_audio(recognizer: "sr.Recognizer", audio: "sr.AudioData") -> None:
            try:
                text = recognizer.recognize_google(audio, language=locale)
            except sr.UnknownValueError:
                return
            except sr.RequestError as e:
                logger.warning("Speech service error: %s", e)
                return
            with lock:
                phrases.append(text)
                transcription = " ".join(phrases)
            on_partial(transcription)

        stop_listening = self._recognizer.listen_in_background(
            microphone, on_audio, phrase_time_limit=self._phrase_time_limit
        )
        return _BackgroundListenerHandle(stop_listening)


class Pyttsx3Synthesizer:
    """Offline synthesizer backed by pyttsx3.

    ``speak`` blocks until the utterance finishes; call it from a worker
    thread when the caller must stay responsive.
    """

    def __init__(self):
        import pyttsx3

        try:
            self._engine = pyttsx3.init()
        except RuntimeError as e:
            raise SpeechUnavailableError(f"Cannot initialize pyttsx3: {e}") from e
        self._voice_by_locale: dict[str, str | None] = {}

    @property
    def is_speaking(self) -> bool:
        return bool(self._engine.isBusy())

    def _voice_for(self, locale: str) -> str | None:
        if locale not in self._voice_by_locale:
            language = locale.split("-")[0].lower()
            match = None
            for voice in self._engine.getProperty("voices"):
                tags = [
                    tag.decode("utf-8", "ignore") if isinstance(tag, bytes) else str(tag)
                    for tag in (voice.languages or [])
                ]
                haystack = " ".join(tags + [voice.id, voice.name or ""]).lower()
                if locale.lower() in haystack or language in haystack:
                    match = voice.id
                    break
            self._voice_by_locale[locale] = match
        return self._voice_by_locale[locale]

    def speak(self, text: str, locale: str, rate: float) -> None:
        voice_id = self._voice_for(locale)
        if voice_id:
            self._engine.setProperty("voice", voice_id)
        else:
            logger.warning("No %s voice installed; using the default voice", locale)
        self._engine.setProperty("rate", int(_DEFAULT_WORDS_PER_MINUTE * rate / 0.5))
        self._engine.say(text)
        self._engine.runAndWait()

    def stop(self) -> None:
        self._engine.stop()
