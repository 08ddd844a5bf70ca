import logging

from ..config import SPEECH_LOCALE, SPEECH_RATE
from .base import SpeechSynthesizer

logger = logging.getLogger(__name__)


class Speaker:
    """Reads selected spans aloud, one utterance at a time.

    A new request stops any utterance still in progress. Locale and rate are
    fixed to the language being learned, independent of the translation
    language.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        locale: str = SPEECH_LOCALE,
        rate: float = SPEECH_RATE,
    ):
        self._synthesizer = synthesizer
        self._locale = locale
        self._rate = rate

    @property
    def is_speaking(self) -> bool:
        return self._synthesizer.is_speaking

    def speak(self, text: str) -> bool:
        """Speak ``text``, interrupting the current utterance.

        Returns:
            False if there was nothing to say
        """
        if not text.strip():
            return False
        if self._synthesizer.is_speaking:
            self._synthesizer.stop()
        logger.debug("Speaking %d characters (%s)", len(text), self._locale)
        self._synthesizer.speak(text, self._locale, self._rate)
        return True

    def stop(self) -> None:
        if self._synthesizer.is_speaking:
            self._synthesizer.stop()
