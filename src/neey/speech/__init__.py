"""Speech capture and playback for neey.

Engines are injected; see ``engines`` for the optional desktop adapters.
"""

from .base import (
    RecognitionHandle,
    SpeechRecognizer,
    SpeechSynthesizer,
    SpeechUnavailableError,
)
from .recording import RecordingInProgressError, RecordingSession, RecordingState
from .speaker import Speaker

__all__ = [
    "RecognitionHandle",
    "RecordingInProgressError",
    "RecordingSession",
    "RecordingState",
    "Speaker",
    "SpeechRecognizer",
    "SpeechSynthesizer",
    "SpeechUnavailableError",
]
