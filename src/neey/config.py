"""Central configuration for paths and constants.

Centralizes magic numbers and configuration values shared by the
chat session, the streaming client and the speech components.
"""

import logging
import os
from pathlib import Path

# Data directory, overridable with NEEY_DATA_DIR
DATA_DIR = Path(os.environ.get("NEEY_DATA_DIR", str(Path.home() / ".neey")))

# Default SQLite key-value store location
STORE_PATH = Path(os.environ.get("NEEY_STORE_PATH", str(DATA_DIR / "neey.db")))

# Completion endpoint
OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_TEMPERATURE = 0.9

# Persistence keys
MESSAGES_KEY = "chat_messages"
LANGUAGE_KEY = "selected_language"

# Credential identifiers
CREDENTIAL_SERVICE = "com.neey.app"
CREDENTIAL_ACCOUNT = "openai_api_key"
API_KEY_ENV_VAR = "OPENAI_API_KEY"

# Response format
FOLLOW_UP_MARKER = "NEXT PROMPTS:"

# Recording
SILENCE_THRESHOLD_SECONDS = 1.0  # auto-stop after this long without a partial result

# Speech synthesis (platform scale: 0.5 is normal speed)
SPEECH_LOCALE = "de-DE"
SPEECH_RATE = 0.4


LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_log_level(name: str) -> int:
    """Level for a ``--log-level`` value; unknown names fall back to WARNING."""
    return LOG_LEVELS.get(name.strip().lower(), logging.WARNING)
