"""Provider factory functions for CLI.

Centralizes creation of stores, credentials, providers and speech engines
from environment variables. Hides configuration details from command
implementations.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from rich.console import Console

from ..chat import ChatSession, ConversationStore
from ..chat.session import ProviderFactory
from ..config import DEFAULT_MODEL, DEFAULT_TEMPERATURE, SILENCE_THRESHOLD_SECONDS, STORE_PATH
from ..credentials import CredentialStore, EnvironmentCredentialStore, KeyValueCredentialStore
from ..llm import create_llm_provider
from ..speech import Speaker, SpeechUnavailableError
from ..storage import KeyValueStore, create_key_value_store

# Default console for output
_console = Console()


def _float_env(name: str, default: float, console: Console | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        (console or _console).print(f"[yellow]Warning: {name}={raw!r} is not a number, using {default}[/yellow]")
        return default


def get_store() -> KeyValueStore:
    """Create the key-value store from environment variables.

    Environment variables:
        NEEY_STORE: Backend type (memory or sqlite; default: sqlite)
        NEEY_STORE_PATH: SQLite file (default: ~/.neey/neey.db)
    """
    backend = os.getenv("NEEY_STORE", "sqlite").lower()
    if backend == "sqlite":
        return create_key_value_store("sqlite", path=STORE_PATH)
    return create_key_value_store(backend)


def get_credentials(store: KeyValueStore) -> CredentialStore:
    """API keys from OPENAI_API_KEY first, then the key-value store."""
    return EnvironmentCredentialStore(KeyValueCredentialStore(store))


def get_provider_factory() -> ProviderFactory:
    """Build providers for the stored API key.

    Environment variables:
        NEEY_MODEL: Chat model (default: gpt-4o)
        OPENAI_BASE_URL: OpenAI-compatible endpoint (default: OpenAI)
    """
    model = os.getenv("NEEY_MODEL", DEFAULT_MODEL)
    base_url = os.getenv("OPENAI_BASE_URL")

    def factory(api_key: str) -> Any:
        return create_llm_provider("openai", api_key=api_key, model=model, base_url=base_url)

    return factory


def get_silence_threshold(console: Console | None = None) -> float:
    """Seconds of silence before a recording stops (NEEY_SILENCE_THRESHOLD)."""
    return _float_env("NEEY_SILENCE_THRESHOLD", SILENCE_THRESHOLD_SECONDS, console)


def create_session(store: KeyValueStore, console: Console | None = None) -> ChatSession:
    """Wire a chat session over ``store``.

    Environment variables:
        NEEY_TEMPERATURE: Sampling temperature (default: 0.9)
    """
    return ChatSession(
        provider_factory=get_provider_factory(),
        store=ConversationStore(store),
        credentials=get_credentials(store),
        temperature=_float_env("NEEY_TEMPERATURE", DEFAULT_TEMPERATURE, console),
    )


@asynccontextmanager
async def open_session(console: Console | None = None) -> AsyncIterator[ChatSession]:
    """Connect the store, load the conversation and disconnect on exit."""
    store = get_store()
    await store.connect()
    try:
        session = create_session(store, console)
        await session.load()
        yield session
    finally:
        await store.disconnect()


def get_recognizer(console: Console | None = None) -> Any:
    """Create the microphone recognizer.

    Raises:
        SystemExit: If the speech extra is not installed
    """
    import typer

    con = console or _console
    try:
        from ..speech.engines import SpeechRecognitionRecognizer
        return SpeechRecognitionRecognizer()
    except ImportError as e:
        con.print(f"[red]Error: speech support not installed ({e.name}). Install with: pip install 'neey[speech]'[/red]")
        raise typer.Exit(code=1)


def get_speaker(console: Console | None = None) -> Speaker:
    """Create the German speaker.

    Raises:
        SystemExit: If the speech extra is not installed or no TTS engine works
    """
    import typer

    con = console or _console
    try:
        from ..speech.engines import Pyttsx3Synthesizer
        return Speaker(Pyttsx3Synthesizer())
    except ImportError as e:
        con.print(f"[red]Error: speech support not installed ({e.name}). Install with: pip install 'neey[speech]'[/red]")
        raise typer.Exit(code=1)
    except SpeechUnavailableError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
