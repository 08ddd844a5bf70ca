"""Pytest configuration and shared fixtures."""
import json
import os
from collections.abc import Callable

import httpx
import pytest

from neey.chat import ChatSession, ConversationStore
from neey.credentials import InMemoryCredentialStore
from neey.llm import OpenAIProvider
from neey.speech import SpeechUnavailableError
from neey.storage import InMemoryKeyValueStore

TEST_API_KEY = "sk-test"


def sse_line(content: str | None) -> str:
    """A ``data:`` frame carrying one content delta."""
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


def sse_body(*fragments: str, done: bool = True) -> str:
    """Response body streaming ``fragments`` and, by default, the sentinel."""
    lines = [sse_line(fragment) for fragment in fragments]
    if done:
        lines.append("data: [DONE]")
    return "\n\n".join(lines) + "\n\n"


class RecordingTransport:
    """Wraps a handler and keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def payload(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def make_provider_factory(transport: RecordingTransport):
    """Provider factory whose streaming requests hit ``transport``."""

    def factory(api_key: str) -> OpenAIProvider:
        return OpenAIProvider(
            api_key=api_key,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(transport)),
        )

    return factory


class FakeHandle:
    def __init__(self):
        self.release_count = 0

    def release(self) -> None:
        self.release_count += 1


class FakeRecognizer:
    """In-process recognizer; tests push partials through ``emit``."""

    def __init__(self, available: bool = True, fail_start: bool = False):
        self.available = available
        self.fail_start = fail_start
        self.handles: list[FakeHandle] = []
        self.locales: list[str] = []
        self._on_partial = None

    def is_available(self, locale: str) -> bool:
        return self.available

    def start(self, locale: str, on_partial) -> FakeHandle:
        if self.fail_start:
            raise SpeechUnavailableError("no microphone")
        self.locales.append(locale)
        self._on_partial = on_partial
        handle = FakeHandle()
        self.handles.append(handle)
        return handle

    def emit(self, text: str) -> None:
        self._on_partial(text)


class FakeSynthesizer:
    def __init__(self):
        self.spoken: list[tuple[str, str, float]] = []
        self.stop_count = 0
        self.speaking = False

    @property
    def is_speaking(self) -> bool:
        return self.speaking

    def speak(self, text: str, locale: str, rate: float) -> None:
        self.spoken.append((text, locale, rate))

    def stop(self) -> None:
        self.stop_count += 1
        self.speaking = False


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "openai": os.getenv("OPENAI_API_KEY"),
    }


@pytest.fixture
def kv_store():
    """Connected-by-default in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def conversation_store(kv_store):
    return ConversationStore(kv_store)


@pytest.fixture
def credentials():
    return InMemoryCredentialStore()


@pytest.fixture
def make_session(conversation_store, credentials):
    """Build a chat session over a scripted transport."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> tuple[ChatSession, RecordingTransport]:
        transport = RecordingTransport(handler)
        session = ChatSession(
            provider_factory=make_provider_factory(transport),
            store=conversation_store,
            credentials=credentials,
        )
        return session, transport

    return _make


@pytest.fixture
def recognizer():
    return FakeRecognizer()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()
