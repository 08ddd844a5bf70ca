"""Tests for the command-line interface."""
import asyncio
import logging
import signal
import sys

import httpx
import pytest
from typer.testing import CliRunner

from conftest import FakeRecognizer, RecordingTransport, make_provider_factory, sse_body
from neey.chat import ConversationStore, Message, MessageRole
from neey.cli import providers
from neey.cli.app import app, cancel_turn, on_interrupt, speech_text
from neey.config import parse_log_level
from neey.speech import RecordingState
from neey.storage import InMemoryKeyValueStore

runner = CliRunner()

REPLY = "**Wortschatz:**\n- Der Hund - the dog\n\nNEXT PROMPTS:\n1) Katzen\n2) Vögel"


@pytest.fixture
def shared_store(monkeypatch):
    """One in-memory store shared by every command in a test."""
    store = InMemoryKeyValueStore()
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setattr(providers, "get_store", lambda: store)
    return store


@pytest.fixture
def transport(monkeypatch):
    transport = RecordingTransport(lambda request: httpx.Response(200, text=sse_body(REPLY)))
    monkeypatch.setattr(providers, "get_provider_factory", lambda: make_provider_factory(transport))
    return transport


def stored_texts(store: InMemoryKeyValueStore) -> list[str]:
    # Commands run their own event loop, so these tests stay synchronous
    return [m.text for m in asyncio.run(ConversationStore(store).load_messages())]


class TestKeyCommands:
    """Tests for the key sub-commands."""

    def test_set_and_status(self, shared_store):
        """Test storing a key."""
        result = runner.invoke(app, ["key", "set", "--value", "sk-cli"])
        assert result.exit_code == 0
        assert "API key saved" in result.output

        result = runner.invoke(app, ["key", "status"])
        assert result.exit_code == 0
        assert "SET" in result.output

    def test_status_without_key(self, shared_store):
        """Test reporting a missing key."""
        result = runner.invoke(app, ["key", "status"])

        assert result.exit_code == 1
        assert "NOT SET" in result.output

    def test_blank_key_is_rejected(self, shared_store):
        """Test that whitespace is not saved."""
        result = runner.invoke(app, ["key", "set", "--value", "   "])

        assert result.exit_code == 1

    def test_clear(self, shared_store):
        """Test forgetting the key."""
        runner.invoke(app, ["key", "set", "--value", "sk-cli"])

        assert runner.invoke(app, ["key", "clear"]).exit_code == 0
        assert runner.invoke(app, ["key", "status"]).exit_code == 1


class TestSendCommand:
    """Tests for one-shot sends."""

    def test_send_prints_sections_and_prompts(self, shared_store, transport):
        """Test a streamed turn from the command line."""
        runner.invoke(app, ["key", "set", "--value", "sk-cli"])

        result = runner.invoke(app, ["send", "Hund"])

        assert result.exit_code == 0
        assert "Der Hund - the dog" in result.output
        assert "Katzen" in result.output
        assert "NEXT PROMPTS" not in result.output
        assert stored_texts(shared_store) == ["Hund", REPLY]

    def test_send_without_key(self, shared_store, transport):
        """Test the hint shown when no key is stored."""
        result = runner.invoke(app, ["send", "Hund"])

        assert result.exit_code == 1
        assert "neey key set" in result.output
        assert transport.requests == []

    def test_server_error(self, shared_store, monkeypatch):
        """Test that a failed reply exits non-zero."""
        failing = RecordingTransport(lambda request: httpx.Response(500, text="down"))
        monkeypatch.setattr(providers, "get_provider_factory", lambda: make_provider_factory(failing))
        runner.invoke(app, ["key", "set", "--value", "sk-cli"])

        result = runner.invoke(app, ["send", "Hund"])

        assert result.exit_code == 1
        assert "No reply" in result.output


class TestChatCommand:
    """Tests for the interactive loop."""

    def test_follow_up_number_sends_prompt(self, shared_store, transport):
        """Test picking a follow-up prompt by number."""
        runner.invoke(app, ["key", "set", "--value", "sk-cli"])

        result = runner.invoke(app, ["chat"], input="Hund\n1\nexit\n")

        assert result.exit_code == 0
        assert stored_texts(shared_store) == ["Hund", REPLY, "Katzen", REPLY]

    def test_slash_commands(self, shared_store, transport):
        """Test /language and /clear inside the loop."""
        runner.invoke(app, ["key", "set", "--value", "sk-cli"])

        result = runner.invoke(app, ["chat"], input="/language Romanian\nHund\n/clear\nq\n")

        assert result.exit_code == 0
        assert "Romanian" in result.output
        assert "translations in Romanian" in transport.payload()["messages"][0]["content"]
        assert stored_texts(shared_store) == []

    def test_prompts_for_missing_key(self, shared_store, transport):
        """Test that chat asks for a key first."""
        result = runner.invoke(app, ["chat"], input="sk-typed\nexit\n")

        assert result.exit_code == 0
        assert runner.invoke(app, ["key", "status"]).exit_code == 0


class TestConversationCommands:
    """Tests for history, clear, language and status."""

    def test_empty_history(self, shared_store):
        """Test history before any message."""
        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "No messages yet" in result.output

    def test_clear_with_confirmation(self, shared_store):
        """Test clearing after confirming, and aborting."""
        asyncio.run(ConversationStore(shared_store).save_messages([Message.sent("Hund")]))

        result = runner.invoke(app, ["clear"], input="n\n")
        assert "Aborted" in result.output
        assert stored_texts(shared_store) == ["Hund"]

        result = runner.invoke(app, ["clear", "--yes"])
        assert "Deleted 1 messages" in result.output
        assert stored_texts(shared_store) == []

    def test_select_language(self, shared_store):
        """Test persisting the translation language."""
        result = runner.invoke(app, ["language", "es-ES"])

        assert result.exit_code == 0
        assert "Spanish" in result.output
        assert asyncio.run(shared_store.get("selected_language")) == "Spanish"

    def test_list_languages(self, shared_store):
        """Test the language table."""
        result = runner.invoke(app, ["language"])

        assert result.exit_code == 0
        assert "Turkish" in result.output
        assert "pl-PL" in result.output

    def test_unknown_language(self, shared_store):
        """Test rejecting an unsupported language."""
        result = runner.invoke(app, ["language", "Klingon"])

        assert result.exit_code == 1
        assert "Unknown language" in result.output

    def test_status(self, shared_store):
        """Test the settings overview."""
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "NOT SET" in result.output
        assert "memory" in result.output
        assert "English" in result.output


class TestSpeechText:
    """Tests for resolving /speak arguments."""

    def answer(self) -> Message:
        return Message(role=MessageRole.RECEIVED, text=REPLY)

    def test_free_text(self):
        """Test that text is spoken as given."""
        assert speech_text(" Guten Tag ", self.answer()) == "Guten Tag"

    def test_whole_answer(self):
        """Test that no argument reads the main content."""
        assert speech_text("", self.answer()) == self.answer().main_content

    def test_line_number(self):
        """Test picking a non-blank line of the answer."""
        assert speech_text("2", self.answer()) == "- Der Hund - the dog"
        assert speech_text("9", self.answer()) == ""

    def test_without_answer(self):
        """Test that there is nothing to read before the first reply."""
        assert speech_text("", None) == ""
        assert speech_text("1", None) == ""


class TestRecordInterrupt:
    """Tests for Ctrl+C during a spoken turn."""

    @pytest.mark.asyncio
    async def test_interrupt_cancels_recording_only(self, make_session):
        """Test that the recording is discarded and the chat stays usable."""
        session, _ = make_session(lambda request: httpx.Response(200, text=sse_body(REPLY)))
        recognizer = FakeRecognizer()
        recording = session.create_recording_session(recognizer, silence_threshold=10)
        recording.start()
        recognizer.emit("Hund")
        await asyncio.sleep(0)

        assert cancel_turn(session, recording) == "recording"
        assert recording.state == RecordingState.CANCELLED
        assert recognizer.handles[0].release_count == 1
        assert session.messages == []

        assert cancel_turn(session, recording) is None

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="loop signal handlers are POSIX only")
    async def test_sigint_is_routed_to_callback(self):
        """Test that SIGINT inside the block calls back instead of raising."""
        calls = []
        before = signal.getsignal(signal.SIGINT)

        with on_interrupt(lambda: calls.append("interrupted")):
            signal.raise_signal(signal.SIGINT)
            for _ in range(50):
                if calls:
                    break
                await asyncio.sleep(0.01)

        assert calls == ["interrupted"]
        assert signal.getsignal(signal.SIGINT) is before


class TestLogLevel:
    """Tests for --log-level parsing."""

    @pytest.mark.parametrize("name,expected", [
        ("debug", logging.DEBUG),
        ("INFO", logging.INFO),
        (" error ", logging.ERROR),
        ("verbose", logging.WARNING),
    ])
    def test_parse(self, name: str, expected: int):
        """Test names and the fallback level."""
        assert parse_log_level(name) == expected
