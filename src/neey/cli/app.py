"""Main CLI application using Typer."""
import asyncio
import logging
import os
import signal
from contextlib import contextmanager

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from ..chat import ChatEvent, ChatEventKind, ChatSession, Message, MessageRole, SendOutcome
from ..config import DEFAULT_MODEL, parse_log_level
from ..languages import Language
from ..speech import RecordingSession, RecordingState
from .providers import (
    get_recognizer,
    get_silence_threshold,
    get_speaker,
    open_session,
)
from .render import render_languages, render_message

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="neey",
    help="German-teacher chat with streamed vocabulary, sentences and conjugations",
    no_args_is_help=True,
    add_completion=True,
)
key_app = typer.Typer(help="Manage the OpenAI API key", no_args_is_help=True)
app.add_typer(key_app, name="key")

# Console for rich output
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

_EXIT_WORDS = ("exit", "quit", "q")


def configure_logging(level: str) -> None:
    """Route library logging through Rich on stderr."""
    logging.basicConfig(
        level=parse_log_level(level),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "warning",
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, or error"
    ),
):
    """Neey: learn German by chatting with a streamed teacher."""
    configure_logging(log_level)


def _run(main) -> None:
    """Run a command coroutine; unexpected errors exit with code 1."""
    try:
        asyncio.run(main)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        logger.debug("Command failed", exc_info=True)
        raise typer.Exit(code=1)


def _report(outcome: SendOutcome) -> None:
    if outcome is SendOutcome.NEEDS_API_KEY:
        console.print("[yellow]No valid API key. Set one with: neey key set[/yellow]")
    elif outcome is SendOutcome.BUSY:
        console.print("[yellow]Still answering the previous message.[/yellow]")
    elif outcome in (SendOutcome.FAILED, SendOutcome.CANCELLED):
        console.print("[dim]No reply.[/dim]")


async def _send_and_render(session: ChatSession, text: str, stream: bool = True) -> SendOutcome:
    """Send ``text`` and redraw the reply as it streams in."""
    console.print(render_message(Message.sent(text)))

    with Live(Text("…", style="dim"), console=console, refresh_per_second=12, transient=True) as live:
        def on_event(event: ChatEvent) -> None:
            if event.kind is ChatEventKind.MESSAGE_UPDATED and event.message_id is not None:
                message = session.get_message(event.message_id)
                if message is not None:
                    live.update(render_message(message))

        unsubscribe = session.subscribe(on_event)
        try:
            outcome = await session.send(text, stream=stream)
        finally:
            unsubscribe()

    if outcome is SendOutcome.COMPLETED:
        console.print(render_message(session.messages[-1]))
    _report(outcome)
    return outcome


def _last_answer(session: ChatSession):
    for message in reversed(session.messages):
        if message.role is MessageRole.RECEIVED:
            return message
    return None


def speech_text(argument: str, answer: Message | None) -> str:
    """Resolve a /speak argument: free text, a line number, or the whole answer."""
    argument = argument.strip()
    if argument and not argument.isdigit():
        return argument
    if answer is None:
        return ""
    if not argument:
        return answer.main_content
    lines = [line.strip() for line in answer.main_content.splitlines() if line.strip()]
    index = int(argument) - 1
    return lines[index] if 0 <= index < len(lines) else ""


def cancel_turn(session: ChatSession, recording: RecordingSession) -> str | None:
    """Ctrl+C during a spoken turn: drop the recording, else stop the reply."""
    if recording.cancel():
        return "recording"
    if session.cancel():
        return "reply"
    return None


@contextmanager
def on_interrupt(callback):
    """Route SIGINT to ``callback`` instead of aborting the event loop."""
    loop = asyncio.get_running_loop()
    previous = signal.getsignal(signal.SIGINT)
    try:
        loop.add_signal_handler(signal.SIGINT, callback)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError) as e:
        # Windows loops and non-main threads keep the default behaviour
        logger.debug("SIGINT handler not installed: %s", e)
        installed = False
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)
            signal.signal(signal.SIGINT, previous or signal.default_int_handler)


async def _record_turn(session: ChatSession) -> None:
    """Capture one utterance and send it, rendering the reply."""
    async def send_spoken(text: str) -> bool:
        outcome = await _send_and_render(session, text)
        return outcome.accepted

    recognizer = get_recognizer(console)
    recording = session.create_recording_session(
        recognizer,
        silence_threshold=get_silence_threshold(console),
        on_transcript=send_spoken,
    )
    async with recording:
        if not recording.start():
            console.print("[yellow]Microphone or speech recognition unavailable.[/yellow]")
            return
        console.print(f"[dim]Listening ({session.selected_language.locale})… Ctrl+C to cancel[/dim]")
        with on_interrupt(lambda: cancel_turn(session, recording)):
            await recording.wait()

    if recording.state is RecordingState.CANCELLED:
        console.print("[dim]Recording cancelled.[/dim]")


async def _ensure_api_key(session: ChatSession) -> bool:
    if await session.has_api_key():
        return True
    key = typer.prompt("Enter OpenAI API Key", hide_input=True, default="", show_default=False)
    return await session.save_api_key(key)


@app.command()
def chat():
    """Interactive chat; type a follow-up number to send that prompt."""
    async def _chat():
        async with open_session(console) as session:
            for message in session.messages:
                console.print(render_message(message))

            if not await _ensure_api_key(session):
                console.print("[yellow]An API key is required to chat.[/yellow]")
                return

            console.print(
                f"[bold cyan]Neey[/bold cyan] {session.selected_language.flag} "
                f"[dim]/clear, /language NAME, /record, /speak [N|TEXT], exit[/dim]\n"
            )

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ").strip()
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                if not user_input:
                    continue

                if user_input.lower() in _EXIT_WORDS:
                    console.print("[dim]Goodbye![/dim]")
                    break

                if user_input == "/clear":
                    await session.clear_history()
                    console.print("[dim]History cleared.[/dim]")
                    continue

                if user_input.startswith("/language"):
                    name = user_input[len("/language"):].strip()
                    if not name:
                        console.print(render_languages(session.selected_language))
                        continue
                    try:
                        language = Language.parse(name)
                    except ValueError as e:
                        console.print(f"[red]{e}[/red]")
                        continue
                    await session.set_language(language)
                    console.print(f"[dim]Translations now in {language.flag} {language.value}[/dim]")
                    continue

                if user_input == "/record":
                    await _record_turn(session)
                    continue

                if user_input.startswith("/speak"):
                    text = speech_text(user_input[len("/speak"):], _last_answer(session))
                    if not get_speaker(console).speak(text):
                        console.print("[dim]Nothing to speak.[/dim]")
                    continue

                answer = _last_answer(session)
                if user_input.isdigit() and answer is not None:
                    index = int(user_input) - 1
                    if 0 <= index < len(answer.follow_up_prompts):
                        user_input = answer.follow_up_prompts[index]

                await _send_and_render(session, user_input)

    _run(_chat())


@app.command()
def send(
    text: str = typer.Argument(..., help="Message to send"),
    no_stream: bool = typer.Option(
        False,
        "--no-stream",
        help="Wait for the full answer instead of streaming it"
    ),
):
    """Send one message and print the answer."""
    async def _send():
        async with open_session(console) as session:
            outcome = await _send_and_render(session, text, stream=not no_stream)
            if outcome is not SendOutcome.COMPLETED:
                raise typer.Exit(code=1)

    _run(_send())


@app.command()
def history():
    """Print the stored conversation."""
    async def _history():
        async with open_session(console) as session:
            if not session.messages:
                console.print("[dim]No messages yet.[/dim]")
                return
            for message in session.messages:
                console.print(render_message(message))

    _run(_history())


@app.command()
def clear(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt"
    )
):
    """Delete the stored conversation."""
    async def _clear():
        if not yes:
            confirm = typer.confirm("Delete the whole conversation?")
            if not confirm:
                console.print("[dim]Aborted.[/dim]")
                return

        async with open_session(console) as session:
            count = len(session.messages)
            await session.clear_history()
            console.print(f"[green]Deleted {count} messages.[/green]")

    _run(_clear())


@app.command()
def language(
    name: str = typer.Argument(None, help="Language name or locale, e.g. French or fr-FR"),
):
    """Show supported languages or select the translation language."""
    async def _language():
        async with open_session(console) as session:
            if not name:
                console.print(render_languages(session.selected_language))
                return
            try:
                selected = Language.parse(name)
            except ValueError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)
            await session.set_language(selected)
            console.print(f"[green]Translations now in {selected.flag} {selected.value}[/green]")

    _run(_language())


@app.command()
def record():
    """Record one spoken message and send it when you stop talking."""
    async def _record():
        async with open_session(console) as session:
            if not await session.has_api_key():
                console.print("[yellow]No API key. Set one with: neey key set[/yellow]")
                raise typer.Exit(code=1)
            await _record_turn(session)

    try:
        _run(_record())
    except KeyboardInterrupt:
        console.print("\n[dim]Recording cancelled.[/dim]")


@app.command()
def speak(text: str = typer.Argument(..., help="German text to read aloud")):
    """Read text aloud with a German voice."""
    if not get_speaker(console).speak(text):
        console.print("[dim]Nothing to speak.[/dim]")


@app.command()
def status():
    """Show API key, storage and language settings."""
    async def _status():
        async with open_session(console) as session:
            has_key = await session.has_api_key()
            backend = session.store.backend

            table = Table(show_header=False, box=None)
            table.add_column("Setting", style="bold cyan", width=15)
            table.add_column("Value")

            table.add_row("API key", "[green]SET[/green]" if has_key else "[yellow]NOT SET[/yellow]")
            table.add_row("Store", backend.backend_type)
            db_path = getattr(backend, "db_path", None)
            if db_path is not None:
                table.add_row("Store path", str(db_path))
            table.add_row("Model", os.getenv("NEEY_MODEL", DEFAULT_MODEL))
            table.add_row("Language", f"{session.selected_language.flag} {session.selected_language.value}")
            table.add_row("Messages", str(len(session.messages)))

            console.print(table)

    _run(_status())


@key_app.command("set")
def key_set(
    value: str = typer.Option(
        ...,
        "--value",
        prompt="OpenAI API Key",
        hide_input=True,
        help="API key (prompted when omitted)"
    ),
):
    """Store the OpenAI API key."""
    async def _set():
        async with open_session(console) as session:
            if not await session.save_api_key(value):
                console.print("[red]Error: the API key is empty[/red]")
                raise typer.Exit(code=1)
            console.print("[green]API key saved.[/green]")

    _run(_set())


@key_app.command("status")
def key_status():
    """Report whether an API key is available."""
    async def _status():
        async with open_session(console) as session:
            if await session.has_api_key():
                console.print("[green]+[/green] OpenAI API key: SET")
            else:
                console.print("[yellow]![/yellow] OpenAI API key: NOT SET")
                raise typer.Exit(code=1)

    _run(_status())


@key_app.command("clear")
def key_clear():
    """Forget the stored API key (OPENAI_API_KEY is unaffected)."""
    async def _clear():
        async with open_session(console) as session:
            await session.clear_api_key()
            console.print("[green]Stored API key removed.[/green]")

    _run(_clear())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
