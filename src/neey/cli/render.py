"""Rich rendering for chat messages.

Hides the details of how parsed sections and follow-up prompts are laid
out in the terminal.
"""

from rich.align import Align
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..chat import Message, MessageRole, SectionKind, parse_sections
from ..languages import Language

_SECTION_STYLES = {
    SectionKind.VOCABULARY: "bold blue",
    SectionKind.SENTENCES: "bold blue",
    SectionKind.CONJUGATION: "bold blue",
}


def render_answer(main_content: str) -> RenderableType:
    """Render the main content of a received message, section by section."""
    parts: list[RenderableType] = []
    for section in parse_sections(main_content):
        if section.title:
            parts.append(Text(section.title, style=_SECTION_STYLES.get(section.kind, "bold")))
        for line in section.lines:
            parts.append(Text(line, overflow="fold"))
    if not parts:
        parts.append(Text("…", style="dim"))
    return Group(*parts)


def render_follow_ups(prompts: list[str]) -> RenderableType:
    """Numbered follow-up prompts the user can pick by number."""
    lines = [Text("Follow-up prompts:", style="bold dim")]
    for index, prompt in enumerate(prompts, 1):
        lines.append(Text.assemble((f" {index}) ", "dim"), (prompt, "blue")))
    return Group(*lines)


def render_message(message: Message) -> RenderableType:
    """Render one chat turn: sent messages right-aligned, answers as panels."""
    if message.role is MessageRole.SENT:
        return Align.right(Panel(Text(message.text, overflow="fold"), border_style="blue", expand=False))

    body: list[RenderableType] = [render_answer(message.main_content)]
    if message.follow_up_prompts:
        body.append(Text(""))
        body.append(render_follow_ups(message.follow_up_prompts))
    return Panel(Group(*body), border_style="dim", expand=True)


def render_languages(selected: Language) -> Table:
    """Table of supported languages with the selected one marked."""
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("", width=2)
    table.add_column("Language")
    table.add_column("Locale", style="dim")
    table.add_column("Flag")

    for language in Language:
        marker = "*" if language is selected else ""
        table.add_row(marker, language.value, language.locale, language.flag)
    return table
