"""Response parser for teacher answers.

Hidden design decisions:
- Follow-up block detection by a literal marker (no partial-marker matching,
  so a marker split across stream chunks reads as absent until complete)
- Numbered-item pattern for follow-up prompts
- Heading tokens that open the vocabulary/sentences/conjugation sections
"""

import re
from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field

from ..config import FOLLOW_UP_MARKER

_NUMBERED_ITEM = re.compile(r"^\d+\)")
_NUMBERED_PREFIX = re.compile(r"^\d+\)\s*")


class SectionKind(str, Enum):
    """Kind of display section in a teacher answer."""

    TEXT = "text"
    VOCABULARY = "vocabulary"
    SENTENCES = "sentences"
    CONJUGATION = "conjugation"


# Heading token -> section kind, in prompt order
SECTION_HEADINGS: dict[str, SectionKind] = {
    "**Wortschatz:**": SectionKind.VOCABULARY,
    "**Sätze:**": SectionKind.SENTENCES,
    "**Konjugation:**": SectionKind.CONJUGATION,
}


class ParsedResponse(BaseModel):
    """Main content and follow-up prompts derived from a raw answer."""

    model_config = ConfigDict(frozen=True)

    main_content: str = Field(description="Answer text with the follow-up block stripped")
    follow_up_prompts: tuple[str, ...] = Field(
        default=(),
        description="Suggested next inputs, in order"
    )


class ResponseSection(BaseModel):
    """A titled block of answer lines for rendering."""

    kind: SectionKind
    title: str | None = None
    lines: list[str] = Field(default_factory=list)


@lru_cache(maxsize=256)
def parse_response(text: str, marker: str = FOLLOW_UP_MARKER) -> ParsedResponse:
    """Split a raw answer into main content and follow-up prompts.

    Everything before the first marker (trimmed) is the main content. Lines
    after it that look like ``1) ...`` become prompts, prefix removed; all
    other lines are dropped.

    Args:
        text: Accumulated raw answer, possibly partial
        marker: Literal string introducing the follow-up block

    Returns:
        ParsedResponse; without a marker the text is returned verbatim
    """
    head, found, tail = text.partition(marker)
    if not found:
        return ParsedResponse(main_content=text)

    prompts = []
    for line in tail.split("\n"):
        line = line.strip()
        if _NUMBERED_ITEM.match(line):
            prompts.append(_NUMBERED_PREFIX.sub("", line, count=1))

    return ParsedResponse(main_content=head.strip(), follow_up_prompts=tuple(prompts))


def _heading_kind(line: str) -> SectionKind | None:
    for token, kind in SECTION_HEADINGS.items():
        if token in line:
            return kind
    return None


def parse_sections(main_content: str, marker: str = FOLLOW_UP_MARKER) -> list[ResponseSection]:
    """Group main-content lines under the section headings they follow.

    Args:
        main_content: Output of :func:`parse_response`
        marker: Lines containing this marker are skipped

    Returns:
        Sections in order of appearance
    """
    sections: list[ResponseSection] = []
    current = ResponseSection(kind=SectionKind.TEXT)

    for line in main_content.split("\n"):
        if marker in line:
            continue
        kind = _heading_kind(line)
        if kind is None:
            current.lines.append(line)
            continue
        if current.title is not None or any(part.strip() for part in current.lines):
            sections.append(current)
        current = ResponseSection(kind=kind, title=line.replace("**", "").strip())

    if current.title is not None or any(part.strip() for part in current.lines):
        sections.append(current)

    return sections
