"""Decoding of streamed completion frames.

The endpoint answers with newline-delimited event frames. Only lines starting
with ``data: `` matter; ``data: [DONE]`` terminates the stream and every other
data line carries one JSON chunk.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from .models import StreamChunk

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class FrameType(str, Enum):
    IGNORED = "ignored"      # not a data line
    DONE = "done"            # end-of-stream sentinel
    MALFORMED = "malformed"  # data line whose payload does not decode
    CHUNK = "chunk"          # decoded chunk (content may still be absent)


@dataclass(frozen=True)
class StreamFrame:
    """Result of decoding one response line."""

    type: FrameType
    content: str | None = None
    usage: dict[str, Any] | None = field(default=None)


def parse_frame(line: str) -> StreamFrame:
    """Decode a single line of a streamed completion.

    Args:
        line: One response line without its trailing newline

    Returns:
        StreamFrame describing what the line contributes
    """
    if not line.startswith(DATA_PREFIX):
        return StreamFrame(FrameType.IGNORED)

    payload = line[len(DATA_PREFIX):]
    if payload == DONE_SENTINEL:
        return StreamFrame(FrameType.DONE)

    try:
        chunk = StreamChunk.model_validate_json(payload)
    except ValidationError as e:
        logger.debug("Skipping malformed chunk %r: %s", payload, e.errors()[0]["msg"])
        return StreamFrame(FrameType.MALFORMED)

    content = chunk.choices[0].delta.content if chunk.choices else None
    return StreamFrame(FrameType.CHUNK, content=content, usage=chunk.usage)
