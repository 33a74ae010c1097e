"""Decoding of individual server-sent event lines."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from chatstream.models import Choice, ChunkRecord, Delta

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "data: [DONE]"
COMMENT_PREFIX = ":"

FINISH_STOP = "stop"
FINISH_FUNCTION_CALL = "function_call"
FINISH_TOOL_CALLS = "tool_calls"


def done_chunk() -> ChunkRecord:
    """The chunk the ``[DONE]`` sentinel stands for: a bare stop."""
    return ChunkRecord(choices=[Choice(delta=Delta(), finish_reason=FINISH_STOP)])


def parse_sse_line(line: str) -> ChunkRecord | None:
    """Decode one SSE line into a :class:`ChunkRecord`.

    Returns ``None`` for blank lines, comments, non-data fields
    (``event:``, ``id:``, ``retry:``) and data lines whose payload is not a
    well-formed chunk. A malformed line never interrupts the stream.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_PREFIX):
        return None

    if stripped == DONE_SENTINEL:
        return done_chunk()

    if not stripped.startswith(DATA_PREFIX):
        return None

    payload = stripped[len(DATA_PREFIX):]
    try:
        return ChunkRecord.model_validate_json(payload)
    except ValidationError as e:
        logger.debug(f"Dropping malformed SSE data line: {e.error_count()} error(s) in {payload[:80]!r}")
        return None
