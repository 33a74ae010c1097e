"""Incremental parser for chat-completion server-sent event streams."""

from chatstream.errors import ChatStreamError, StreamUnavailableError
from chatstream.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    FunctionCallEvent,
    StreamEvent,
    ToolCallEvent,
)
from chatstream.handlers import StreamHandler, collect_content, create_stream_handler
from chatstream.instrumentation import instrument, uninstrument
from chatstream.models import ChunkRecord, Usage
from chatstream.sse import parse_sse_line
from chatstream.streaming import StreamParser, iter_stream, parse_stream

__all__ = [
    "ChatStreamError",
    "ChunkRecord",
    "ContentEvent",
    "DoneEvent",
    "ErrorEvent",
    "FunctionCallEvent",
    "StreamEvent",
    "StreamHandler",
    "StreamParser",
    "StreamUnavailableError",
    "ToolCallEvent",
    "Usage",
    "collect_content",
    "create_stream_handler",
    "instrument",
    "iter_stream",
    "parse_sse_line",
    "parse_stream",
    "uninstrument",
]
