"""Stream parsing: from raw SSE bytes to :class:`StreamEvent` objects.

Data flows one way: bytes -> lines (:class:`LineFramer`) -> chunk
records (:func:`parse_sse_line`) -> events (:class:`ChunkProcessor`).
:class:`StreamParser` owns one instance of each for a single stream, and
:func:`parse_stream` / :func:`iter_stream` drive it from a byte source.

Tool calls and legacy function calls arrive in fragments across many
chunks. They are accumulated and only emitted once a matching
``finish_reason`` is seen.
"""

from __future__ import annotations

import inspect
import logging
from collections import Counter
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from dataclasses import dataclass, replace

from chatstream.errors import StreamUnavailableError
from chatstream.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    FunctionCallEvent,
    StreamEvent,
    ToolCallEvent,
)
from chatstream.framing import LineFramer
from chatstream.instrumentation import (
    parse_span,
    record_error,
    record_event_counts,
    record_usage,
)
from chatstream.models import ChunkRecord, FunctionCallFragment, ToolCallFragment, Usage
from chatstream.sse import FINISH_FUNCTION_CALL, FINISH_TOOL_CALLS, parse_sse_line

logger = logging.getLogger(__name__)

ByteSource = AsyncIterable[bytes] | Iterable[bytes]


@dataclass
class ToolCall:
    """A tool call assembled from its fragments."""

    id: str = ""
    name: str = ""
    arguments: str = ""


class ToolCallAccumulator:
    """Assembles complete tool calls from streaming fragments.

    Entries are keyed by the fragment ``index`` and kept in the order each
    index was first seen. ``id`` and ``name`` are overwritten by later
    fragments; ``arguments`` only ever grows.
    """

    def __init__(self) -> None:
        self._pending: dict[int | None, ToolCall] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def feed(self, fragment: ToolCallFragment) -> None:
        if fragment.index not in self._pending:
            self._pending[fragment.index] = ToolCall()
        tc = self._pending[fragment.index]
        if fragment.id:
            tc.id = fragment.id
        function = fragment.function
        if function is None:
            return
        if function.name:
            tc.name = function.name
        if function.arguments:
            tc.arguments += function.arguments

    def finalize(self) -> list[ToolCall]:
        """Return copies of the accumulated tool calls in insertion order.

        State is kept, so a repeated finish signal sees the same calls.
        """
        return [replace(tc) for tc in self._pending.values()]


class FunctionCallAccumulator:
    """Assembles the single legacy ``function_call`` of a stream."""

    def __init__(self) -> None:
        self.name = ""
        self.arguments = ""

    @property
    def ready(self) -> bool:
        return bool(self.name)

    def feed(self, fragment: FunctionCallFragment) -> None:
        if fragment.name:
            self.name = fragment.name
        if fragment.arguments:
            self.arguments += fragment.arguments


class ChunkProcessor:
    """Turns chunk records into events, holding the per-stream state."""

    def __init__(self) -> None:
        self.tool_calls = ToolCallAccumulator()
        self.function_call = FunctionCallAccumulator()
        self.last_usage: Usage | None = None

    def process(self, chunk: ChunkRecord) -> Iterator[StreamEvent]:
        if chunk.usage is not None:
            self.last_usage = chunk.usage

        for choice in chunk.choices:
            delta = choice.delta

            if delta.content:
                yield ContentEvent(content=delta.content)

            if delta.function_call is not None:
                self.function_call.feed(delta.function_call)

            for fragment in delta.tool_calls or ():
                self.tool_calls.feed(fragment)

            if choice.finish_reason == FINISH_FUNCTION_CALL and self.function_call.ready:
                yield FunctionCallEvent(
                    name=self.function_call.name,
                    arguments=self.function_call.arguments,
                )

            if choice.finish_reason == FINISH_TOOL_CALLS:
                for tc in self.tool_calls.finalize():
                    yield ToolCallEvent(id=tc.id, name=tc.name, arguments=tc.arguments)


class StreamParser:
    """Push-style parser state for one stream.

    Feed it byte chunks as they arrive, then call :meth:`finish` at end of
    data or :meth:`fail` when the source breaks. Each call returns the
    events it produced, in order. A parser is single-use.

    Args:
        encoding: Text encoding of the stream.
        errors: Decoder error handler for undecodable bytes.
    """

    def __init__(self, encoding: str = "utf-8", errors: str = "replace"):
        self._framer = LineFramer(encoding=encoding, errors=errors)
        self._processor = ChunkProcessor()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def usage(self) -> Usage | None:
        """The most recent usage seen so far."""
        return self._processor.last_usage

    def feed(self, data: bytes | str) -> list[StreamEvent]:
        self._ensure_open()
        events: list[StreamEvent] = []
        for line in self._framer.feed(data):
            events.extend(self._process_line(line))
        return events

    def finish(self) -> list[StreamEvent]:
        """Process the trailing partial line and end with a :class:`DoneEvent`."""
        self._ensure_open()
        events: list[StreamEvent] = []
        tail = self._framer.flush()
        if tail is not None:
            events.extend(self._process_line(tail))
        self._closed = True
        events.append(DoneEvent(usage=self._processor.last_usage))
        return events

    def fail(self, error: Exception) -> ErrorEvent:
        self._closed = True
        return ErrorEvent(error=error)

    def _process_line(self, line: str) -> Iterator[StreamEvent]:
        chunk = parse_sse_line(line)
        if chunk is None:
            return iter(())
        return self._processor.process(chunk)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("StreamParser has already finished")


async def parse_stream(
    source: ByteSource | None,
    *,
    encoding: str = "utf-8",
    errors: str = "replace",
) -> AsyncIterator[StreamEvent]:
    """Parse a chat-completion SSE byte stream into events.

    Events are produced lazily; the source is only read when the consumer
    asks for the next event. The sequence ends with exactly one
    :class:`DoneEvent`, or with a single :class:`ErrorEvent` if the source
    is ``None`` or raises while being read. Exceptions thrown into the
    generator by the consumer are not converted into events.

    The source is released (``aclose()`` or ``close()``, whichever it has)
    exactly once on every exit path, including the consumer closing this
    generator early.

    A sync iterable is accepted, but each ``next()`` on it blocks the event
    loop. Use :func:`iter_stream` for blocking sources outside a loop.

    Args:
        source: Async or sync iterable of byte chunks, e.g.
            ``httpx.Response.aiter_bytes()``.
        encoding: Text encoding of the stream.
        errors: Decoder error handler for undecodable bytes.
    """
    if source is None:
        yield ErrorEvent(error=StreamUnavailableError())
        return

    parser = StreamParser(encoding=encoding, errors=errors)
    counts: Counter[str] = Counter()
    failed = False
    chunks = _aiter_chunks(source)
    with parse_span() as span:
        try:
            while not parser.closed:
                try:
                    events = await _anext_events(parser, chunks)
                except Exception as e:
                    logger.warning(f"Reading stream failed: {e!r}")
                    record_error(span, e)
                    failed = True
                    events = [parser.fail(e)]
                for event in events:
                    counts[event.type] += 1
                    yield event
            if not failed:
                record_usage(span, parser.usage)
        finally:
            await chunks.aclose()
            await _arelease(source)
            record_event_counts(span, counts)


def iter_stream(
    source: Iterable[bytes] | None,
    *,
    encoding: str = "utf-8",
    errors: str = "replace",
) -> Iterator[StreamEvent]:
    """Synchronous counterpart of :func:`parse_stream`.

    Takes a plain iterable of byte chunks, e.g.
    ``requests.Response.iter_content(chunk_size=None)``, with the same
    event and release semantics.
    """
    if source is None:
        yield ErrorEvent(error=StreamUnavailableError())
        return

    parser = StreamParser(encoding=encoding, errors=errors)
    counts: Counter[str] = Counter()
    failed = False
    chunks = iter(source)
    with parse_span() as span:
        try:
            while not parser.closed:
                try:
                    events = _next_events(parser, chunks)
                except Exception as e:
                    logger.warning(f"Reading stream failed: {e!r}")
                    record_error(span, e)
                    failed = True
                    events = [parser.fail(e)]
                for event in events:
                    counts[event.type] += 1
                    yield event
            if not failed:
                record_usage(span, parser.usage)
        finally:
            close = getattr(source, "close", None)
            if close is not None:
                close()
            record_event_counts(span, counts)


async def _anext_events(parser: StreamParser, chunks: AsyncIterator[bytes]) -> list[StreamEvent]:
    """Read one chunk and parse it, or finish the parser at end of data."""
    try:
        data = await chunks.__anext__()
    except StopAsyncIteration:
        return parser.finish()
    return parser.feed(data)


def _next_events(parser: StreamParser, chunks: Iterator[bytes]) -> list[StreamEvent]:
    try:
        data = next(chunks)
    except StopIteration:
        return parser.finish()
    return parser.feed(data)


async def _aiter_chunks(source: ByteSource) -> AsyncIterator[bytes]:
    if hasattr(source, "__aiter__"):
        async for data in source:
            yield data
    else:
        for data in source:
            yield data


async def _arelease(source: ByteSource) -> None:
    aclose = getattr(source, "aclose", None)
    if aclose is not None:
        await aclose()
        return
    close = getattr(source, "close", None)
    if close is not None:
        result = close()
        if inspect.isawaitable(result):
            await result
