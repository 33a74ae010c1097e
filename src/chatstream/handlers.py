"""Convenience wrappers around :func:`parse_stream`."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from chatstream.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    FunctionCallEvent,
    StreamEvent,
    ToolCallEvent,
)
from chatstream.models import Usage
from chatstream.streaming import ByteSource, parse_stream


async def collect_content(source: ByteSource | None) -> str:
    """Concatenate every content increment of a stream."""
    parts = []
    async for event in parse_stream(source):
        if isinstance(event, ContentEvent):
            parts.append(event.content)
    return "".join(parts)


@dataclass
class StreamHandler:
    """Routes stream events to callbacks.

    Every callback is optional and is invoked synchronously, in event
    order. Await the handler with a byte source to run it::

        handler = StreamHandler(on_content=print)
        await handler(response.aiter_bytes())
    """

    on_content: Callable[[str], None] | None = None
    on_function_call: Callable[[str, str], None] | None = None
    on_tool_call: Callable[[str, str, str], None] | None = None
    on_done: Callable[[Usage | None], None] | None = None
    on_error: Callable[[Exception], None] | None = None

    def dispatch(self, event: StreamEvent) -> None:
        if isinstance(event, ContentEvent):
            if self.on_content:
                self.on_content(event.content)
        elif isinstance(event, FunctionCallEvent):
            if self.on_function_call:
                self.on_function_call(event.name, event.arguments)
        elif isinstance(event, ToolCallEvent):
            if self.on_tool_call:
                self.on_tool_call(event.id, event.name, event.arguments)
        elif isinstance(event, DoneEvent):
            if self.on_done:
                self.on_done(event.usage)
        elif isinstance(event, ErrorEvent):
            if self.on_error:
                self.on_error(event.error)

    async def __call__(self, source: ByteSource | None) -> None:
        async for event in parse_stream(source):
            self.dispatch(event)


def create_stream_handler(
    *,
    on_content: Callable[[str], None] | None = None,
    on_function_call: Callable[[str, str], None] | None = None,
    on_tool_call: Callable[[str, str, str], None] | None = None,
    on_done: Callable[[Usage | None], None] | None = None,
    on_error: Callable[[Exception], None] | None = None,
) -> StreamHandler:
    return StreamHandler(
        on_content=on_content,
        on_function_call=on_function_call,
        on_tool_call=on_tool_call,
        on_done=on_done,
        on_error=on_error,
    )
