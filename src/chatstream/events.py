"""Events yielded while parsing a chat-completion stream."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar

from chatstream.models import Usage


@dataclass
class StreamEvent:
    """Base for all stream events.

    ``type`` is the discriminator consumers switch on.
    """

    type: ClassVar[str] = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **asdict(self)}


@dataclass
class ContentEvent(StreamEvent):
    """One increment of assistant text, forwarded as soon as it arrives."""

    type: ClassVar[str] = "content"

    content: str = ""


@dataclass
class FunctionCallEvent(StreamEvent):
    """A fully accumulated legacy ``function_call``."""

    type: ClassVar[str] = "function_call"

    name: str = ""
    arguments: str = ""


@dataclass
class ToolCallEvent(StreamEvent):
    """A fully accumulated tool call, emitted once per index at finish."""

    type: ClassVar[str] = "tool_call"

    id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass
class DoneEvent(StreamEvent):
    """Final event of a successful stream."""

    type: ClassVar[str] = "done"

    usage: Usage | None = None

    def to_dict(self) -> dict[str, Any]:
        usage = self.usage.model_dump() if self.usage is not None else None
        return {"type": self.type, "usage": usage}


@dataclass
class ErrorEvent(StreamEvent):
    """Terminal event carrying the failure that ended the stream."""

    type: ClassVar[str] = "error"

    error: Exception | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "error": str(self.error)}
