import json

import pytest


# ---------------------------------------------------------------------------
# SSE payload builders (mirror the chat-completion chunk shape)
# ---------------------------------------------------------------------------

def sse(payload: dict) -> str:
    """Render one chunk as an SSE data line plus the blank separator."""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def content_chunk(text: str, finish_reason: str | None = None) -> dict:
    return {"choices": [{"delta": {"content": text}, "finish_reason": finish_reason}]}


def tool_call_chunk(
    index: int,
    call_id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
    finish_reason: str | None = None,
) -> dict:
    fragment: dict = {"index": index}
    if call_id is not None:
        fragment["id"] = call_id
        fragment["type"] = "function"
    function = {}
    if name is not None:
        function["name"] = name
    if arguments is not None:
        function["arguments"] = arguments
    if function:
        fragment["function"] = function
    return {"choices": [{"delta": {"tool_calls": [fragment]}, "finish_reason": finish_reason}]}


def function_call_chunk(
    name: str | None = None,
    arguments: str | None = None,
    finish_reason: str | None = None,
) -> dict:
    function_call = {}
    if name is not None:
        function_call["name"] = name
    if arguments is not None:
        function_call["arguments"] = arguments
    return {"choices": [{"delta": {"function_call": function_call}, "finish_reason": finish_reason}]}


def finish_chunk(reason: str) -> dict:
    return {"choices": [{"delta": {}, "finish_reason": reason}]}


def usage_chunk(prompt: int, completion: int) -> dict:
    return {
        "choices": [],
        "usage": {
            "prompt_tokens": prompt,
            "completion_tokens": completion,
            "total_tokens": prompt + completion,
        },
    }


DONE = "data: [DONE]\n\n"


def split_every(data: bytes, size: int) -> list[bytes]:
    return [data[i:i + size] for i in range(0, len(data), size)]


# ---------------------------------------------------------------------------
# Byte source doubles
# ---------------------------------------------------------------------------

class AsyncByteSource:
    """Async iterator over pre-queued chunks. Records release calls.

    If *error* is set it is raised once the queued chunks run out.
    """

    def __init__(self, chunks: list[bytes], error: BaseException | None = None):
        self._chunks = list(chunks)
        self.error = error
        self.reads = 0
        self.aclose_calls = 0

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        if self._chunks:
            self.reads += 1
            return self._chunks.pop(0)
        if self.error is not None:
            raise self.error
        raise StopAsyncIteration

    async def aclose(self) -> None:
        self.aclose_calls += 1


class SyncByteSource:
    """Sync iterator counterpart of :class:`AsyncByteSource`."""

    def __init__(self, chunks: list[bytes], error: BaseException | None = None):
        self._chunks = list(chunks)
        self.error = error
        self.reads = 0
        self.close_calls = 0

    def __iter__(self):
        return self

    def __next__(self) -> bytes:
        if self._chunks:
            self.reads += 1
            return self._chunks.pop(0)
        if self.error is not None:
            raise self.error
        raise StopIteration

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def make_source():
    """Factory fixture building an AsyncByteSource from text or bytes.

    Pass ``chunk_size=`` to split the encoded payload into fixed-size
    pieces; by default the whole payload is a single chunk.
    """
    def _make(payload, chunk_size=None, error=None):
        data = payload.encode("utf-8") if isinstance(payload, str) else payload
        chunks = split_every(data, chunk_size) if chunk_size else [data]
        return AsyncByteSource(chunks, error=error)
    return _make
