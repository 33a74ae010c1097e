"""Split a fragmented byte stream into complete text lines."""

from __future__ import annotations

import codecs


class LineFramer:
    """Turns arbitrary byte chunks into ``\\n``-delimited lines.

    A chunk may end in the middle of a line or in the middle of a
    multi-byte character. The incomplete tail is carried over to the next
    :meth:`feed` call; :meth:`flush` releases whatever is left once the
    source is exhausted.

    Args:
        encoding: Text encoding of the stream.
        errors: Decoder error handler. The default replaces undecodable
            bytes so framing never fails.
    """

    def __init__(self, encoding: str = "utf-8", errors: str = "replace"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._buffer

    def feed(self, data: bytes | str) -> list[str]:
        if isinstance(data, str):
            text = data
        else:
            text = self._decoder.decode(data)
        if not text:
            return []
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return lines

    def flush(self) -> str | None:
        """Return the trailing partial line, if it holds anything."""
        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        if not tail.strip():
            return None
        return tail
