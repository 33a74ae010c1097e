class ChatStreamError(Exception):
    """Base class for errors raised by chatstream."""


class StreamUnavailableError(ChatStreamError):
    """Raised (and surfaced as an ErrorEvent) when there is no byte source."""

    def __init__(self, message: str = "Stream is None"):
        super().__init__(message)
