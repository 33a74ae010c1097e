"""Optional OpenTelemetry tracing of stream parses.

Parsing works the same with or without ``opentelemetry-api``; spans are
only produced after :func:`instrument` has been called.
"""

import importlib.util
import logging
from collections.abc import Mapping
from contextlib import contextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "chatstream", tracer_provider=None) -> None:
    """Trace every subsequent parse with a ``chatstream.parse`` span.

    Args:
        tracer_name: Instrumentation scope name of the tracer.
        tracer_provider: Provider to take the tracer from. Defaults to the
            globally registered one.

    Raises:
        ImportError: If ``opentelemetry-api`` is not installed
            (``pip install chatstream[otel]``).
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError("chatstream tracing needs opentelemetry-api: pip install chatstream[otel]")
    from opentelemetry import trace
    _tracer = trace.get_tracer(tracer_name, tracer_provider=tracer_provider)
    logger.info(f"Tracing stream parses with tracer {tracer_name!r}")


def uninstrument() -> None:
    global _tracer
    _tracer = None


@contextmanager
def parse_span():
    """Wrap one stream parse in a ``chatstream.parse`` span.

    The span is started without being made current: a parse suspends
    between events, and the consumer may resume it from another context.
    """
    if _tracer is None:
        yield None
        return
    span = _tracer.start_span(
        "chatstream.parse",
        attributes={"gen_ai.operation.name": "chat"},
    )
    try:
        yield span
    finally:
        span.end()


def record_usage(span, usage) -> None:
    """Set token-usage attributes on a span."""
    if span is None or usage is None:
        return
    if getattr(usage, "prompt_tokens", None) is not None:
        span.set_attribute("gen_ai.usage.input_tokens", usage.prompt_tokens)
    if getattr(usage, "completion_tokens", None) is not None:
        span.set_attribute("gen_ai.usage.output_tokens", usage.completion_tokens)


def record_event_counts(span, counts: Mapping[str, int]) -> None:
    """Record how many events of each type a parse produced."""
    if span is None:
        return
    for event_type, count in counts.items():
        span.set_attribute(f"chatstream.events.{event_type}", count)


def record_error(span, exception: BaseException) -> None:
    """Mark the parse span as failed by a source read error."""
    if span is None:
        return
    from opentelemetry.trace import Status, StatusCode

    span.record_exception(exception)
    span.set_status(Status(StatusCode.ERROR, f"stream read failed: {exception}"))
