"""Event-stream decoding and aggregation."""

from .sse import (
    ResponseAccumulator,
    SSEDecoder,
    SSEEvent,
    aggregate_events,
    aggregate_sse_stream,
    decode_event_payloads,
    iter_sse_events,
)


__all__ = [
    "ResponseAccumulator",
    "SSEDecoder",
    "SSEEvent",
    "aggregate_events",
    "aggregate_sse_stream",
    "decode_event_payloads",
    "iter_sse_events",
]
