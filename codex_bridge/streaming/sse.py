"""Server-Sent-Event decoding and aggregation of Responses API event streams.

The pieces are layered so each can be tested without network I/O:

- ``SSEDecoder`` turns raw bytes into ``SSEEvent`` blocks incrementally.
- ``decode_event_payloads`` turns events into JSON payloads, skipping
  malformed ones.
- ``ResponseAccumulator`` folds payloads into one response document.
- ``aggregate_events`` / ``aggregate_sse_stream`` tie them together.
"""

from __future__ import annotations

import codecs
import copy
import json
from collections.abc import AsyncIterable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from codex_bridge.core.logging import get_logger


logger = get_logger(__name__)


DONE_SENTINEL = "[DONE]"

TERMINAL_EVENT_TYPES = frozenset(
    {
        "response.completed",
        "response.done",
        "response.incomplete",
        "response.failed",
    }
)


@dataclass
class SSEEvent:
    """One event block from an event stream."""

    data: str
    event: str | None = None
    id: str | None = None


class SSEDecoder:
    """Incremental event-stream parser.

    Feed it byte chunks as they arrive; it returns every event whose block
    has been terminated by a blank line.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._data_lines: list[str] = []
        self._event: str | None = None
        self._id: str | None = None

    def feed(self, chunk: bytes | str) -> list[SSEEvent]:
        text = chunk if isinstance(chunk, str) else self._decoder.decode(chunk)
        self._buffer += text
        return list(self._drain(final=False))

    def flush(self) -> list[SSEEvent]:
        """Emit whatever is left once the stream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        events = list(self._drain(final=True))
        if self._buffer:
            events.extend(self._process_line(self._buffer))
            self._buffer = ""
        events.extend(self._dispatch())
        return events

    def _drain(self, final: bool) -> Iterator[SSEEvent]:
        while True:
            index = _find_line_end(self._buffer)
            if index < 0:
                return
            if (
                self._buffer[index] == "\r"
                and index == len(self._buffer) - 1
                and not final
            ):
                # A lone CR may be the first half of CRLF split across chunks
                return
            line = self._buffer[:index]
            skip = 2 if self._buffer.startswith("\r\n", index) else 1
            self._buffer = self._buffer[index + skip :]
            yield from self._process_line(line)

    def _process_line(self, line: str) -> list[SSEEvent]:
        if line == "":
            return self._dispatch()
        if line.startswith(":"):
            return []

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            self._data_lines.append(value)
        elif name == "event":
            self._event = value
        elif name == "id":
            self._id = value
        return []

    def _dispatch(self) -> list[SSEEvent]:
        if not self._data_lines:
            self._event = None
            return []
        event = SSEEvent(
            data="\n".join(self._data_lines), event=self._event, id=self._id
        )
        self._data_lines = []
        self._event = None
        return [event]


def _find_line_end(buffer: str) -> int:
    positions = [p for p in (buffer.find("\r"), buffer.find("\n")) if p >= 0]
    return min(positions) if positions else -1


def iter_sse_events(chunks: Iterable[bytes | str]) -> Iterator[SSEEvent]:
    """Parse an event stream delivered as an iterable of chunks."""
    decoder = SSEDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
    yield from decoder.flush()


def decode_event_payloads(events: Iterable[SSEEvent]) -> Iterator[dict[str, Any]]:
    """Decode the JSON payload of each event.

    Non-JSON and non-object payloads are skipped with a warning. A
    ``[DONE]`` payload ends the sequence.
    """
    for event in events:
        data = event.data.strip()
        if not data:
            continue
        if data == DONE_SENTINEL:
            return
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning(
                "sse_event_invalid_json",
                sse_event=event.event,
                error=str(e),
                data_preview=data[:100],
                category="sse",
            )
            continue
        if not isinstance(payload, dict):
            logger.warning(
                "sse_event_not_object",
                sse_event=event.event,
                payload_type=type(payload).__name__,
                category="sse",
            )
            continue
        if "type" not in payload and event.event:
            payload["type"] = event.event
        yield payload


INDEX_FIELDS = ("output_index", "content_index", "summary_index")


def _well_formed(payload: dict[str, Any]) -> bool:
    """Check the fields used to place an event inside the document."""
    for key in INDEX_FIELDS:
        value = payload.get(key, 0)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return False
    for key in ("item", "part"):
        if key in payload and not isinstance(payload[key], dict):
            return False
    item = payload.get("item")
    if isinstance(item, dict):
        for key in ("content", "summary"):
            if key in item and not isinstance(item[key], list):
                return False
    return True


class ResponseAccumulator:
    """Fold Responses API stream events into a single response document.

    Output items are keyed by ``output_index``; text, refusal, reasoning
    summary and function-call argument deltas are appended to the item at
    that index. The terminal event's ``response`` wins for the envelope
    fields and for ``output`` when it carries one.
    """

    def __init__(self) -> None:
        self.response: dict[str, Any] = {}
        self.output: dict[int, dict[str, Any]] = {}
        self.completed = False
        self.event_count = 0
        self.skipped_count = 0

    def apply(self, payload: dict[str, Any]) -> bool:
        """Apply one event payload. Returns True on a terminal event."""
        self.event_count += 1
        event_type = payload.get("type")

        if not isinstance(event_type, str):
            self._skip(payload, "missing_type")
            return False

        if event_type in TERMINAL_EVENT_TYPES:
            self._merge_response(payload.get("response"))
            self.completed = True
            return True

        if event_type == "error":
            self.response["status"] = "failed"
            self.response["error"] = {
                key: payload[key]
                for key in ("code", "message", "param")
                if key in payload
            } or payload.get("error")
            self.completed = True
            return True

        handler = _HANDLERS.get(event_type)
        if handler is not None:
            if not _well_formed(payload):
                self._skip(payload, "malformed_field")
                return False
            try:
                handler(self, payload)
            except (TypeError, ValueError, AttributeError):
                self._skip(payload, "malformed_field")
        elif event_type.startswith("response."):
            logger.debug("sse_event_ignored", event_type=event_type, category="sse")
        else:
            self._skip(payload, "unexpected_type")
        return False

    def result(self) -> dict[str, Any]:
        """Build the aggregated response document."""
        document = copy.deepcopy(self.response)
        document.setdefault("object", "response")
        if not document.get("output"):
            document["output"] = [
                copy.deepcopy(self.output[index]) for index in sorted(self.output)
            ]
        if not self.completed and document.get("status") in (
            None,
            "queued",
            "in_progress",
        ):
            document["status"] = "incomplete"
        return document

    def _skip(self, payload: dict[str, Any], reason: str) -> None:
        self.skipped_count += 1
        logger.warning(
            "sse_event_skipped",
            reason=reason,
            event_type=payload.get("type"),
            category="sse",
        )

    def _merge_response(self, response: Any) -> None:
        if isinstance(response, dict):
            self.response.update(copy.deepcopy(response))

    def _item(self, payload: dict[str, Any], default: dict[str, Any]) -> dict[str, Any]:
        index = payload.get("output_index", 0)
        item = self.output.get(index)
        if item is None:
            item = copy.deepcopy(default)
            if "item_id" in payload:
                item["id"] = payload["item_id"]
            self.output[index] = item
        return item

    def _content_part(
        self, payload: dict[str, Any], part_type: str, text_key: str
    ) -> dict[str, Any]:
        item = self._item(
            payload, {"type": "message", "role": "assistant", "content": []}
        )
        content = item.setdefault("content", [])
        index = payload.get("content_index", 0)
        while len(content) <= index:
            content.append({"type": part_type, text_key: ""})
        return content[index]

    def _summary_part(self, payload: dict[str, Any]) -> dict[str, Any]:
        item = self._item(payload, {"type": "reasoning", "summary": []})
        summary = item.setdefault("summary", [])
        index = payload.get("summary_index", 0)
        while len(summary) <= index:
            summary.append({"type": "summary_text", "text": ""})
        return summary[index]

    def _on_response_snapshot(self, payload: dict[str, Any]) -> None:
        self._merge_response(payload.get("response"))

    def _on_item(self, payload: dict[str, Any]) -> None:
        item = payload.get("item")
        if isinstance(item, dict):
            self.output[payload.get("output_index", 0)] = copy.deepcopy(item)

    def _on_content_part(self, payload: dict[str, Any]) -> None:
        part = payload.get("part")
        if not isinstance(part, dict):
            return
        item = self._item(
            payload, {"type": "message", "role": "assistant", "content": []}
        )
        content = item.setdefault("content", [])
        index = payload.get("content_index", 0)
        while len(content) <= index:
            content.append({})
        content[index] = copy.deepcopy(part)

    def _on_text_delta(self, payload: dict[str, Any]) -> None:
        part = self._content_part(payload, "output_text", "text")
        part["text"] = part.get("text", "") + str(payload.get("delta", ""))

    def _on_text_done(self, payload: dict[str, Any]) -> None:
        if isinstance(payload.get("text"), str):
            self._content_part(payload, "output_text", "text")["text"] = payload["text"]

    def _on_refusal_delta(self, payload: dict[str, Any]) -> None:
        part = self._content_part(payload, "refusal", "refusal")
        part["refusal"] = part.get("refusal", "") + str(payload.get("delta", ""))

    def _on_refusal_done(self, payload: dict[str, Any]) -> None:
        if isinstance(payload.get("refusal"), str):
            part = self._content_part(payload, "refusal", "refusal")
            part["refusal"] = payload["refusal"]

    def _on_arguments_delta(self, payload: dict[str, Any]) -> None:
        item = self._item(payload, {"type": "function_call", "arguments": ""})
        item["arguments"] = item.get("arguments", "") + str(payload.get("delta", ""))

    def _on_arguments_done(self, payload: dict[str, Any]) -> None:
        if isinstance(payload.get("arguments"), str):
            item = self._item(payload, {"type": "function_call", "arguments": ""})
            item["arguments"] = payload["arguments"]

    def _on_summary_delta(self, payload: dict[str, Any]) -> None:
        part = self._summary_part(payload)
        part["text"] = part.get("text", "") + str(payload.get("delta", ""))

    def _on_summary_done(self, payload: dict[str, Any]) -> None:
        if isinstance(payload.get("text"), str):
            self._summary_part(payload)["text"] = payload["text"]


_HANDLERS = {
    "response.created": ResponseAccumulator._on_response_snapshot,
    "response.in_progress": ResponseAccumulator._on_response_snapshot,
    "response.queued": ResponseAccumulator._on_response_snapshot,
    "response.output_item.added": ResponseAccumulator._on_item,
    "response.output_item.done": ResponseAccumulator._on_item,
    "response.content_part.added": ResponseAccumulator._on_content_part,
    "response.content_part.done": ResponseAccumulator._on_content_part,
    "response.output_text.delta": ResponseAccumulator._on_text_delta,
    "response.output_text.done": ResponseAccumulator._on_text_done,
    "response.refusal.delta": ResponseAccumulator._on_refusal_delta,
    "response.refusal.done": ResponseAccumulator._on_refusal_done,
    "response.function_call_arguments.delta": ResponseAccumulator._on_arguments_delta,
    "response.function_call_arguments.done": ResponseAccumulator._on_arguments_done,
    "response.reasoning_summary_text.delta": ResponseAccumulator._on_summary_delta,
    "response.reasoning_summary_text.done": ResponseAccumulator._on_summary_done,
}


def aggregate_events(payloads: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Fold decoded event payloads into one response document.

    Stops at the first terminal event. A stream without one still yields the
    partial document accumulated so far.
    """
    accumulator = ResponseAccumulator()
    for payload in payloads:
        if accumulator.apply(payload):
            break
    if not accumulator.completed:
        logger.warning(
            "sse_stream_ended_without_completion",
            event_count=accumulator.event_count,
            category="sse",
        )
    return accumulator.result()


async def aggregate_sse_stream(
    chunks: AsyncIterable[bytes],
) -> tuple[ResponseAccumulator, bytes]:
    """Consume a byte stream and fold its events.

    Returns the accumulator and the raw bytes read, so callers can fall back
    to the original body when the stream held no events at all.
    """
    decoder = SSEDecoder()
    accumulator = ResponseAccumulator()
    raw = bytearray()

    async for chunk in chunks:
        raw.extend(chunk)
        for payload in decode_event_payloads(decoder.feed(chunk)):
            if accumulator.apply(payload):
                return accumulator, bytes(raw)

    for payload in decode_event_payloads(decoder.flush()):
        if accumulator.apply(payload):
            break
    return accumulator, bytes(raw)
