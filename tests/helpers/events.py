"""Builders for Responses API event streams and fake instruction sources."""

import asyncio
import json
from typing import Any

from codex_bridge.core.errors import InstructionFetchError
from codex_bridge.models.model import ModelFamily


def sse_event(payload: dict[str, Any] | str, event: str | None = None) -> str:
    """Render one event block."""
    data = payload if isinstance(payload, str) else json.dumps(payload)
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {data}")
    return "\n".join(lines) + "\n\n"


def text_delta(delta: str, output_index: int = 0) -> dict[str, Any]:
    return {
        "type": "response.output_text.delta",
        "item_id": "msg_1",
        "output_index": output_index,
        "content_index": 0,
        "delta": delta,
    }


def completed(response: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "type": "response.completed",
        "response": {
            "id": "resp_1",
            "object": "response",
            "status": "completed",
            "model": "gpt-5.1-codex",
            "usage": {"input_tokens": 10, "output_tokens": 3, "total_tokens": 13},
            **(response or {}),
        },
    }


def text_stream(deltas: list[str], corrupt_after: int | None = None) -> str:
    """Event stream of text deltas followed by a completion event.

    With ``corrupt_after`` an undecodable event is inserted after that many
    deltas.
    """
    blocks = [
        sse_event({"type": "response.created", "response": {"id": "resp_1", "status": "in_progress"}})
    ]
    for i, delta in enumerate(deltas):
        if corrupt_after is not None and i == corrupt_after:
            blocks.append(sse_event('{"type": "response.output_text.delta", "delta": '))
        blocks.append(sse_event(text_delta(delta)))
    blocks.append(sse_event(completed()))
    return "".join(blocks)


def output_text(document: dict[str, Any]) -> str:
    """Concatenate every output_text part of a response document."""
    return "".join(
        part.get("text", "")
        for item in document.get("output", [])
        if item.get("type") == "message"
        for part in item.get("content", [])
        if part.get("type") == "output_text"
    )


class FakeInstructionSource:
    """Instruction source counting fetches, optionally slow or failing."""

    def __init__(
        self,
        instructions: str = "Test instructions",
        delay: float = 0.0,
        failures: int = 0,
    ) -> None:
        self.instructions = instructions
        self.delay = delay
        self.failures = failures
        self.calls: list[ModelFamily] = []

    async def fetch(self, family: ModelFamily) -> str:
        self.calls.append(family)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures > 0:
            self.failures -= 1
            raise InstructionFetchError("upstream unavailable", family=family.value)
        return f"{self.instructions} for {family.value}"
