"""Backend response translation for streaming and non-streaming callers."""

from __future__ import annotations

import json
from typing import Any

import httpx

from codex_bridge.config.constants import (
    EVENT_STREAM_CONTENT_TYPE,
    STALE_RESPONSE_HEADERS,
    SYNTHESIZED_JSON_CONTENT_TYPE,
)
from codex_bridge.core.logging import get_logger
from codex_bridge.streaming.sse import aggregate_sse_stream


logger = get_logger(__name__)


def envelope_extensions(response: httpx.Response) -> dict[str, Any]:
    """Extensions describing the response envelope, minus transport handles."""
    return {
        key: response.extensions[key]
        for key in ("http_version", "reason_phrase")
        if key in response.extensions
    }


def strip_headers(headers: httpx.Headers, names: frozenset[str]) -> httpx.Headers:
    """Copy ``headers`` without the named (lower-case) headers."""
    return httpx.Headers(
        [(key, value) for key, value in headers.multi_items() if key.lower() not in names]
    )


def ensure_content_type(headers: httpx.Headers) -> httpx.Headers:
    """Declare an event-stream content type when the backend omits it.

    Missing or generic content types (``text/plain``,
    ``application/octet-stream``) are replaced; event-stream and JSON types
    are kept as reported.
    """
    result = httpx.Headers(headers)
    content_type = result.get("content-type", "").lower()
    if "text/event-stream" in content_type or "json" in content_type:
        return result
    if content_type:
        logger.debug(
            "content_type_normalized",
            reported=content_type,
            category="http",
        )
    result["content-type"] = EVENT_STREAM_CONTENT_TYPE
    return result


class CodexResponseTranslator:
    """Turn successful backend responses into what the caller asked for."""

    async def translate(
        self, response: httpx.Response, is_streaming: bool
    ) -> httpx.Response:
        """Translate a successful backend response.

        Args:
            response: Backend response, body not yet consumed
            is_streaming: Whether the caller's body asked for ``stream: true``

        Returns:
            The event stream passed through with a normalized content type
            when streaming; otherwise one JSON document aggregated from the
            event stream.
        """
        if is_streaming:
            return httpx.Response(
                status_code=response.status_code,
                headers=ensure_content_type(response.headers),
                stream=response.stream,
                extensions=response.extensions,
            )
        return await self.aggregate(response)

    async def aggregate(self, response: httpx.Response) -> httpx.Response:
        """Consume an event stream and synthesize a single JSON response."""
        content_type = response.headers.get("content-type", "").lower()
        if "json" in content_type and "text/event-stream" not in content_type:
            logger.debug(
                "response_already_json",
                status_code=response.status_code,
                category="sse",
            )
            return response

        try:
            accumulator, raw = await aggregate_sse_stream(response.aiter_bytes())
        finally:
            await response.aclose()

        headers = strip_headers(response.headers, STALE_RESPONSE_HEADERS)

        if accumulator.event_count == 0:
            logger.warning(
                "sse_stream_contained_no_events",
                body_length=len(raw),
                category="sse",
            )
            return httpx.Response(
                status_code=response.status_code,
                headers=headers,
                content=raw,
                extensions=envelope_extensions(response),
            )

        if not accumulator.completed:
            logger.warning(
                "sse_stream_ended_without_completion",
                event_count=accumulator.event_count,
                category="sse",
            )

        document = accumulator.result()
        logger.debug(
            "sse_stream_aggregated",
            event_count=accumulator.event_count,
            skipped_count=accumulator.skipped_count,
            output_items=len(document.get("output", [])),
            completed=accumulator.completed,
            category="sse",
        )

        headers["content-type"] = SYNTHESIZED_JSON_CONTENT_TYPE
        return httpx.Response(
            status_code=response.status_code,
            headers=headers,
            content=json.dumps(document).encode("utf-8"),
            extensions=envelope_extensions(response),
        )
