"""Reclassification of backend error responses."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable

import httpx

from codex_bridge.config.constants import (
    DEFAULT_USAGE_LIMIT_PATTERNS,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    STALE_RESPONSE_HEADERS,
    TOO_MANY_REQUESTS_REASON,
)
from codex_bridge.core.logging import get_logger

from .response import envelope_extensions, strip_headers


logger = get_logger(__name__)


class UsageLimitRemapper:
    """Turn "not found" responses that really mean "usage limit" into 429s.

    Some backends report exhausted usage as 404. Retry logic generally only
    understands 429, so matching responses get their status replaced while
    body and headers are kept. The phrase list is a heuristic and can be
    extended.
    """

    def __init__(self, patterns: Iterable[str] = DEFAULT_USAGE_LIMIT_PATTERNS) -> None:
        self.patterns = tuple(dict.fromkeys(p for p in patterns if p))
        self._regex = re.compile(
            "|".join(re.escape(p) for p in self.patterns), re.IGNORECASE
        )

    @classmethod
    def with_extra_patterns(cls, extra: Iterable[str]) -> UsageLimitRemapper:
        return cls((*DEFAULT_USAGE_LIMIT_PATTERNS, *extra))

    def matches(self, code: str, text: str) -> bool:
        return bool(self.patterns) and self._regex.search(f"{code} {text}") is not None

    async def remap(self, response: httpx.Response) -> httpx.Response:
        """Reclassify ``response`` if it is a disguised usage-limit error.

        Any status other than 404 is returned as the same object. For a 404
        the body is read (and stays readable on the returned response); an
        unmatched 404 is returned unchanged.
        """
        if response.status_code != HTTP_STATUS_NOT_FOUND:
            return response

        try:
            body = await response.aread()
            text = response.text
        except httpx.HTTPError as e:
            logger.warning(
                "error_body_read_failed",
                status_code=response.status_code,
                error=str(e),
                category="errors",
            )
            return response

        if not text:
            return response

        code = ""
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict) and isinstance(parsed.get("error"), dict):
            error = parsed["error"]
            code = str(error.get("code") or error.get("type") or "")

        if not self.matches(code, text):
            return response

        logger.info(
            "usage_limit_404_remapped",
            code=code or None,
            status_code=HTTP_STATUS_TOO_MANY_REQUESTS,
            category="errors",
        )
        return httpx.Response(
            status_code=HTTP_STATUS_TOO_MANY_REQUESTS,
            headers=strip_headers(response.headers, STALE_RESPONSE_HEADERS),
            content=body,
            extensions={
                **envelope_extensions(response),
                "reason_phrase": TOO_MANY_REQUESTS_REASON.encode("ascii"),
            },
        )
