"""HTTPX transport that speaks the Codex backend dialect.

Every request sent through a client built on ``CodexTransport`` goes
through the same fixed sequence: rewrite the URL, transform the body,
dispatch to the inner transport, then either translate the successful
response or remap the error response.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from codex_bridge.config.constants import (
    AUTHORIZATION_HEADER,
    CONTENT_TYPE_HEADER,
    JSON_CONTENT_TYPE,
    LOG_STAGE_AFTER_TRANSFORM,
    LOG_STAGE_BEFORE_TRANSFORM,
    LOG_STAGE_ERROR_RESPONSE,
    LOG_STAGE_RESPONSE,
    STALE_REQUEST_HEADERS,
)
from codex_bridge.config.settings import UserConfig
from codex_bridge.core.logging import get_logger
from codex_bridge.models.transform import PassThrough, Transformed, TransformResult
from codex_bridge.services.instructions import (
    InstructionCache,
    create_instruction_source,
)
from codex_bridge.services.model_normalizer import normalize_model
from codex_bridge.transformers.errors import UsageLimitRemapper
from codex_bridge.transformers.request import CodexRequestTransformer
from codex_bridge.transformers.response import CodexResponseTranslator, strip_headers

from .url import extract_request_url, rewrite_url_for_codex


logger = get_logger(__name__)


def parse_request_body(content: bytes, url: str) -> dict[str, Any] | PassThrough:
    """Parse the inbound JSON object body, or say why it cannot be transformed."""
    if not content:
        return PassThrough(reason="empty_body")

    try:
        body = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(
            "request_body_parse_failed",
            url=url,
            error=str(e),
            category="transform",
        )
        return PassThrough(reason="invalid_json", error=str(e))

    if not isinstance(body, dict):
        logger.error(
            "request_body_not_object",
            url=url,
            body_type=type(body).__name__,
            category="transform",
        )
        return PassThrough(reason="not_an_object")
    return body


class CodexTransport(httpx.AsyncBaseTransport):
    """Async transport translating Responses API calls for the Codex backend.

    Args:
        api_key: Bearer token attached to every outbound request
        user_config: Host provider options (global and per-model)
        codex_mode: Bridge-prompt mode when True, tool-remap mode otherwise
        custom_base_url: Explicitly configured endpoint; disables URL rewriting
        instruction_cache: Shared instruction cache (a bundled+remote one is
            created when omitted)
        remapper: Usage-limit error remapper
        transport: Inner transport performing the actual I/O
    """

    def __init__(
        self,
        api_key: str,
        *,
        user_config: UserConfig | None = None,
        codex_mode: bool = True,
        custom_base_url: str | None = None,
        instruction_cache: InstructionCache | None = None,
        remapper: UsageLimitRemapper | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.user_config = user_config or UserConfig()
        self.codex_mode = codex_mode
        self.custom_base_url = custom_base_url
        self.instruction_cache = instruction_cache or InstructionCache(
            create_instruction_source()
        )
        self.remapper = remapper or UsageLimitRemapper()
        self.request_transformer = CodexRequestTransformer.for_mode(codex_mode)
        self.response_translator = CodexResponseTranslator()
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        # Step 1: URL
        url = rewrite_url_for_codex(extract_request_url(request), self.custom_base_url)

        # Step 2: body
        original_content = await request.aread()
        parsed = parse_request_body(original_content, url)
        if isinstance(parsed, PassThrough):
            is_streaming = False
            result: TransformResult = parsed
        else:
            is_streaming = parsed.get("stream") is True
            result = await self.transform_body(parsed, url)
        content = result.content if result.is_transformed else original_content

        # Step 3: dispatch
        outbound = httpx.Request(
            request.method,
            url,
            headers=self.build_headers(request.headers),
            content=content,
            extensions=request.extensions,
        )
        response = await self._transport.handle_async_request(outbound)

        logger.debug(
            LOG_STAGE_RESPONSE,
            status_code=response.status_code,
            ok=response.is_success,
            reason=response.reason_phrase,
            headers=dict(response.headers),
            category="http",
        )

        # Step 4: response
        try:
            if not response.is_success:
                return await self.handle_error_response(response)
            return await self.response_translator.translate(response, is_streaming)
        except BaseException:
            await response.aclose()
            raise

    async def transform_body(self, body: dict[str, Any], url: str) -> TransformResult:
        """Transform a parsed request body, falling back to the original on bad options.

        Instruction fetch failures are not recovered here; they propagate to
        the caller so that a later request can retry the fetch.
        """
        original_model = body.get("model")
        normalized = normalize_model(original_model)
        logger.debug(
            LOG_STAGE_BEFORE_TRANSFORM,
            url=url,
            original_model=original_model,
            has_tools=bool(body.get("tools")),
            has_input=bool(body.get("input")),
            input_length=len(body["input"]) if isinstance(body.get("input"), list) else None,
            codex_mode=self.codex_mode,
            category="transform",
        )

        instructions = await self.instruction_cache.get(normalized.family)

        try:
            transformed = self.request_transformer.transform(
                body, instructions, self.user_config, normalized
            )
        except (TypeError, ValueError) as e:
            logger.error(
                "request_transform_failed",
                url=url,
                model=original_model,
                error=str(e),
                category="transform",
                exc_info=e,
            )
            return PassThrough(reason="transform_failed", error=str(e))

        logger.debug(
            LOG_STAGE_AFTER_TRANSFORM,
            url=url,
            original_model=original_model,
            normalized_model=transformed["model"],
            model_family=normalized.family.value,
            tool_strategy=self.request_transformer.strategy.name,
            has_tools=bool(transformed.get("tools")),
            has_input=bool(transformed.get("input")),
            reasoning=transformed.get("reasoning"),
            text_verbosity=transformed.get("text", {}).get("verbosity"),
            include=transformed.get("include"),
            category="transform",
        )
        return Transformed(
            body=transformed, original_model=original_model, normalized=normalized
        )

    def build_headers(self, headers: httpx.Headers) -> httpx.Headers:
        """Outbound headers: caller headers plus bearer auth and JSON content type."""
        outbound = strip_headers(headers, STALE_REQUEST_HEADERS)
        outbound[AUTHORIZATION_HEADER] = f"Bearer {self._api_key}"
        outbound[CONTENT_TYPE_HEADER] = JSON_CONTENT_TYPE
        return outbound

    async def handle_error_response(self, response: httpx.Response) -> httpx.Response:
        final = await self.remapper.remap(response)
        logger.info(
            LOG_STAGE_ERROR_RESPONSE,
            status_code=final.status_code,
            reason=final.reason_phrase,
            remapped=final is not response,
            category="http",
        )
        return final

    async def aclose(self) -> None:
        await self._transport.aclose()
