"""Request body transformation for the Codex backend."""

from __future__ import annotations

import copy
from typing import Any

from codex_bridge.config.constants import (
    DEFAULT_REASONING_EFFORT,
    DEFAULT_REASONING_SUMMARY,
    DEFAULT_TEXT_VERBOSITY,
)
from codex_bridge.config.settings import CodexOptions, UserConfig
from codex_bridge.core.logging import get_logger
from codex_bridge.models.model import ModelFamily, NormalizedModel
from codex_bridge.services.model_normalizer import normalize_model

from .tools import ToolStrategy, select_tool_strategy


logger = get_logger(__name__)


SYSTEM_DEFAULT_OPTIONS: dict[str, Any] = {
    "reasoning_effort": DEFAULT_REASONING_EFFORT,
    "reasoning_summary": DEFAULT_REASONING_SUMMARY,
    "text_verbosity": DEFAULT_TEXT_VERBOSITY,
}

FAMILY_DEFAULT_OPTIONS: dict[ModelFamily, dict[str, Any]] = {
    ModelFamily.CODEX_MAX: {"reasoning_effort": "high"},
}


def resolve_options(
    normalized: NormalizedModel,
    user_config: UserConfig,
    original_model: str | None = None,
) -> dict[str, Any]:
    """Merge option sources for one request, later sources winning per key.

    Order: system defaults, family defaults, ``global`` options, the effort
    carried by the model id suffix, then the per-model overrides (looked up by
    the caller's id, then the canonical and base ids).
    """
    merged = dict(SYSTEM_DEFAULT_OPTIONS)
    merged.update(FAMILY_DEFAULT_OPTIONS.get(normalized.family, {}))
    merged.update(CodexOptions.model_validate(user_config.global_options).specified())
    if normalized.effort:
        merged["reasoning_effort"] = normalized.effort

    for key in (original_model, normalized.canonical, normalized.base):
        model_options = user_config.options_for(key)
        if model_options:
            merged.update(CodexOptions.model_validate(model_options).specified())
            break

    return merged


def _merge_include(existing: Any, extra: list[str]) -> list[Any]:
    result = list(existing) if isinstance(existing, list) else []
    for item in extra:
        if item not in result:
            result.append(item)
    return result


class CodexRequestTransformer:
    """Rewrite Responses API bodies into the Codex backend dialect.

    The tool strategy is chosen once, when the transformer is built.
    """

    def __init__(self, strategy: ToolStrategy) -> None:
        self.strategy = strategy

    @classmethod
    def for_mode(cls, codex_mode: bool) -> CodexRequestTransformer:
        return cls(select_tool_strategy(codex_mode))

    def transform(
        self,
        body: dict[str, Any],
        instructions: str,
        user_config: UserConfig,
        normalized: NormalizedModel | None = None,
    ) -> dict[str, Any]:
        """Produce the backend body for ``body``.

        The caller's body is never mutated; ``stream``, ``input`` and any
        field this layer does not own are carried over unchanged.

        Args:
            body: Parsed request body
            instructions: Instruction payload for the model's family
            user_config: Host provider options
            normalized: Precomputed normalization of ``body["model"]``

        Returns:
            New, independently serializable body
        """
        original_model = body.get("model")
        normalized = normalized or normalize_model(original_model)
        options = resolve_options(normalized, user_config, original_model)

        result = copy.deepcopy(body)
        result["model"] = normalized.canonical

        if result.get("instructions") and result["instructions"] != instructions:
            logger.debug(
                "caller_instructions_replaced",
                length=len(str(result["instructions"])),
                category="transform",
            )
        result["instructions"] = instructions

        reasoning = result.get("reasoning")
        result["reasoning"] = {
            **(reasoning if isinstance(reasoning, dict) else {}),
            "effort": options["reasoning_effort"],
            "summary": options["reasoning_summary"],
        }

        text = result.get("text")
        result["text"] = {
            **(text if isinstance(text, dict) else {}),
            "verbosity": options["text_verbosity"],
        }

        if options.get("include"):
            result["include"] = _merge_include(result.get("include"), options["include"])

        self.strategy.apply(result)
        return result


def transform_request_body(
    body: dict[str, Any],
    instructions: str,
    user_config: UserConfig,
    codex_mode: bool = True,
) -> dict[str, Any]:
    """Transform ``body`` for the backend using the strategy for ``codex_mode``."""
    return CodexRequestTransformer.for_mode(codex_mode).transform(
        body, instructions, user_config
    )
