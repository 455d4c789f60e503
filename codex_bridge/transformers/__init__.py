"""Codex transformers for request/response processing."""

from .errors import UsageLimitRemapper
from .request import CodexRequestTransformer, resolve_options, transform_request_body
from .response import CodexResponseTranslator, ensure_content_type
from .tools import BridgePromptStrategy, ToolRemapStrategy, select_tool_strategy


__all__ = [
    "BridgePromptStrategy",
    "CodexRequestTransformer",
    "CodexResponseTranslator",
    "ToolRemapStrategy",
    "UsageLimitRemapper",
    "ensure_content_type",
    "resolve_options",
    "select_tool_strategy",
    "transform_request_body",
]
