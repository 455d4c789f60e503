"""Tool representation strategies selected by CODEX_MODE."""

from __future__ import annotations

import copy
from typing import Any, Protocol

from codex_bridge.core.logging import get_logger


logger = get_logger(__name__)


CODEX_BRIDGE_PROMPT = """\
# Tool bridge

The tools available in this session are the ones declared in the request's
`tools` list. They replace the built-in Codex CLI tools described above:

- Do not call `apply_patch`, `shell`, `update_plan` or other Codex CLI tools
  unless a tool with exactly that name is declared in this request.
- Call declared tools by their exact name, passing arguments that match the
  declared JSON schema.
- Tool results arrive as function call outputs in the conversation input;
  treat them as the authoritative result of the call.
"""


class ToolStrategy(Protocol):
    """Produces the backend's view of the caller's tools."""

    name: str

    def apply(self, body: dict[str, Any]) -> None:
        """Rewrite ``body`` in place; ``body`` is already a private copy."""
        ...


class BridgePromptStrategy:
    """Keep the caller's tools and explain them to the model.

    The bridge text is appended to the injected instructions whenever the
    request declares tools; ``tools`` and ``input`` are left untouched.
    """

    name = "bridge_prompt"

    def __init__(self, prompt: str = CODEX_BRIDGE_PROMPT) -> None:
        self.prompt = prompt

    def apply(self, body: dict[str, Any]) -> None:
        if not body.get("tools"):
            return
        instructions = body.get("instructions") or ""
        body["instructions"] = (
            f"{instructions}\n\n{self.prompt}" if instructions else self.prompt
        )
        logger.debug(
            "bridge_prompt_appended",
            tool_count=len(body["tools"]),
            category="transform",
        )


class ToolRemapStrategy:
    """Rewrite chat-completions tool definitions into Responses API shape."""

    name = "tool_remap"

    def apply(self, body: dict[str, Any]) -> None:
        tools = body.get("tools")
        if isinstance(tools, list):
            body["tools"] = [remap_tool(tool) for tool in tools]

        tool_choice = body.get("tool_choice")
        if isinstance(tool_choice, dict):
            body["tool_choice"] = remap_tool_choice(tool_choice)


def remap_tool(tool: Any) -> Any:
    """Map one tool definition onto the backend's flat function shape.

    ``{"type": "function", "function": {"name", "description", "parameters",
    "strict"}}`` becomes ``{"type": "function", "name", "description",
    "parameters", "strict"}``. Definitions already in the flat shape, or
    non-function tools the backend understands natively, are returned
    unchanged; anything unrecognized is passed through with a warning.
    """
    if not isinstance(tool, dict):
        logger.warning(
            "tool_remap_unknown_shape",
            tool_type=type(tool).__name__,
            category="transform",
        )
        return tool

    function = tool.get("function")
    if tool.get("type") == "function" and isinstance(function, dict):
        if not isinstance(function.get("name"), str):
            logger.warning(
                "tool_remap_missing_name",
                keys=sorted(function.keys()),
                category="transform",
            )
            return tool
        remapped: dict[str, Any] = {"type": "function", "name": function["name"]}
        for key in ("description", "parameters", "strict"):
            if key in function:
                remapped[key] = copy.deepcopy(function[key])
        return remapped

    if tool.get("type") == "function" and isinstance(tool.get("name"), str):
        return tool

    if isinstance(tool.get("type"), str) and tool["type"] != "function":
        # Hosted tools (web_search, local_shell, ...) are already backend-native
        return tool

    logger.warning(
        "tool_remap_unknown_shape",
        keys=sorted(tool.keys()),
        category="transform",
    )
    return tool


def remap_tool_choice(tool_choice: dict[str, Any]) -> dict[str, Any]:
    """Flatten a chat-style function tool choice."""
    function = tool_choice.get("function")
    if tool_choice.get("type") == "function" and isinstance(function, dict):
        name = function.get("name")
        if isinstance(name, str):
            return {"type": "function", "name": name}
    return tool_choice


def select_tool_strategy(codex_mode: bool) -> ToolStrategy:
    """Pick the tool strategy for a configuration load."""
    return BridgePromptStrategy() if codex_mode else ToolRemapStrategy()
