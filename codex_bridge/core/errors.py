"""Exception hierarchy for the Codex bridge."""

from typing import Any


class CodexBridgeError(Exception):
    """Base exception for Codex bridge errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InstructionFetchError(CodexBridgeError):
    """Raised when the instruction payload for a model family cannot be loaded."""

    def __init__(
        self,
        message: str,
        family: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.family = family


class ConfigurationError(CodexBridgeError):
    """Raised when plugin configuration is invalid."""

    pass
