"""Codex bridge: Responses API to Codex backend protocol translation."""

from codex_bridge.http.transport import CodexTransport
from codex_bridge.plugin import CodexAuthPlugin, create_client


__version__ = "0.1.0"

__all__ = ["CodexAuthPlugin", "CodexTransport", "create_client", "__version__"]
