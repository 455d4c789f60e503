from .transport import CodexTransport
from .url import extract_request_url, rewrite_url_for_codex


__all__ = ["CodexTransport", "extract_request_url", "rewrite_url_for_codex"]
