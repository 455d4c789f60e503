"""Endpoint URL rewriting."""

import httpx

from codex_bridge.config.constants import CODEX_RESPONSES_PATH, RESPONSES_PATH


def extract_request_url(request: httpx.Request | httpx.URL | str) -> str:
    """Get the URL string of a request, URL object or plain string."""
    if isinstance(request, str):
        return request
    if isinstance(request, httpx.URL):
        return str(request)
    return str(request.url)


def rewrite_url_for_codex(url: str, custom_base_url: str | None = None) -> str:
    """Map the caller-visible endpoint onto the backend endpoint.

    With a custom base URL the caller is trusted to have supplied the full
    endpoint path, so the URL is returned untouched. Otherwise the standard
    ``/responses`` path becomes ``/codex/responses``; scheme, host and query
    are preserved.

    >>> rewrite_url_for_codex("https://api.example.com/v1/responses")
    'https://api.example.com/v1/codex/responses'
    >>> rewrite_url_for_codex("https://api.example.com/v1/chat", "https://custom.example.com")
    'https://api.example.com/v1/chat'
    """
    if custom_base_url:
        return url

    parsed = httpx.URL(url)
    path = parsed.path
    if path.endswith(CODEX_RESPONSES_PATH) or not path.endswith(RESPONSES_PATH):
        return url

    new_path = path[: -len(RESPONSES_PATH)] + CODEX_RESPONSES_PATH
    return str(parsed.copy_with(path=new_path))
