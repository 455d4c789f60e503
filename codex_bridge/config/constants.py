"""Constants shared across the Codex bridge."""

PLUGIN_NAME = "codex-bridge"
PROVIDER_ID = "openai"

# Backend endpoints
CODEX_BASE_URL = "https://chatgpt.com/backend-api"
RESPONSES_PATH = "/responses"
CODEX_RESPONSES_PATH = "/codex/responses"

# HTTP
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_TOO_MANY_REQUESTS = 429
TOO_MANY_REQUESTS_REASON = "Too Many Requests"

AUTHORIZATION_HEADER = "Authorization"
CONTENT_TYPE_HEADER = "Content-Type"
JSON_CONTENT_TYPE = "application/json"
SYNTHESIZED_JSON_CONTENT_TYPE = "application/json; charset=utf-8"
EVENT_STREAM_CONTENT_TYPE = "text/event-stream; charset=utf-8"

# Headers that no longer describe a rewritten request body
STALE_REQUEST_HEADERS = frozenset({"content-length", "host", "transfer-encoding"})
# Headers that no longer describe a synthesized (decoded) response body
STALE_RESPONSE_HEADERS = frozenset(
    {"content-length", "content-encoding", "transfer-encoding"}
)

# Pipeline log stages
LOG_STAGE_BEFORE_TRANSFORM = "before_transform"
LOG_STAGE_AFTER_TRANSFORM = "after_transform"
LOG_STAGE_RESPONSE = "response"
LOG_STAGE_ERROR_RESPONSE = "error_response"

# Models
DEFAULT_MODEL = "gpt-5.1"
REASONING_EFFORTS = ("none", "minimal", "low", "medium", "high", "xhigh")

DEFAULT_REASONING_EFFORT = "medium"
DEFAULT_REASONING_SUMMARY = "auto"
DEFAULT_TEXT_VERBOSITY = "medium"

# Phrases a backend uses for usage/rate limits it reports as "not found"
DEFAULT_USAGE_LIMIT_PATTERNS = (
    "usage_limit_reached",
    "usage_not_included",
    "rate_limit_exceeded",
    "usage limit",
)

# Remote instruction prompts
CODEX_RELEASE_API_URL = "https://api.github.com/repos/openai/codex/releases/latest"
CODEX_PROMPT_RAW_URL = (
    "https://raw.githubusercontent.com/openai/codex/{tag}/codex-rs/core/{filename}"
)

# Plugin configuration file
DEFAULT_PLUGIN_CONFIG_PATH = "~/.opencode/openai-codex-auth-config.json"
PLUGIN_CONFIG_ENV_VAR = "CODEX_BRIDGE_CONFIG"
