"""Host-facing auth plugin for the Codex bridge.

The host calls ``CodexAuthPlugin.loader`` with a credential getter and the
provider section of its configuration. For API-key credentials the loader
returns the client settings (key, base URL and a ``CodexTransport``); any
other credential type gets an empty mapping and the pipeline is never used.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from codex_bridge.config.constants import CODEX_BASE_URL, PLUGIN_NAME, PROVIDER_ID
from codex_bridge.config.settings import (
    PluginConfig,
    UserConfig,
    get_codex_mode,
    load_plugin_config,
    save_plugin_config,
)
from codex_bridge.core.errors import ConfigurationError
from codex_bridge.core.logging import get_logger
from codex_bridge.http.transport import CodexTransport
from codex_bridge.models.auth import ApiAuth, Auth
from codex_bridge.services.instructions import (
    InstructionCache,
    create_instruction_source,
)
from codex_bridge.transformers.errors import UsageLimitRemapper


logger = get_logger(__name__)

_auth_adapter: TypeAdapter[Auth] = TypeAdapter(Auth)


class AuthPrompt(BaseModel):
    """One input the host asks the user for during ``authorize``."""

    type: str = "text"
    key: str
    message: str
    placeholder: str | None = None


class AuthMethod(BaseModel):
    """An authentication method offered to the host."""

    label: str
    type: str = "api"
    prompts: list[AuthPrompt] = Field(default_factory=list)


API_KEY_METHOD = AuthMethod(
    label="Third-party Codex API (API Key + URL)",
    prompts=[
        AuthPrompt(
            key="baseURL",
            message="Enter your Codex API base URL:",
            placeholder="https://your-codex-api.com",
        ),
        AuthPrompt(key="key", message="Enter your API Key:", placeholder="sk-..."),
    ],
)


def validate_base_url(value: str) -> str | None:
    """Return an error message for an invalid base URL, None when valid."""
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError):
        return "Please enter a valid URL"
    if url.scheme not in ("http", "https") or not url.host:
        return "Please enter a valid URL"
    return None


class CodexAuthPlugin:
    """Auth plugin wiring API-key credentials into a ``CodexTransport``.

    One instruction cache is shared by every transport the plugin loads, so
    instructions are fetched once per process and model family.
    """

    provider = PROVIDER_ID
    methods = [API_KEY_METHOD]

    def __init__(
        self,
        config_path: Path | None = None,
        instruction_cache: InstructionCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config_path = config_path
        self._instruction_cache = instruction_cache
        self._transport = transport

    def instruction_cache(self, plugin_config: PluginConfig) -> InstructionCache:
        if self._instruction_cache is None:
            self._instruction_cache = InstructionCache(
                create_instruction_source(plugin_config.instructions_source)
            )
        return self._instruction_cache

    async def loader(
        self,
        get_auth: Callable[[], Awaitable[Any]],
        provider: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build client settings for the host SDK.

        Args:
            get_auth: Coroutine function returning the current credentials
            provider: Provider section of the host configuration
                (``options``, ``models``, ``baseURL``)

        Returns:
            ``{"api_key", "base_url", "transport"}`` for API-key credentials,
            an empty mapping for anything else
        """
        raw_auth = await get_auth()
        try:
            auth = (
                raw_auth
                if isinstance(raw_auth, BaseModel)
                else _auth_adapter.validate_python(raw_auth)
            )
        except ValidationError as e:
            logger.error(
                "unsupported_auth",
                plugin=PLUGIN_NAME,
                error=str(e),
                category="auth",
            )
            return {}

        if not isinstance(auth, ApiAuth):
            logger.error(
                "unsupported_auth",
                plugin=PLUGIN_NAME,
                auth_type=getattr(auth, "type", None),
                message="This plugin only supports API Key authentication",
                category="auth",
            )
            return {}

        provider = provider or {}
        user_config = UserConfig.model_validate(
            {
                "global": provider.get("options") or {},
                "models": provider.get("models") or {},
            }
        )

        plugin_config = load_plugin_config(self.config_path)
        codex_mode = get_codex_mode(plugin_config)

        custom_base_url = plugin_config.base_url or provider.get("baseURL") or None
        base_url = custom_base_url or CODEX_BASE_URL

        api_key = auth.key.get_secret_value()
        transport = CodexTransport(
            api_key,
            user_config=user_config,
            codex_mode=codex_mode,
            custom_base_url=custom_base_url,
            instruction_cache=self.instruction_cache(plugin_config),
            remapper=UsageLimitRemapper.with_extra_patterns(
                plugin_config.usage_limit_patterns
            ),
            transport=self._transport,
        )

        logger.info(
            "plugin_loaded",
            plugin=PLUGIN_NAME,
            base_url=base_url,
            custom_base_url=custom_base_url is not None,
            codex_mode=codex_mode,
            category="plugin",
        )
        return {"api_key": api_key, "base_url": base_url, "transport": transport}

    async def authorize(self, inputs: Mapping[str, str] | None = None) -> dict[str, Any]:
        """Save the base URL entered by the user and hand the key to the host."""
        base_url = (inputs or {}).get("baseURL")
        key = (inputs or {}).get("key")
        if not base_url or not key:
            return {"type": "failed"}

        error = validate_base_url(base_url)
        if error:
            logger.warning(
                "authorize_invalid_base_url",
                base_url=base_url,
                error=error,
                category="auth",
            )
            return {"type": "failed"}

        current = load_plugin_config(self.config_path)
        try:
            path = save_plugin_config(
                current.model_copy(update={"base_url": base_url}), self.config_path
            )
        except ConfigurationError as e:
            logger.error("authorize_save_failed", error=str(e), category="auth")
            return {"type": "failed"}

        logger.info(
            "plugin_config_saved",
            path=str(path),
            base_url=base_url,
            key_preview=f"{key[:10]}...",
            category="auth",
        )
        return {"type": "success", "key": key}


def create_client(options: Mapping[str, Any], **kwargs: Any) -> httpx.AsyncClient:
    """Build an ``httpx.AsyncClient`` from loader output.

    Raises:
        ConfigurationError: If the loader declined the credentials
    """
    if not options or "transport" not in options:
        raise ConfigurationError(
            "No client configuration: the plugin only supports API Key authentication"
        )
    return httpx.AsyncClient(
        base_url=options["base_url"], transport=options["transport"], **kwargs
    )
