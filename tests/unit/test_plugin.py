"""Tests for the host-facing auth plugin."""

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from codex_bridge.config.settings import PluginConfig, save_plugin_config
from codex_bridge.core.errors import ConfigurationError
from codex_bridge.http.transport import CodexTransport
from codex_bridge.plugin import CodexAuthPlugin, create_client, validate_base_url
from codex_bridge.services.instructions import InstructionCache


def _auth(value: dict[str, Any]):
    async def get_auth() -> dict[str, Any]:
        return value

    return get_auth


@pytest.fixture
def plugin(instruction_cache: InstructionCache) -> CodexAuthPlugin:
    return CodexAuthPlugin(instruction_cache=instruction_cache)


@pytest.mark.unit
class TestLoader:
    @pytest.mark.asyncio
    async def test_oauth_auth_is_declined(self, plugin: CodexAuthPlugin) -> None:
        result = await plugin.loader(
            _auth({"type": "oauth", "access": "a", "refresh": "r", "expires": 0}), {}
        )

        assert result == {}

    @pytest.mark.asyncio
    async def test_unknown_auth_is_declined(self, plugin: CodexAuthPlugin) -> None:
        assert await plugin.loader(_auth({"type": "wellknown"}), {}) == {}

    @pytest.mark.asyncio
    async def test_api_auth_with_defaults(self, plugin: CodexAuthPlugin) -> None:
        result = await plugin.loader(_auth({"type": "api", "key": "sk-test"}), None)

        assert result["api_key"] == "sk-test"
        assert result["base_url"] == "https://chatgpt.com/backend-api"
        transport = result["transport"]
        assert isinstance(transport, CodexTransport)
        assert transport.custom_base_url is None
        assert transport.codex_mode is True

    @pytest.mark.asyncio
    async def test_provider_config_is_used(self, plugin: CodexAuthPlugin) -> None:
        provider = {
            "baseURL": "https://provider.example.com/v1",
            "options": {"reasoningEffort": "high"},
            "models": {"gpt-5.1-codex": {"options": {"textVerbosity": "low"}}},
        }

        result = await plugin.loader(_auth({"type": "api", "key": "sk-test"}), provider)

        transport = result["transport"]
        assert result["base_url"] == "https://provider.example.com/v1"
        assert transport.custom_base_url == "https://provider.example.com/v1"
        assert transport.user_config.global_options == {"reasoningEffort": "high"}
        assert transport.user_config.options_for("gpt-5.1-codex") == {"textVerbosity": "low"}

    @pytest.mark.asyncio
    async def test_plugin_config_wins(
        self, plugin: CodexAuthPlugin, plugin_config_path: Path
    ) -> None:
        save_plugin_config(
            PluginConfig(base_url="https://plugin.example.com", codex_mode=False)
        )

        result = await plugin.loader(
            _auth({"type": "api", "key": "sk-test"}),
            {"baseURL": "https://provider.example.com"},
        )

        assert result["base_url"] == "https://plugin.example.com"
        assert result["transport"].codex_mode is False

    @pytest.mark.asyncio
    async def test_instruction_cache_is_shared(self) -> None:
        plugin = CodexAuthPlugin()

        first = await plugin.loader(_auth({"type": "api", "key": "a"}), {})
        second = await plugin.loader(_auth({"type": "api", "key": "b"}), {})

        assert first["transport"].instruction_cache is second["transport"].instruction_cache


@pytest.mark.unit
class TestAuthorize:
    @pytest.mark.asyncio
    async def test_missing_inputs_fail(self, plugin: CodexAuthPlugin) -> None:
        assert await plugin.authorize(None) == {"type": "failed"}
        assert await plugin.authorize({"baseURL": "https://x.example.com"}) == {"type": "failed"}

    @pytest.mark.asyncio
    async def test_invalid_url_fails(self, plugin: CodexAuthPlugin) -> None:
        result = await plugin.authorize({"baseURL": "not a url", "key": "sk-test"})

        assert result == {"type": "failed"}

    @pytest.mark.asyncio
    async def test_success_saves_base_url(
        self, plugin: CodexAuthPlugin, plugin_config_path: Path
    ) -> None:
        result = await plugin.authorize(
            {"baseURL": "https://codex.example.com", "key": "sk-test-123456"}
        )

        assert result == {"type": "success", "key": "sk-test-123456"}
        saved = json.loads(plugin_config_path.read_text(encoding="utf-8"))
        assert saved["baseURL"] == "https://codex.example.com"

    def test_methods_describe_prompts(self) -> None:
        method = CodexAuthPlugin.methods[0]

        assert method.type == "api"
        assert [p.key for p in method.prompts] == ["baseURL", "key"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "value,valid",
    [
        ("https://codex.example.com", True),
        ("http://localhost:8080/v1", True),
        ("codex.example.com", False),
        ("ftp://codex.example.com", False),
        ("", False),
    ],
)
def test_validate_base_url(value: str, valid: bool) -> None:
    assert (validate_base_url(value) is None) is valid


@pytest.mark.unit
class TestCreateClient:
    @pytest.mark.asyncio
    async def test_builds_client(self, plugin: CodexAuthPlugin) -> None:
        options = await plugin.loader(_auth({"type": "api", "key": "sk-test"}), {})

        async with create_client(options) as client:
            assert isinstance(client, httpx.AsyncClient)
            assert str(client.base_url).startswith("https://chatgpt.com/backend-api")

    def test_declined_options_raise(self) -> None:
        with pytest.raises(ConfigurationError):
            create_client({})
