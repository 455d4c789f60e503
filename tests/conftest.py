"""Shared test fixtures and configuration for codex-bridge tests.

Network access is replaced with ``httpx.MockTransport`` and instruction
sources with in-memory fakes.
"""

from pathlib import Path

import pytest

from codex_bridge.config.settings import PluginConfig, UserConfig
from codex_bridge.core.logging import setup_logging
from codex_bridge.services.instructions import InstructionCache
from tests.helpers.events import FakeInstructionSource


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    config.option.asyncio_mode = "auto"

    # Reuse the application logging pipeline so structlog processors behave
    # the same way in tests.
    setup_logging(json_logs=False, log_level_name="DEBUG")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Keep tests away from the real plugin config and environment overrides."""
    config_path = tmp_path / "codex-bridge-config.json"
    monkeypatch.setenv("CODEX_BRIDGE_CONFIG", str(config_path))
    monkeypatch.delenv("CODEX_MODE", raising=False)
    return config_path


@pytest.fixture
def plugin_config_path(isolated_environment: Path) -> Path:
    return isolated_environment


@pytest.fixture
def instruction_source() -> FakeInstructionSource:
    return FakeInstructionSource()


@pytest.fixture
def instruction_cache(instruction_source: FakeInstructionSource) -> InstructionCache:
    return InstructionCache(instruction_source)


@pytest.fixture
def user_config() -> UserConfig:
    return UserConfig.model_validate(
        {
            "global": {"reasoningEffort": "medium", "textVerbosity": "medium"},
            "models": {
                "gpt-5.1-codex": {"options": {"reasoningEffort": "low"}},
            },
        }
    )


@pytest.fixture
def plugin_config() -> PluginConfig:
    return PluginConfig()
