"""Configuration models for the Codex bridge.

Three layers are involved:

- ``UserConfig``: provider options from the host (``global`` options plus
  per-model overrides), immutable for the lifetime of a request.
- ``PluginConfig``: the plugin's own JSON file (CODEX_MODE, base URL,
  instruction source, extra usage-limit phrases).
- Environment overrides read through pydantic-settings.
"""

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from codex_bridge.core.errors import ConfigurationError
from codex_bridge.core.logging import VALID_LOG_LEVELS, get_logger

from .constants import DEFAULT_PLUGIN_CONFIG_PATH, PLUGIN_CONFIG_ENV_VAR


logger = get_logger(__name__)


class CodexOptions(BaseModel):
    """Typed view over a reasoning/verbosity option mapping.

    Accepts the camelCase keys used by provider configuration files as well
    as snake_case. Unset fields stay ``None`` so that merging can tell
    "not specified" apart from an explicit value.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    reasoning_effort: str | None = Field(default=None, alias="reasoningEffort")
    reasoning_summary: str | None = Field(default=None, alias="reasoningSummary")
    text_verbosity: str | None = Field(default=None, alias="textVerbosity")
    include: list[str] | None = Field(default=None)

    def specified(self) -> dict[str, Any]:
        """Return only the options that were explicitly set."""
        return self.model_dump(exclude_none=True)


class UserConfig(BaseModel):
    """Provider options supplied by the host: global plus per-model overrides."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    global_options: dict[str, Any] = Field(default_factory=dict, alias="global")
    models: dict[str, Any] = Field(default_factory=dict)

    def options_for(self, model_id: str | None) -> dict[str, Any]:
        """Get the override mapping for a model identifier.

        Model entries may either hold the options directly or nest them under
        an ``options`` key.
        """
        if not model_id:
            return {}
        entry = self.models.get(model_id)
        if not isinstance(entry, dict):
            return {}
        options = entry.get("options", entry)
        return options if isinstance(options, dict) else {}


class PluginConfig(BaseModel):
    """Contents of the plugin configuration file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    codex_mode: bool | None = Field(
        default=None,
        alias="codexMode",
        description="Bridge-prompt mode (True) or tool-remap mode (False)",
    )
    base_url: str | None = Field(
        default=None,
        alias="baseURL",
        description="Fully custom backend endpoint, used as-is",
    )
    instructions_source: Literal["auto", "remote", "bundled"] = Field(
        default="auto",
        alias="instructionsSource",
        description="Where model-family instructions are loaded from",
    )
    usage_limit_patterns: list[str] = Field(
        default_factory=list,
        alias="usageLimitPatterns",
        description="Extra phrases identifying usage-limit errors reported as 404",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str | None) -> str | None:
        """Validate custom base URL format."""
        if v is None or v == "":
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://")
        return v


class EnvironmentSettings(BaseSettings):
    """Environment overrides."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    codex_mode: bool | None = Field(
        default=None, validation_alias=AliasChoices("CODEX_MODE")
    )


class LoggingSettings(BaseSettings):
    """Logging configuration read from ``CODEX_BRIDGE_LOG_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="CODEX_BRIDGE_LOG_", case_sensitive=False, extra="ignore"
    )

    level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(
        default=False,
        validation_alias=AliasChoices("CODEX_BRIDGE_LOG_JSON", "json_logs"),
        description="Render logs as JSON lines",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        upper_v = v.upper()
        if upper_v not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return upper_v


def get_plugin_config_path() -> Path:
    """Resolve the plugin configuration file path."""
    return Path(
        os.environ.get(PLUGIN_CONFIG_ENV_VAR, DEFAULT_PLUGIN_CONFIG_PATH)
    ).expanduser()


def load_plugin_config(path: Path | None = None) -> PluginConfig:
    """Load the plugin configuration file.

    A missing, unreadable or invalid file yields the default configuration.
    """
    config_path = path or get_plugin_config_path()
    if not config_path.exists():
        return PluginConfig()

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return PluginConfig.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning(
            "plugin_config_load_failed",
            path=str(config_path),
            error=str(e),
            category="config",
        )
        return PluginConfig()


def save_plugin_config(config: PluginConfig, path: Path | None = None) -> Path:
    """Persist the plugin configuration file.

    Raises:
        ConfigurationError: If the file cannot be written
    """
    config_path = path or get_plugin_config_path()
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w", encoding="utf-8") as f:
            json.dump(
                config.model_dump(by_alias=True, exclude_none=True), f, indent=2
            )
    except OSError as e:
        raise ConfigurationError(
            f"Failed to save plugin config to {config_path}: {e}"
        ) from e

    logger.debug("plugin_config_saved", path=str(config_path), category="config")
    return config_path


def get_codex_mode(config: PluginConfig) -> bool:
    """Resolve CODEX_MODE: environment, then config file, then ``True``."""
    try:
        env_mode = EnvironmentSettings().codex_mode
    except ValidationError as e:
        logger.warning(
            "codex_mode_env_invalid",
            value=os.environ.get("CODEX_MODE"),
            error=str(e),
            category="config",
        )
        env_mode = None
    if env_mode is not None:
        return env_mode
    if config.codex_mode is not None:
        return config.codex_mode
    return True
