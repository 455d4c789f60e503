"""Configuration for the Codex bridge."""

from .settings import (
    CodexOptions,
    LoggingSettings,
    PluginConfig,
    UserConfig,
    get_codex_mode,
    load_plugin_config,
    save_plugin_config,
)


__all__ = [
    "CodexOptions",
    "LoggingSettings",
    "PluginConfig",
    "UserConfig",
    "get_codex_mode",
    "load_plugin_config",
    "save_plugin_config",
]
