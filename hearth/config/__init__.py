"""Configuration module for hearth."""

from hearth.config.loader import get_config_path, load_config, save_config
from hearth.config.schema import AgentConfig, Config, ProviderConfig, RetryConfig, ToolsConfig

__all__ = [
    "AgentConfig",
    "Config",
    "ProviderConfig",
    "RetryConfig",
    "ToolsConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
