"""Configuration loading utilities."""

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from hearth.config.schema import Config
from hearth.utils.helpers import get_data_path

# Provider-specific keys, checked after HEARTH_API_KEY.
PROVIDER_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "glm": "GLM_API_KEY",
}


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return get_data_path() / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object, with environment overrides applied.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            config = Config.model_validate(convert_keys(data))
            _apply_env_overrides(config)
            return config
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning("Failed to load config from {}: {}", path, e)
            logger.warning("Using default configuration.")

    config = Config()
    _apply_env_overrides(config)
    return config


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file in camelCase form.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def _load_dotenv(path: Path) -> dict[str, str]:
    """Load simple KEY=VALUE pairs from a .env file."""
    if not path.exists():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
            value = value[1:-1]
        values[key] = value
    return values


def _collect_env() -> dict[str, str]:
    """Process env vars win over the .env file in the current directory."""
    env = dict(os.environ)
    for key, value in _load_dotenv(Path.cwd() / ".env").items():
        env.setdefault(key, value)
    return env


def _apply_env_overrides(config: Config) -> None:
    """Apply environment overrides.

    Supported overrides:
    - HEARTH_API_KEY, then the provider-specific key (OPENAI_API_KEY,
      OPENROUTER_API_KEY, GLM_API_KEY)  -> provider.api_key
    - HEARTH_API_BASE                   -> provider.api_base
    - HEARTH_MODEL                      -> agent.model
    - HEARTH_WORKSPACE                  -> workspace
    """
    env = _collect_env()

    api_key = env.get("HEARTH_API_KEY", "").strip()
    if not api_key and config.provider.name:
        provider_var = PROVIDER_KEY_ENV_VARS.get(config.provider.name.lower())
        if provider_var:
            api_key = env.get(provider_var, "").strip()
    if not api_key and not config.provider.api_key:
        api_key = next(
            (env[var].strip() for var in PROVIDER_KEY_ENV_VARS.values() if env.get(var, "").strip()),
            "",
        )
    if api_key:
        config.provider.api_key = api_key

    api_base = env.get("HEARTH_API_BASE", "").strip()
    if api_base:
        config.provider.api_base = api_base

    model = env.get("HEARTH_MODEL", "").strip()
    if model:
        config.agent.model = model

    workspace = env.get("HEARTH_WORKSPACE", "").strip()
    if workspace:
        config.workspace = workspace


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
