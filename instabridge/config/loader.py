"""Configuration loading utilities."""

import json
import os
from pathlib import Path
from typing import Any

from instabridge.config.schema import Config
from instabridge.utils.exceptions import ConfigError

REQUIRED_ENV_VARS = ("CHROME_USER_DATA_DIR",)


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".instabridge" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level value must be an object")
            cfg = Config(**convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            raise ConfigError(
                f"Failed to load config from {path}: {e}. "
                "Fix the file or remove it to use defaults."
            ) from e
    else:
        cfg = Config()

    _apply_env_fallbacks(cfg)
    return cfg


def _apply_env_fallbacks(cfg: Config) -> None:
    """Fill values that are commonly set as unprefixed env vars."""
    if not cfg.chrome_user_data_dir:
        cfg.chrome_user_data_dir = os.environ.get("CHROME_USER_DATA_DIR", "")


def validate_environment(cfg: Config) -> None:
    """Fail fast when settings required by the worker are missing."""
    values = {"CHROME_USER_DATA_DIR": cfg.chrome_user_data_dir}
    for name in REQUIRED_ENV_VARS:
        if not values.get(name):
            raise ConfigError(f"Missing required environment variable: {name}", key=name)


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file (camelCase keys)."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = convert_to_camel(config.model_dump())
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


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
