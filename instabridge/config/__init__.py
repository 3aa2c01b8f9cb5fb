"""Configuration module for instabridge."""

from instabridge.config.loader import load_config, get_config_path, validate_environment
from instabridge.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path", "validate_environment"]
