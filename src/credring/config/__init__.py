"""
Configuration management for credring.

This module handles loading and validating configuration settings.
"""

from credring.config.settings import (
    DEFAULT_CONFIG_DIR,
    ConfigurationError,
    KeyringConfig,
    Settings,
    get_config_path,
    load_config,
)

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "Settings",
    "KeyringConfig",
    "get_config_path",
    "load_config",
    "ConfigurationError",
]
