"""
Configuration settings management for credring.

This module handles loading and validating configuration settings
from YAML files with support for environment variable overrides.

Configuration is loaded from ~/.credring/config.yaml by default, with the
path overridable via the CREDRING_CONFIG environment variable.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".credring"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

DEFAULT_KEYRING_FILE = "keyring"
DEFAULT_MIN_PASSPHRASE_LENGTH = 8


@dataclass
class KeyringConfig:
    """Keyring file settings."""

    filename: str = DEFAULT_KEYRING_FILE
    min_passphrase_length: int = DEFAULT_MIN_PASSPHRASE_LENGTH


@dataclass
class Settings:
    """
    Complete credring configuration settings.

    Settings are loaded from a YAML configuration file and can be overridden
    by environment variables prefixed with CREDRING_.

    Attributes:
        config_dir: Directory holding the keyring file.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
        keyring: Keyring file settings.
    """

    config_dir: str = str(DEFAULT_CONFIG_DIR)
    log_level: str = "WARNING"

    keyring: KeyringConfig = field(default_factory=KeyringConfig)

    @property
    def keyring_path(self) -> Path:
        """Full path of the keyring file."""
        return Path(self.config_dir).expanduser() / self.keyring.filename


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Returns the path from CREDRING_CONFIG environment variable if set,
    otherwise returns the default path (~/.credring/config.yaml).
    """
    env_path = os.environ.get("CREDRING_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> Settings:
    """
    Load configuration from YAML file.

    Reads configuration from the specified path (or default if not provided),
    applies environment variable overrides, and validates the configuration.
    A missing file yields the defaults.

    Args:
        config_path: Optional path to configuration file. If not provided,
                    uses CREDRING_CONFIG environment variable or default path.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If the configuration file cannot be read or
                          contains invalid settings.
    """
    if config_path is None:
        config_path = get_config_path()

    settings = Settings()

    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        settings = _apply_config_data(settings, config_data)

    settings = _apply_environment_overrides(settings)

    _validate_config(settings)

    return settings


def _apply_config_data(settings: Settings, data: dict[str, Any]) -> Settings:
    """Apply configuration data from parsed YAML to settings."""
    credring_data = _section(data, "credring")

    if "config_dir" in credring_data:
        settings.config_dir = str(credring_data["config_dir"])
    if "log_level" in credring_data:
        settings.log_level = str(credring_data["log_level"]).upper()

    keyring = _section(data, "keyring")
    if "filename" in keyring:
        settings.keyring.filename = str(keyring["filename"])
    if "min_passphrase_length" in keyring:
        try:
            settings.keyring.min_passphrase_length = int(keyring["min_passphrase_length"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"min_passphrase_length must be an integer: {e}"
            ) from e

    return settings


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a top-level config section, which must be a mapping if present."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return section


def _apply_environment_overrides(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    env_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "CREDRING_CONFIG_DIR": ("config_dir", str),
        "CREDRING_LOG_LEVEL": ("log_level", lambda x: x.upper()),
        "CREDRING_KEYRING_FILE": ("keyring.filename", str),
        "CREDRING_MIN_PASSPHRASE_LENGTH": ("keyring.min_passphrase_length", int),
    }

    for env_var, (attr_path, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            try:
                _set_nested_attr(settings, attr_path, converter(value))
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {env_var}: {e}") from e

    return settings


def _set_nested_attr(obj: Any, path: str, value: Any) -> None:
    """Set a nested attribute on an object using dot notation."""
    parts = path.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _validate_config(settings: Settings) -> None:
    """
    Validate configuration settings.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if settings.log_level not in valid_log_levels:
        raise ConfigurationError(
            f"Invalid log_level: {settings.log_level}. "
            f"Must be one of: {', '.join(sorted(valid_log_levels))}"
        )

    filename = settings.keyring.filename
    if not filename or "/" in filename or "\\" in filename or filename in {".", ".."}:
        raise ConfigurationError(
            f"Invalid keyring filename: {filename!r}. Must be a plain file name."
        )

    if settings.keyring.min_passphrase_length < 0:
        raise ConfigurationError("min_passphrase_length must not be negative")
