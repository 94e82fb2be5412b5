"""
Yarn - Configuration Management

This module handles loading, merging, and managing configuration from
TOML files and environment variables. Supports default values and
runtime configuration updates.

Version: 1.0.0
"""

import copy
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .constants import (
    CONFIG_FILENAME,
    DEFAULT_COMPRESSION_FORMAT,
    DEFAULT_DATA_DIR,
    DEFAULT_SHARE_BASE_URL,
)
from .errors import ConfigError, ErrorCode

ENV_PREFIX = "YARN"

# Default configuration dictionary
DEFAULT_CONFIG: Dict[str, Any] = {
    "capsule": {
        "compression": DEFAULT_COMPRESSION_FORMAT,
    },
    "share": {
        "base_url": DEFAULT_SHARE_BASE_URL,
    },
    "logging": {
        "level": "WARNING",
        "file_logging": False,
        "console_logging": True,
        "file": "yarn.log",
    },
}


class Config:
    """Configuration manager for Yarn.

    Loads configuration from TOML files, merges with defaults,
    and applies environment variable overrides.

    Attributes:
        config_path: Path to the configuration file
        data: Configuration dictionary
    """

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file (optional)
                If not provided, uses default location
        """
        if config_path is None:
            data_dir = Path(DEFAULT_DATA_DIR).expanduser()
            config_path = data_dir / CONFIG_FILENAME

        self.config_path = Path(config_path)
        self._stored = self._load_config()
        self.data = self._apply_env_overrides(self._stored)

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file and merge with defaults.

        Environment overrides are applied separately so save() never
        writes them back.

        Returns:
            Merged configuration dictionary

        Raises:
            ConfigError: If the configuration file cannot be parsed
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    file_config = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigError(
                    ErrorCode.E704_CONFIG_PARSE_ERROR,
                    f"Failed to parse configuration file: {e}",
                    {"path": str(self.config_path), "error": str(e)},
                ) from e

            config = self._merge_config(config, file_config)

        return config

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge override config into base config."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern: YARN_SECTION_KEY
        For example: YARN_CAPSULE_COMPRESSION=deflate

        Values that do not convert to the default's type are ignored.
        """
        result = copy.deepcopy(config)

        for section, settings in config.items():
            if not isinstance(settings, dict):
                continue

            for key in settings:
                env_value = os.environ.get(f"{ENV_PREFIX}_{section.upper()}_{key.upper()}")
                if env_value is None:
                    continue

                try:
                    result[section][key] = coerce_value(env_value, settings[key])
                except ValueError:
                    pass

        return result

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            section: Configuration section name
            key: Configuration key name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self.data.get(section, {}).get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value for this run and for the next save()."""
        self.data.setdefault(section, {})[key] = value
        self._stored.setdefault(section, {})[key] = value

    def update_from_text(self, section: str, key: str, text: str) -> Any:
        """Set a known setting from command line text.

        The text is converted to the type of the current value.

        Returns:
            The converted value

        Raises:
            ConfigError: If the setting is unknown or the text does not convert
        """
        settings = self._stored.get(section)
        if not isinstance(settings, dict) or key not in settings:
            raise ConfigError(
                ErrorCode.E703_UNKNOWN_SETTING,
                f"Unknown setting: {section}.{key}",
                {"section": section, "key": key},
            )

        try:
            value = coerce_value(text, settings[key])
        except ValueError as e:
            raise ConfigError(
                ErrorCode.E703_UNKNOWN_SETTING,
                f"Invalid value for {section}.{key}: {text!r}",
                {"section": section, "key": key, "error": str(e)},
            ) from e

        self.set(section, key, value)
        return value

    def save(self) -> None:
        """Save the file-level configuration (without environment overrides).

        Raises:
            ConfigError: If saving fails
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                self._write_toml(f, self._stored)
        except OSError as e:
            raise ConfigError(
                ErrorCode.E702_CONFIG_SAVE_FAILED,
                f"Failed to save configuration: {e}",
                {"path": str(self.config_path), "error": str(e)},
            ) from e

    def _write_toml(self, file, data: Dict[str, Any]) -> None:
        """Write flat sections of scalars as TOML."""
        for section, settings in data.items():
            if not isinstance(settings, dict):
                continue
            file.write(f"[{section}]\n")
            for key, value in settings.items():
                if isinstance(value, bool):
                    file.write(f"{key} = {str(value).lower()}\n")
                elif isinstance(value, (int, float)):
                    file.write(f"{key} = {value}\n")
                elif isinstance(value, str):
                    file.write(f"{key} = {toml_string(value)}\n")
            file.write("\n")

    def to_dict(self) -> Dict[str, Any]:
        """Get configuration as dictionary."""
        return copy.deepcopy(self.data)


def coerce_value(text: str, current: Any) -> Any:
    """Convert text to the type of an existing setting.

    Raises:
        ValueError: If the text is not a valid int or float
    """
    if isinstance(current, bool):
        return text.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        return int(text)
    if isinstance(current, float):
        return float(text)
    return text


_TOML_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


def toml_string(value: str) -> str:
    """Quote a string as a TOML basic string."""
    out = []
    for ch in value:
        if ch in _TOML_ESCAPES:
            out.append(_TOML_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'
