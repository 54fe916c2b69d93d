"""
Configuration management for Quotebot.
"""

import copy
import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomli

import lib.utils as utils

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "image": {
        "width": 1200,
        "height": 630,
        "primary-font": "Noto Sans JP",
        "mono-font": "Noto Sans Mono",
        "twemoji-base-url": "https://cdn.jsdelivr.net/gh/jdecked/twemoji@latest/assets/72x72",
        "discord-cdn-url": "https://cdn.discordapp.com",
        "fonts-api-url": "https://fonts.googleapis.com/css2",
    },
    "http": {
        "timeout": 10,
        "user-agent": "quotebot",
    },
    "cache": {
        "emoji-max-size": 1000,
        "emoji-ttl": -1,
    },
    "logging": {
        "level": "INFO",
        "console": True,
    },
}


def replaceMatchToEnv(match: re.Match[str]) -> str:
    """Replace environment variable placeholders with actual values.

    Args:
        match: A regex match object containing the environment variable name.

    Returns:
        str: The value of the environment variable or the original placeholder
             if the variable is not set.
    """
    key = match.group(1)
    return os.getenv(key, match.group(0))


def substituteEnvVars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} placeholders in strings, dicts and lists."""
    if isinstance(value, str):
        return re.sub(r"\$\{([A-Za-z_][A-Za-z0-9_-]*)\}", replaceMatchToEnv, value)
    elif isinstance(value, dict):
        return {k: substituteEnvVars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substituteEnvVars(item) for item in value]
    return value


class ConfigManager:
    """Manages configuration loading and validation for Quotebot.

    Built-in defaults are overridden by the main config file, which is in turn
    overridden by every ``*.toml`` found in the config directories (sorted by path).
    """

    def __init__(
        self,
        configPath: Optional[str] = "config.toml",
        configDirs: Optional[List[str]] = None,
        dotEnvFile: str = ".env",
    ):
        """Initialize ConfigManager with config file path and optional config directories.

        Args:
            configPath: Main TOML file, None to start from the defaults only
            configDirs: Directories scanned recursively for additional TOML files
            dotEnvFile: Environment file loaded before substitution, skipped if missing
        """
        self.config_path = configPath
        self.config_dirs = configDirs or []
        if Path(dotEnvFile).is_file():
            utils.load_dotenv(path=dotEnvFile)
        self.config = substituteEnvVars(self._mergeConfigs(DEFAULT_CONFIG, self._loadConfig()))
        self._validateConfig()

    def _findTomlFilesRecursive(self, directory: str) -> List[Path]:
        """Recursively find all .toml files in a directory."""
        toml_files = []
        dir_path = Path(directory)

        if not dir_path.exists():
            logger.warning(f"Config directory {directory} does not exist, skipping")
            return toml_files

        if not dir_path.is_dir():
            logger.warning(f"Config path {directory} is not a directory, skipping")
            return toml_files

        for toml_file in dir_path.rglob("*.toml"):
            if toml_file.is_file():
                toml_files.append(toml_file)
                logger.debug(f"Found config file: {toml_file}")

        return sorted(toml_files)

    def _mergeConfigs(self, base_config: Dict[str, Any], new_config: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries, new values win."""
        merged = copy.deepcopy(base_config)

        for key, value in new_config.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._mergeConfigs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def _loadConfig(self) -> Dict[str, Any]:
        """Load configuration from TOML file and optional config directories.

        Raises:
            SystemExit: If an explicitly given config file is missing and no
                        config directories are provided, or the main file is
                        not valid TOML.
        """
        config: Dict[str, Any] = {}

        if self.config_path is not None:
            config_file = Path(self.config_path)
            if not config_file.exists() and not self.config_dirs:
                logger.error(f"Configuration file {self.config_path} not found!")
                sys.exit(1)

            if config_file.exists():
                try:
                    with open(config_file, "rb") as f:
                        config = tomli.load(f)
                except (OSError, tomli.TOMLDecodeError) as e:
                    logger.error(f"Failed to load configuration {self.config_path}: {e}")
                    sys.exit(1)
                logger.info(f"Loaded main config from {self.config_path}")

        for config_dir in self.config_dirs:
            toml_files = self._findTomlFilesRecursive(config_dir)
            logger.info(f"Found {len(toml_files)} .toml files in {config_dir}")

            for toml_file in toml_files:
                try:
                    with open(toml_file, "rb") as f:
                        dir_config = tomli.load(f)
                except (OSError, tomli.TOMLDecodeError) as e:
                    # Continue with other files instead of exiting
                    logger.error(f"Failed to load config file {toml_file}: {e}")
                    continue

                config = self._mergeConfigs(config, dir_config)
                logger.info(f"Merged config from {toml_file}")

        return config

    def _validateConfig(self) -> None:
        """Check value ranges, raising ValueError on invalid settings."""
        image = self.getImageConfig()
        for key in ("width", "height"):
            if not isinstance(image.get(key), int) or image[key] <= 0:
                raise ValueError(f"image.{key} must be a positive integer, got {image.get(key)!r}")

        timeout = self.getHttpConfig().get("timeout")
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"http.timeout must be a positive number, got {timeout!r}")

        maxSize = self.getCacheConfig().get("emoji-max-size")
        if not isinstance(maxSize, int) or maxSize < 0:
            raise ValueError(f"cache.emoji-max-size must be a non-negative integer, got {maxSize!r}")

    def get(self, key: str, default=None) -> Any:
        """Get configuration value by key."""
        return self.config.get(key, default)

    def getImageConfig(self) -> Dict[str, Any]:
        """Get canvas, font and upstream URL settings."""
        return self.get("image", {})

    def getHttpConfig(self) -> Dict[str, Any]:
        """Get HTTP client settings."""
        return self.get("http", {})

    def getCacheConfig(self) -> Dict[str, Any]:
        """Get custom emoji cache settings.

        ``emoji-max-size`` of 0 disables caching, a negative ``emoji-ttl``
        keeps entries forever.
        """
        return self.get("cache", {})

    def getLoggingConfig(self) -> Dict[str, Any]:
        """Get logging-specific configuration."""
        return self.get("logging", {})
