"""
Logging utilities for Quotebot.

Configured from the ``[logging]`` section:

    [logging]
    level = "INFO"
    console = true            # log to stderr, stdout may carry PNG data
    file = "logs/quotebot.log"
    rotate = true             # rotate the file at midnight
    rotate-backups = 7

    [logging.logger."lib.assets"]
    level = "DEBUG"
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty third-party loggers, raised to WARNING unless configured explicitly
QUIET_LOGGERS = ("httpx", "httpcore", "PIL")


def getLogLevelByStr(levelStr: str, default: Optional[int] = None) -> Optional[int]:
    """Get log level by string."""
    level = logging.getLevelName(str(levelStr).upper())
    if isinstance(level, int):
        return level
    logger.error(f"Invalid log level '{levelStr}'")
    return default


def _handlerLevel(config: Dict[str, Any], key: str, default: int) -> int:
    if key not in config:
        return default
    level = getLogLevelByStr(config[key], default)
    return default if level is None else level


def _buildFileHandler(config: Dict[str, Any]) -> logging.Handler:
    logPath = Path(config["file"])
    logPath.parent.mkdir(parents=True, exist_ok=True)
    if config.get("rotate", False):
        return TimedRotatingFileHandler(
            filename=logPath,
            when="midnight",
            interval=1,
            backupCount=int(config.get("rotate-backups", 7)),
            encoding="utf-8",
        )
    return logging.FileHandler(logPath, encoding="utf-8")


def configureLogger(localLogger: logging.Logger, config: Dict[str, Any]) -> None:
    """Configure individual logger from config file settings."""
    if "propagate" in config:
        localLogger.propagate = bool(config["propagate"])

    if "level" in config:
        logLevel = getLogLevelByStr(config["level"])
        if logLevel is not None:
            localLogger.setLevel(logLevel)

    logLevel = localLogger.getEffectiveLevel()
    formatter = logging.Formatter(config.get("format", DEFAULT_FORMAT))

    # Clear existing handlers to avoid duplicates
    for handler in localLogger.handlers[:]:
        localLogger.removeHandler(handler)

    if config.get("console", False):
        consoleHandler = logging.StreamHandler(sys.stderr)
        consoleHandler.setLevel(_handlerLevel(config, "console-level", logLevel))
        consoleHandler.setFormatter(formatter)
        localLogger.addHandler(consoleHandler)

    if "file" in config:
        try:
            fileHandler = _buildFileHandler(config)
        except OSError as e:
            logger.error(f"Failed to setup file logging for {localLogger.name}: {e}")
        else:
            fileHandler.setLevel(_handlerLevel(config, "file-level", logLevel))
            fileHandler.setFormatter(formatter)
            localLogger.addHandler(fileHandler)
            logger.debug(f"Logging {localLogger.name} to file: {config['file']}")


def initLogging(config: Dict[str, Any]) -> None:
    """Configure logging from config file settings."""
    rootLogger = logging.getLogger()
    rootLogger.setLevel(logging.INFO)

    configureLogger(rootLogger, config)
    logLevel = rootLogger.getEffectiveLevel()

    # Avoid every GET being logged
    if logLevel < logging.WARNING:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logConfigs = config.get("logger", {})
    for loggerName, loggerConfig in logConfigs.items():
        logger.debug(f"Configuring logger '{loggerName}' with config {loggerConfig}")
        configureLogger(logging.getLogger(loggerName), loggerConfig)

    logger.debug(f"Logging configured: root level={logging.getLevelName(logLevel)}")
