"""
Log Configuration - Settings for logging behavior

The library only creates module loggers; embedding processes call
``configure_logging`` once at startup.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class LogConfig:
    """Configuration for logging"""
    log_level: str = "INFO"
    log_format: str = DEFAULT_FORMAT
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Create config from environment variables"""
        return cls(
            log_level=os.getenv("FORMSENSE_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("FORMSENSE_LOG_FORMAT", DEFAULT_FORMAT),
            log_file=os.getenv("FORMSENSE_LOG_FILE") or None,
        )

    @property
    def level(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


def configure_logging(config: Optional[LogConfig] = None) -> logging.Logger:
    """
    Attach a handler to the ``formsense_core`` logger.

    Returns:
        The package logger
    """
    config = config or LogConfig.from_env()
    logger = logging.getLogger("formsense_core")
    logger.setLevel(config.level)

    if not logger.handlers:
        if config.log_file:
            handler: logging.Handler = logging.FileHandler(config.log_file, encoding="utf-8")
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config.log_format))
        logger.addHandler(handler)

    return logger
