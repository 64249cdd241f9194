"""
Logging configuration with a colored console handler.

Usage:
    from syncfree.config.logging import get_logger
    logger = get_logger("backup")
    logger.info("Backup started")
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime

# ANSI color codes for console output
COLORS = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[35m",  # Magenta
    "RESET": "\033[0m",
}

# Tag colors keyed by the first segment after the package name
TAG_COLORS = {
    "backup": "\033[94m",  # Blue
    "storage": "\033[95m",  # Magenta
    "auth": "\033[93m",  # Yellow
    "config": "\033[92m",  # Green
    "cli": "\033[96m",  # Cyan
}


class ColoredConsoleFormatter(logging.Formatter):
    """Formatter that adds colors and a short [tag] for the logger name."""

    def format(self, record: logging.LogRecord) -> str:
        level_color = COLORS.get(record.levelname, "")
        reset = COLORS["RESET"]

        tag = record.name.removeprefix("syncfree.")
        tag_color = TAG_COLORS.get(tag.split(".")[0], "\033[37m")

        timestamp = datetime.now().strftime("%H:%M:%S")
        level_str = f"{level_color}{record.levelname:8}{reset}"
        tag_str = f"{tag_color}[{tag}]{reset}"

        extra_str = ""
        if getattr(record, "object_key", None):
            extra_str = f" (key={record.object_key})"
        msg = f"{timestamp} {level_str} {tag_str} {record.getMessage()}{extra_str}"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


_initialized = False


def _get_console_level() -> int:
    """Get console log level from environment variable."""
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def init_logging(console_level: int | None = None) -> None:
    """Initialize the logging system with a console handler."""
    global _initialized

    if _initialized:
        return

    if console_level is None:
        console_level = _get_console_level()

    # Clear any existing handlers on root logger (from basicConfig or other sources)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter())

    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    for name in ("boto3", "botocore", "urllib3", "s3transfer", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    if not _initialized:
        init_logging()
    return logging.getLogger(name)


def reset_logging() -> None:
    """Allow init_logging() to run again (for tests)."""
    global _initialized
    _initialized = False
