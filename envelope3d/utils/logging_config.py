"""
envelope3d Logging Configuration.

Provides consistent logging setup across all modules with:
- Structured log format with timestamps
- Optional file handler with dict-style records
- Log level configuration via environment variable
- Context-aware logging (gmlid, layer, collection, feature index)

Usage:
    from envelope3d.utils.logging_config import get_logger

    logger = get_logger(__name__)
    logger.warning("Skipping feature", extra={"feature_index": 3})
"""

import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


DEFAULT_LOG_LEVEL = os.environ.get("ENVELOPE3D_LOG_LEVEL", "INFO").upper()

LOG_DIR = Path(os.environ.get("ENVELOPE3D_LOG_DIR", "logs"))

# Extra record attributes rendered after the message
CONTEXT_KEYS = ("gmlid", "layer", "collection", "feature_index", "attribute")


class SceneFormatter(logging.Formatter):
    """Console formatter with color support and context extras."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        self.use_colors = use_colors and sys.stdout.isatty()
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        extras = [
            f"{key}={getattr(record, key)}"
            for key in CONTEXT_KEYS
            if hasattr(record, key)
        ]
        if extras:
            formatted = f"{formatted} [{', '.join(extras)}]"

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            return f"{color}{formatted}{self.RESET}"
        return formatted


class FileFormatter(logging.Formatter):
    """Dict-style formatter for file output."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_KEYS + ("error_type",):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return str(log_data)


def setup_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_to_file: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for the entire application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to also log to a file
        log_file: Custom log file path (default: logs/envelope3d_YYYYMMDD.log)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(SceneFormatter(use_colors=True))
    console_handler.setLevel(getattr(logging, level, logging.INFO))
    root_logger.addHandler(console_handler)

    if log_to_file:
        LOG_DIR.mkdir(exist_ok=True)
        if log_file is None:
            log_file = LOG_DIR / f"envelope3d_{datetime.now().strftime('%Y%m%d')}.log"
        else:
            log_file = Path(log_file)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(FileFormatter())
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module."""
    return logging.getLogger(name)


_initialized = False


def ensure_logging() -> None:
    """Ensure logging is set up (call once at application start)."""
    global _initialized
    if not _initialized:
        setup_logging()
        _initialized = True
