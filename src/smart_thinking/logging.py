"""Logging configuration for smart-thinking.

The verification core emits structlog events (snake_case event names with
key/value context). This module routes those events through the standard
library ``smart_thinking`` logger so a host process controls level, format and
destination in one place.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from smart_thinking.config import Settings


PACKAGE_LOGGER_NAME = "smart_thinking"

# Package logger
logger = logging.getLogger(PACKAGE_LOGGER_NAME)


def _configure_structlog() -> None:
    """Render structlog events as key=value lines on stdlib loggers."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(
                key_order=["event", "logger", "level"], drop_missing=True
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_logging(
    settings: Settings | None = None,
    *,
    log_level: str | None = None,
    log_format: str | None = None,
    log_file: Path | None = None,
) -> logging.Logger:
    """Set up logging for the verification core.

    Args:
        settings: Optional Settings instance. If not provided,
            the global settings are used.
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Override log format string.
        log_file: Optional path to log file for file logging.

    Returns:
        The configured package logger for smart_thinking.

    Example:
        >>> from smart_thinking.logging import setup_logging
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Verification memory started")
    """
    if settings is None:
        from smart_thinking.config import get_settings

        settings = get_settings()

    effective_level = log_level or settings.log_level
    effective_format = log_format or settings.log_format

    numeric_level = getattr(logging, effective_level.upper(), logging.INFO)

    logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    formatter = logging.Formatter(effective_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    _configure_structlog()

    return logger


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to a child of the package logger.

    Args:
        name: The name of the module or component.

    Returns:
        A bound logger whose events land on ``smart_thinking.<name>``.

    Example:
        >>> from smart_thinking.logging import get_logger
        >>> log = get_logger("verification.memory")
        >>> log.debug("verification_added", session_id="default")
    """
    if name != PACKAGE_LOGGER_NAME and not name.startswith(f"{PACKAGE_LOGGER_NAME}."):
        name = f"{PACKAGE_LOGGER_NAME}.{name}"
    return structlog.get_logger(name)


__all__ = [
    "PACKAGE_LOGGER_NAME",
    "get_logger",
    "logger",
    "setup_logging",
]
