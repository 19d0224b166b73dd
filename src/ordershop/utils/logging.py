"""Logging helpers shared by every ordershop module."""

import logging
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: str = "INFO", fmt: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger with a single stderr handler.

    Safe to call more than once; later calls only adjust the level.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        fmt: Optional format string, defaults to DEFAULT_FORMAT

    Returns:
        Configured root logger
    """
    global _configured
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
        root_logger.addHandler(handler)
        _configured = True

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a module logger (typically called with __name__)."""
    return logging.getLogger(name)
