"""Logging setup for the command line entry point."""

from __future__ import annotations

import logging
import os
import sys

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "SILENT": logging.CRITICAL + 1,
}


def level_from_env(default: int = logging.INFO) -> int:
    """Read ``LOG_LEVEL`` (DEBUG, INFO, WARN, ERROR, SILENT)."""
    name = os.getenv("LOG_LEVEL", "").strip().upper()
    return LEVELS.get(name, default)


def configure_logging(level: int = logging.INFO) -> None:
    """Send ``barcache`` log records to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))

    root_logger = logging.getLogger("barcache")
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    if root_logger.handlers:
        root_logger.handlers.clear()

    root_logger.addHandler(handler)
    root_logger.propagate = False
