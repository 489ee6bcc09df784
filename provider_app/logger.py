"""Logging configuration for the provider directory."""
from __future__ import annotations

import logging
import os

LOGGER_NAME = "provider_directory"


def setup_logging(log_level: str | None = None) -> logging.Logger:
    """Configure the directory logger once and return it.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Falls back to
            the PROVIDER_DIRECTORY_LOG_LEVEL environment variable, then INFO.

    Returns:
        The "provider_directory" logger
    """
    level_name = (log_level or os.environ.get("PROVIDER_DIRECTORY_LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Avoid duplicate handlers when the app factory runs more than once
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(handler)

    return logger


logger = setup_logging()
