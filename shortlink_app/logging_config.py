"""Logging configuration for the shortlink engine."""

import logging
import sys


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger once per process.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)

    Returns:
        The configured "shortlink_app" logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("shortlink_app")
    logger.setLevel(numeric_level)

    # Idempotent: create_app() may run several times in one test session
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)

    return logger
