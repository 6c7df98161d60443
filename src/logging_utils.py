"""Logging configuration for the metro fare settlement service.

Every module logs through ``logging.getLogger(__name__)``; the modules live under
the ``src`` package, so this module attaches a single stdout handler to that
logger tree and the level follows ``settings.LOG_LEVEL``.

Usage:
    from src.logging_utils import configure_logging
    configure_logging()
"""

import logging
import sys

from src.config import settings

LOGGER_NAME = "src"


def configure_logging(level: str = None) -> logging.Logger:
    """Attach the stdout handler once and set the level"""
    logger = logging.getLogger(LOGGER_NAME)

    # Guard against duplicate handlers when the app is created more than once
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel((level or settings.LOG_LEVEL).upper())
    logger.propagate = True
    return logger
