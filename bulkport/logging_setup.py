"""
Logging bootstrap for the bulkport package.

Modules log through ``logging.getLogger(__name__)``; this module attaches
a single stream handler to the ``bulkport`` logger when the server
starts. Library users who configure logging themselves never need it.
"""

import logging
import sys

__all__ = ["setup_logging", "reset_logging", "LOG_FORMAT"]

LOGGER_NAME = "bulkport"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """
    Configure the package logger.

    Calling it again only updates the level (idempotent).

    Args:
        level: Logging level, as a number or a name such as "DEBUG".

    Returns:
        The configured ``bulkport`` logger.
    """
    global _handler

    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)

    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(_handler)
        # Uvicorn configures the root logger too; avoid printing twice.
        logger.propagate = False

    return logger


def reset_logging() -> None:
    """Remove the handler installed by setup_logging. Mainly for tests."""
    global _handler

    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
