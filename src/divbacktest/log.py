"""Loguru sink setup for applications embedding divbacktest.

Library modules only call ``logger``; nothing here runs on import.
"""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level> {extra}"
)


def setup_logging(level: str = "INFO", *, serialize: bool = False) -> int:
    """Replace the default loguru sink with a stderr sink at ``level``.

    Returns the sink id so callers can ``logger.remove()`` it again.
    """
    logger.remove()
    return logger.add(
        sys.stderr,
        level=level.upper(),
        format=LOG_FORMAT,
        serialize=serialize,
        backtrace=False,
        diagnose=False,
    )
