"""Logging setup for launchpad processes."""

from __future__ import annotations

import logging

CONSOLE_FORMAT = (
    "%(asctime)s.%(msecs)03d | %(levelname)-7s | [PID:%(process)d] | "
    "%(filename)s.%(funcName)s:%(lineno)d | %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach a console handler to the package logger.

    Safe to call more than once; existing handlers are replaced rather than
    duplicated.
    """
    logger = logging.getLogger("launchpad")
    logger.handlers.clear()
    logger.setLevel(level)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
