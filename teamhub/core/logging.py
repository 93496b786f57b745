"""Shared logging helpers."""
from __future__ import annotations

import logging

_CONFIGURED = False
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(level: int | str = logging.INFO, *, fmt: str | None = None) -> None:
    """Ensure the root logger is configured once."""
    global _CONFIGURED
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    if not _CONFIGURED:
        logging.basicConfig(level=level, format=fmt or _DEFAULT_FORMAT)
        _CONFIGURED = True
    logging.getLogger("teamhub").setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module."""
    return logging.getLogger(name)
