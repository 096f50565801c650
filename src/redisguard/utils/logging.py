"""Logging helpers with consistent formatting."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from rich.logging import RichHandler

from redisguard.utils.env import get_bool_env, get_log_level_env


def get_logger(name: str, level: Optional[int] = None, *, rich: Optional[bool] = None) -> logging.Logger:
    """Configure and return a logger.

    Level and handler style default to ``REDISGUARD_LOG_LEVEL`` and
    ``REDISGUARD_LOG_RICH``.
    """
    logger = logging.getLogger(f"redisguard.{name}")
    if logger.handlers:
        return logger

    if level is None:
        level = get_log_level_env("REDISGUARD_LOG_LEVEL")
    if rich is None:
        rich = get_bool_env("REDISGUARD_LOG_RICH", default=True)

    logger.setLevel(level)

    if rich:
        handler: logging.Handler = RichHandler(
            level=level,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            show_time=True,
            show_path=False,
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s %(name)s %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.propagate = False
    return logger


def set_log_level(level: int | str) -> None:
    """Apply ``level`` to every redisguard logger created so far."""
    if isinstance(level, str):
        level = level.upper()
    for name, existing in logging.root.manager.loggerDict.items():
        if name.startswith("redisguard.") and isinstance(existing, logging.Logger):
            existing.setLevel(level)
            for handler in existing.handlers:
                handler.setLevel(level)
