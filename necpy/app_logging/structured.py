"""Colored logging setup for applications embedding the gateway.

Library modules only create named loggers; handlers are installed by the
embedding application through :func:`setup_logging`.
"""
from __future__ import annotations

import logging
import sys
from typing import Union

# Simple ANSI color map
LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        color = LEVEL_COLORS.get(record.levelname, "")
        return f"{color}{base}{RESET}" if color else base


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level}")
    return value


def setup_logging(level: Union[int, str] = logging.INFO, terse: bool = False) -> bool:
    """Install a colored stream handler if none exists.

    Returns True when a handler was installed, False when the root logger
    was already configured.
    """

    root = logging.getLogger()
    if root.handlers:
        return False

    handler = logging.StreamHandler(sys.stdout)
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s" if not terse else "[%(levelname)s] %(message)s"
    handler.setFormatter(ColorFormatter(fmt))
    root.setLevel(_coerce_level(level))
    root.addHandler(handler)
    return True


__all__ = ["setup_logging", "ColorFormatter", "LEVEL_COLORS"]
