"""Opt-in log handler setup for applications embedding necpy."""
from .structured import LEVEL_COLORS, ColorFormatter, setup_logging

__all__ = ["setup_logging", "ColorFormatter", "LEVEL_COLORS"]
