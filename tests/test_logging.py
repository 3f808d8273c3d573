from __future__ import annotations

import contextlib
import logging

import pytest

from necpy.app_logging import ColorFormatter, setup_logging


@contextlib.contextmanager
def bare_root():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    try:
        yield root
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def test_setup_logging_installs_one_colored_handler():
    with bare_root() as root:
        assert setup_logging("debug") is True
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ColorFormatter)
        assert setup_logging(logging.INFO) is False
        assert len(root.handlers) == 1


def test_terse_format():
    with bare_root() as root:
        setup_logging(logging.WARNING, terse=True)
        assert root.handlers[0].formatter._fmt == "[%(levelname)s] %(message)s"


def test_unknown_level():
    with bare_root() as root:
        with pytest.raises(ValueError, match="unknown log level"):
            setup_logging("chatty")
        assert root.handlers == []


def test_color_formatter_wraps_known_levels():
    record = logging.LogRecord("necpy", logging.ERROR, __file__, 1, "boom", None, None)
    text = ColorFormatter("%(message)s").format(record)
    assert text.startswith("\033[31m") and text.endswith("\033[0m")
    assert "boom" in text
