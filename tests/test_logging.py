"""Tests for logging utilities."""

from __future__ import annotations

import logging

from unimail.core.config import LoggingSettings
from unimail.core.logging import configure_logging


def test_configure_logging_sets_root_level() -> None:
    """configure_logging should set the root logger level according to settings."""

    settings = LoggingSettings(level="debug", structured=False)
    configure_logging(settings)
    assert logging.getLogger().level == logging.DEBUG


def test_structured_logging_uses_brace_style() -> None:
    configure_logging(LoggingSettings(level="WARNING", structured=True))
    root = logging.getLogger()
    assert root.level == logging.WARNING
    formatter = root.handlers[0].formatter
    assert formatter is not None
    record = logging.LogRecord("unimail.test", logging.WARNING, __file__, 1, "hi", None, None)
    assert '"message": "hi"' in formatter.format(record)
