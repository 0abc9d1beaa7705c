"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.config
from typing import Any

from .config import LoggingSettings

PACKAGE_LOGGER = "unimail"

_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s %(message)s"
_STRUCTURED_FORMAT = (
    '{{"time": "{asctime}", "level": "{levelname}", "thread": "{threadName}", '
    '"logger": "{name}", "message": "{message}"}}'
)


def _formatter(structured: bool) -> dict[str, Any]:
    """Return the dictConfig formatter entry for the requested style."""
    if structured:
        return {"format": _STRUCTURED_FORMAT, "style": "{"}
    return {"format": _PLAIN_FORMAT}


def configure_logging(settings: LoggingSettings) -> None:
    """Route root and package loggers to one console handler at ``settings.level``.

    Sync runs on worker threads, so every record carries its thread name.
    """
    level = settings.level.upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": _formatter(settings.structured)},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": level,
                },
            },
            "loggers": {
                PACKAGE_LOGGER: {"level": level, "propagate": True},
            },
            "root": {"handlers": ["console"], "level": level},
        }
    )
    logging.getLogger(__name__).debug("Logging configured at level %s", level)


__all__ = ["configure_logging"]
