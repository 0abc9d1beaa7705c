"""Exception hierarchy shared by the storage, ingestion and service layers."""

from __future__ import annotations


class UnimailError(Exception):
    """Base class for domain errors raised by Unimail."""


class ConfigError(UnimailError):
    """Required account configuration (credentials, host) is missing."""


class ValidationError(UnimailError):
    """Input was rejected before any storage write took place."""


class NotFoundError(UnimailError):
    """A referenced message, attachment or folder does not exist."""


class StorageError(UnimailError):
    """A persistence operation failed unexpectedly."""


class SentButNotStoredError(StorageError):
    """The message was delivered over SMTP but the local copy could not be saved."""


class ParseError(UnimailError):
    """A single remote message could not be decoded."""


__all__ = [
    "ConfigError",
    "NotFoundError",
    "ParseError",
    "SentButNotStoredError",
    "StorageError",
    "UnimailError",
    "ValidationError",
]
