"""Persistence layer for messages, folders, attachments and settings."""

from .attachments import AttachmentStore
from .database import Database
from .legacy import import_legacy_messages
from .settings import AccountSettingsStore
from .sqlite import SqliteMailboxStore

__all__ = [
    "AccountSettingsStore",
    "AttachmentStore",
    "Database",
    "SqliteMailboxStore",
    "import_legacy_messages",
]
