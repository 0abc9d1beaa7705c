"""Ingestion pipeline components."""

from .parser import EmailParser
from .sync import MailSyncEngine, derive_message_id

__all__ = ["EmailParser", "MailSyncEngine", "derive_message_id"]
