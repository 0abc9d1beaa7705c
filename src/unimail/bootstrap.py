"""Composition root wiring settings, storage, transports and services."""

from __future__ import annotations

import logging

from .core import AppSettings, ServiceContainer
from .core.interfaces import MailboxConnector, MailSender
from .ingestion import EmailParser, MailSyncEngine
from .services import FolderService, Outbox
from .storage import (
    AccountSettingsStore,
    AttachmentStore,
    Database,
    SqliteMailboxStore,
    import_legacy_messages,
)
from .transport import ImapConnector, SmtpClient

LOGGER = logging.getLogger(__name__)


def build_container(
    settings: AppSettings,
    *,
    connector: MailboxConnector | None = None,
    sender: MailSender | None = None,
) -> ServiceContainer:
    """Register every service lazily; ``connector``/``sender`` replace the network transports."""
    container = ServiceContainer()
    container.register(
        "database", lambda _: Database(settings.storage), close=Database.close
    )
    container.register(
        "mailbox_store", lambda c: SqliteMailboxStore(c.resolve("database"))
    )
    container.register(
        "attachment_store",
        lambda c: AttachmentStore(c.resolve("database"), settings.storage.attachments_dir),
    )
    container.register(
        "settings_store", lambda c: AccountSettingsStore(c.resolve("database"))
    )
    container.register("parser", lambda _: EmailParser())
    container.register(
        "connector",
        lambda _: connector or ImapConnector(settings.sync.timeout_seconds),
    )
    container.register("sender", lambda _: sender or SmtpClient())
    container.register(
        "folder_service", lambda c: FolderService(c.resolve("mailbox_store"))
    )
    container.register(
        "outbox",
        lambda c: Outbox(
            c.resolve("mailbox_store"),
            c.resolve("attachment_store"),
            c.resolve("settings_store"),
            c.resolve("sender"),
        ),
    )
    container.register(
        "sync_engine",
        lambda c: MailSyncEngine(
            c.resolve("connector"),
            c.resolve("mailbox_store"),
            c.resolve("attachment_store"),
            c.resolve("parser"),
            c.resolve("settings_store"),
            window=settings.sync.window,
        ),
    )
    return container


def initialize_storage(container: ServiceContainer, settings: AppSettings) -> None:
    """Apply the schema, seed system folders and import the legacy mailbox once."""
    database: Database = container.resolve("database")
    database.initialize()
    imported = import_legacy_messages(
        container.resolve("mailbox_store"), settings.storage.legacy_json_path
    )
    if imported:
        LOGGER.info("Legacy import added %s message(s)", imported)


__all__ = ["build_container", "initialize_storage"]
