"""Shared fixtures: an initialised database with its stores under ``tmp_path``."""

from __future__ import annotations

from collections.abc import Iterator
from email.message import EmailMessage
from pathlib import Path

import pytest

from unimail.core.config import StorageSettings
from unimail.core.models import INBOX, Message
from unimail.storage import AttachmentStore, Database, SqliteMailboxStore


@pytest.fixture()
def storage_settings(tmp_path: Path) -> StorageSettings:
    return StorageSettings(
        db_path=tmp_path / "unimail.db",
        attachments_dir=tmp_path / "attachments",
        legacy_json_path=tmp_path / "mails.json",
    )


@pytest.fixture()
def database(storage_settings: StorageSettings) -> Iterator[Database]:
    with Database(storage_settings) as handle:
        handle.initialize()
        yield handle


@pytest.fixture()
def mailbox_store(database: Database) -> SqliteMailboxStore:
    return SqliteMailboxStore(database)


@pytest.fixture()
def attachment_store(database: Database, storage_settings: StorageSettings) -> AttachmentStore:
    return AttachmentStore(database, storage_settings.attachments_dir)


def make_message(message_id: str, **overrides: object) -> Message:
    values: dict[str, object] = {
        "id": message_id,
        "sender_name": "Alice",
        "sender_email": "alice@example.com",
        "recipient": "me@example.com",
        "subject": f"Subject {message_id}",
        "body": f"Body of {message_id}",
        "date": "2025-01-01 10:00",
        "folder": INBOX,
    }
    values.update(overrides)
    return Message(**values)  # type: ignore[arg-type]


def make_forwarded_email(outer_body: str = "Outer body", inner_body: str = "Inner body text") -> bytes:
    """Return a message carrying another message as a ``message/rfc822`` attachment."""
    inner = EmailMessage()
    inner["From"] = "bob@example.com"
    inner["Subject"] = "Original"
    inner.set_content(inner_body)

    outer = EmailMessage()
    outer["From"] = "alice@example.com"
    outer["To"] = "me@example.com"
    outer["Subject"] = "Fwd: Original"
    outer.set_content(outer_body)
    outer.add_attachment(inner)
    return outer.as_bytes()
