"""Tests for the one-shot legacy JSON import."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import make_message
from unimail.core.errors import StorageError
from unimail.core.models import INBOX, SENT
from unimail.storage import SqliteMailboxStore, import_legacy_messages


def _write_legacy(path: Path, entries: list[dict[str, object]]) -> None:
    path.write_text(json.dumps(entries), encoding="utf-8")


def test_import_inserts_and_renames(tmp_path: Path, mailbox_store: SqliteMailboxStore) -> None:
    source = tmp_path / "mails.json"
    _write_legacy(
        source,
        [
            {
                "id": "1700000000000",
                "from": "Bob",
                "fromEmail": "bob@example.com",
                "to": "me@example.com",
                "subject": "Hello",
                "snippet": "ignored",
                "body": "Hi   there",
                "date": "2024-11-14 22:13",
                "read": True,
                "starred": True,
                "folder": SENT,
            },
            {
                "id": "1700000000001",
                "fromEmail": "carol@example.com",
                "subject": "Lost folder",
                "body": "x",
                "folder": "custom-gone",
            },
            {"subject": "no id, skipped"},
        ],
    )

    assert import_legacy_messages(mailbox_store, source) == 2

    assert not source.exists()
    assert (tmp_path / "mails.json.bak").is_file()
    first = mailbox_store.get("1700000000000")
    assert first is not None
    assert first.sender_name == "Bob"
    assert first.folder == SENT
    assert first.read and first.starred
    assert first.snippet == "Hi there"
    second = mailbox_store.get("1700000000001")
    assert second is not None
    assert second.folder == INBOX
    assert second.sender_name == "carol@example.com"


def test_import_keeps_existing_rows(tmp_path: Path, mailbox_store: SqliteMailboxStore) -> None:
    mailbox_store.insert_or_replace(make_message("dup", subject="Local"))
    source = tmp_path / "mails.json"
    _write_legacy(source, [{"id": "dup", "subject": "Legacy", "body": "b"}])

    assert import_legacy_messages(mailbox_store, source) == 0
    stored = mailbox_store.get("dup")
    assert stored is not None and stored.subject == "Local"


def test_import_without_file_is_noop(tmp_path: Path, mailbox_store: SqliteMailboxStore) -> None:
    assert import_legacy_messages(mailbox_store, tmp_path / "absent.json") == 0
    assert import_legacy_messages(mailbox_store, None) == 0


def test_import_rejects_non_array(tmp_path: Path, mailbox_store: SqliteMailboxStore) -> None:
    source = tmp_path / "mails.json"
    source.write_text('{"id": "x"}', encoding="utf-8")

    with pytest.raises(StorageError):
        import_legacy_messages(mailbox_store, source)
    assert source.exists()
