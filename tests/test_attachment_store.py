"""Tests for attachment persistence."""

from __future__ import annotations

import re

import pytest

from conftest import make_message
from unimail.core.errors import NotFoundError
from unimail.storage import AttachmentStore, SqliteMailboxStore
from unimail.storage.attachments import attachment_id, safe_filename, safe_message_dirname

MESSAGE_ID = "imap-me@example.com-42"


@pytest.fixture()
def stored_message(mailbox_store: SqliteMailboxStore) -> str:
    mailbox_store.insert_or_replace(make_message(MESSAGE_ID))
    return MESSAGE_ID


def test_sanitizers() -> None:
    dirname = safe_message_dirname(MESSAGE_ID)
    assert re.fullmatch(r"imap-me_example_com-42-[0-9a-f]{8}", dirname)
    assert safe_message_dirname(MESSAGE_ID) == dirname
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("C:\\docs\\report final.pdf") == "report_final.pdf"
    assert safe_filename("résumé.txt") == "r_sum_.txt"
    assert safe_filename("") == "attachment"
    assert attachment_id(MESSAGE_ID, 3) == f"{dirname}-att-3"


def test_save_writes_file_and_row(
    attachment_store: AttachmentStore, stored_message: str
) -> None:
    record = attachment_store.save(
        stored_message, 0, "../report.pdf", "application/pdf", b"%PDF-1.4"
    )

    dirname = safe_message_dirname(stored_message)
    assert record.id == f"{dirname}-att-0"
    assert record.size == 8
    assert record.content_path.read_bytes() == b"%PDF-1.4"
    assert record.content_path.parent == attachment_store.root_dir / dirname
    assert record.content_path.name == f"{dirname}-att-0-report.pdf"
    assert record.filename == "../report.pdf"
    assert attachment_store.get(record.id) == record


def test_similar_message_ids_do_not_share_attachments(
    attachment_store: AttachmentStore, mailbox_store: SqliteMailboxStore
) -> None:
    dotted, underscored = "imap-a.b@x-1", "imap-a_b@x-1"
    for message_id in (dotted, underscored):
        mailbox_store.insert_or_replace(make_message(message_id))

    first = attachment_store.save(dotted, 0, "a.txt", "text/plain", b"dotted")
    second = attachment_store.save(underscored, 0, "a.txt", "text/plain", b"underscored")

    assert first.id != second.id
    assert first.content_path != second.content_path
    assert attachment_store.list_for_message(dotted) == [first]
    assert attachment_store.get(first.id).content_path.read_bytes() == b"dotted"


def test_save_again_overwrites(
    attachment_store: AttachmentStore, stored_message: str
) -> None:
    attachment_store.save(stored_message, 0, "a.txt", "text/plain", b"first")
    attachment_store.save(stored_message, 0, "a.txt", "text/plain", b"second!")

    records = attachment_store.list_for_message(stored_message)
    assert len(records) == 1
    assert records[0].size == 7
    assert records[0].content_path.read_bytes() == b"second!"
    leftovers = [p for p in records[0].content_path.parent.iterdir() if p.suffix == ".tmp"]
    assert leftovers == []


def test_list_is_ordered_by_ordinal(
    attachment_store: AttachmentStore, stored_message: str
) -> None:
    attachment_store.save(stored_message, 2, "c.txt", "text/plain", b"c")
    attachment_store.save(stored_message, 0, "a.txt", "text/plain", b"a")
    attachment_store.save(stored_message, 1, "b.txt", "text/plain", b"b")

    assert [r.filename for r in attachment_store.list_for_message(stored_message)] == [
        "a.txt",
        "b.txt",
        "c.txt",
    ]
    assert attachment_store.list_for_message("other") == []


def test_get_missing_file_is_not_found(
    attachment_store: AttachmentStore, stored_message: str
) -> None:
    record = attachment_store.save(stored_message, 0, "a.txt", "text/plain", b"a")
    record.content_path.unlink()

    with pytest.raises(NotFoundError):
        attachment_store.get(record.id)
    with pytest.raises(NotFoundError):
        attachment_store.get("no-such-attachment")


def test_get_by_content_id_accepts_both_forms(
    attachment_store: AttachmentStore, stored_message: str
) -> None:
    record = attachment_store.save(
        stored_message, 0, "logo.png", "image/png", b"\x89PNG", content_id="<logo@x>"
    )

    assert attachment_store.get_by_content_id(stored_message, "logo@x") == record
    assert attachment_store.get_by_content_id(stored_message, "<logo@x>") == record
    with pytest.raises(NotFoundError):
        attachment_store.get_by_content_id(stored_message, "other@x")
    with pytest.raises(NotFoundError):
        attachment_store.get_by_content_id("different-message", "logo@x")
