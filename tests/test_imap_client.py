"""Tests for the IMAP transport adapter."""

# pylint: disable=protected-access

from __future__ import annotations

import imaplib
import socket
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

from unimail.transport import ImapConnector, ImapError, ImapSession
from unimail.transport.imap_client import FETCH_ITEMS, IMAP_TIMEOUT_SECONDS

HEADER_101 = (
    b"Date: Fri, 24 Oct 2025 15:04:05 +0200\r\n"
    b'From: "Alice Example" <alice@example.com>\r\n'
    b"To: me@example.com\r\n"
    b"Subject: =?utf-8?q?Caf=C3=A9?=\r\n\r\n"
)
HEADER_102 = b"From: bob@example.com\r\n\r\n"


def _fetch_response() -> list[object]:
    return [
        (
            b"1 (UID 101 BODY[HEADER.FIELDS (DATE FROM TO SUBJECT)] {120}",
            HEADER_101,
        ),
        (b" BODY[] {11}", b"raw-101-src"),
        b")",
        (
            b"2 (UID 102 BODY[HEADER.FIELDS (DATE FROM TO SUBJECT)] {30}",
            HEADER_102,
        ),
        (b" BODY[] {11}", b"raw-102-src"),
        b")",
    ]


def test_list_all_identifiers_sorts_uids() -> None:
    connection = MagicMock()
    connection.uid.return_value = ("OK", [b"102 7 101"])

    session = ImapSession(connection)

    assert session.list_all_identifiers() == [7, 101, 102]
    connection.uid.assert_called_once_with("SEARCH", None, "ALL")


def test_list_all_identifiers_empty_mailbox() -> None:
    connection = MagicMock()
    connection.uid.return_value = ("OK", [b""])

    assert ImapSession(connection).list_all_identifiers() == []


def test_fetch_raw_issues_one_command_and_decodes_envelopes() -> None:
    connection = MagicMock()
    connection.uid.return_value = ("OK", _fetch_response())
    session = ImapSession(connection)

    messages = session.fetch_raw([101, 102])

    connection.uid.assert_called_once_with("FETCH", "101,102", FETCH_ITEMS)
    assert "BODY.PEEK[]" in FETCH_ITEMS
    assert [m.uid for m in messages] == [101, 102]
    assert messages[0].raw == b"raw-101-src"

    envelope = messages[0].envelope
    assert envelope.subject == "Café"
    assert envelope.sender[0].name == "Alice Example"
    assert envelope.sender[0].email == "alice@example.com"
    assert envelope.recipients[0].email == "me@example.com"
    assert envelope.date is not None
    assert envelope.date.astimezone(UTC) == datetime(2025, 10, 24, 13, 4, 5, tzinfo=UTC)

    second = messages[1].envelope
    assert second.subject is None
    assert second.recipients == ()
    assert second.date is None
    assert second.sender[0].name == ""


def test_fetch_raw_with_trailing_uid_item() -> None:
    connection = MagicMock()
    connection.uid.return_value = (
        "OK",
        [
            (b"5 (BODY[HEADER.FIELDS (DATE FROM TO SUBJECT)] {30}", HEADER_102),
            (b" BODY[] {3}", b"src"),
            b" UID 55)",
        ],
    )

    messages = ImapSession(connection).fetch_raw([55])

    assert [m.uid for m in messages] == [55]
    assert messages[0].raw == b"src"


def test_fetch_failure_raises_with_server_text() -> None:
    connection = MagicMock()
    connection.uid.return_value = ("NO", [b"[SERVERBUG] fetch exploded"])

    with pytest.raises(ImapError, match=r"\[SERVERBUG\] fetch exploded"):
        ImapSession(connection).fetch_raw([1])


def test_close_is_idempotent() -> None:
    connection = MagicMock()
    session = ImapSession(connection)

    with session:
        pass
    session.close()

    connection.close.assert_called_once_with()
    connection.logout.assert_called_once_with()
    with pytest.raises(ImapError):
        session.list_all_identifiers()


def test_connect_selects_inbox_over_plain_socket() -> None:
    connection = MagicMock()
    connection.select.return_value = ("OK", [b"3"])

    with patch("unimail.transport.imap_client.imaplib.IMAP4", return_value=connection) as factory:
        session = ImapConnector().connect("imap.test", 143, False, "me@example.com", "pw")

    factory.assert_called_once_with("imap.test", 143, timeout=IMAP_TIMEOUT_SECONDS)
    connection.login.assert_called_once_with("me@example.com", "pw")
    connection.select.assert_called_once_with("INBOX", readonly=True)
    assert isinstance(session, ImapSession)


def test_connect_wraps_login_failure_verbatim() -> None:
    connection = MagicMock()
    connection.login.side_effect = imaplib.IMAP4.error(b"[AUTHENTICATIONFAILED] Invalid credentials")

    with patch("unimail.transport.imap_client.imaplib.IMAP4_SSL", return_value=connection):
        with pytest.raises(ImapError) as excinfo:
            ImapConnector().connect("imap.test", 993, True, "me@example.com", "bad")

    assert str(excinfo.value) == "[AUTHENTICATIONFAILED] Invalid credentials"
    connection.logout.assert_called_once_with()


def test_connect_wraps_socket_errors() -> None:
    with patch(
        "unimail.transport.imap_client.imaplib.IMAP4_SSL",
        side_effect=ConnectionRefusedError(111, "Connection refused"),
    ):
        with pytest.raises(ImapError, match="Connection refused"):
            ImapConnector().connect("imap.test", 993, True, "me@example.com", "pw")


def test_connect_uses_configured_timeout() -> None:
    connection = MagicMock()
    connection.select.return_value = ("OK", [b"0"])

    with patch("unimail.transport.imap_client.imaplib.IMAP4_SSL", return_value=connection) as factory:
        ImapConnector(timeout=5).connect("imap.test", 993, True, "me@example.com", "pw")

    factory.assert_called_once_with("imap.test", 993, timeout=5)


def test_silent_server_times_out() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        port = listener.getsockname()[1]

        with pytest.raises(ImapError, match="timed out"):
            ImapConnector(timeout=0.2).connect("127.0.0.1", port, False, "me@example.com", "pw")
