"""Tests for the account settings record."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from unimail.storage import AccountSettingsStore, Database


def test_load_returns_none_until_saved(database: Database) -> None:
    assert AccountSettingsStore(database).load() is None


def test_save_and_load_round_trip(database: Database) -> None:
    store = AccountSettingsStore(database)
    saved = store.save(
        {
            "email": "  me@example.com ",
            "display_name": "Me",
            "password": "secret",
            "imap": {"host": "imap.example.com"},
            "smtp": {"host": "smtp.example.com", "port": 587, "secure": False},
        }
    )

    assert saved.email == "me@example.com"
    loaded = store.load()
    assert loaded == saved
    assert loaded is not None
    assert loaded.imap.port == 993
    assert loaded.imap.secure is True
    assert loaded.smtp.port == 587
    assert loaded.smtp.secure is False


def test_save_merges_over_existing_record(database: Database) -> None:
    store = AccountSettingsStore(database)
    store.save(
        {
            "email": "me@example.com",
            "password": "secret",
            "imap": {"host": "imap.example.com", "port": 143, "secure": False},
        }
    )

    merged = store.save(
        {"email": "me@example.com", "password": None, "imap": {"port": 993}}
    )

    assert merged.password == "secret"
    assert merged.imap.host == "imap.example.com"
    assert merged.imap.port == 993
    assert merged.imap.secure is False


def test_save_requires_email(database: Database) -> None:
    with pytest.raises(PydanticValidationError):
        AccountSettingsStore(database).save({"password": "secret"})


def test_known_domain_fills_servers(database: Database) -> None:
    saved = AccountSettingsStore(database).save(
        {"email": "someone@Outlook.com", "password": "secret"}
    )

    assert saved.imap.host == "outlook.office365.com"
    assert (saved.imap.port, saved.imap.secure) == (993, True)
    assert saved.smtp.host == "smtp.office365.com"
    assert (saved.smtp.port, saved.smtp.secure) == (587, False)
    assert saved.can_sync and saved.can_send


def test_preset_keeps_explicit_values(database: Database) -> None:
    store = AccountSettingsStore(database)
    saved = store.save(
        {
            "email": "me@gmail.com",
            "password": "secret",
            "imap": {"host": "imap.internal.test", "port": 143, "secure": False},
            "smtp": {"port": 587},
        }
    )

    assert saved.imap.host == "imap.internal.test"
    assert saved.imap.port == 143
    assert saved.smtp.host == "smtp.gmail.com"
    assert saved.smtp.port == 587

    updated = store.save({"email": "me@gmail.com", "smtp": {"host": "relay.test"}})
    assert updated.smtp.host == "relay.test"


def test_unknown_domain_leaves_servers_empty(database: Database) -> None:
    saved = AccountSettingsStore(database).save({"email": "me@example.com", "password": "x"})

    assert saved.imap.host == ""
    assert saved.can_sync is False
