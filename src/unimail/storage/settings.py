"""Single-row persistence of the configured mail account."""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any

from ..core.config import AccountSettings, ServerSettings
from ..core.presets import preset_for_email
from .database import Database

LOGGER = logging.getLogger(__name__)

_ROW_ID = 1
_DEFAULT_PORTS = {"imap": 993, "smtp": 465}


class AccountSettingsStore:
    """Load and merge-save the account record kept in ``account_settings``."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def load(self) -> AccountSettings | None:
        """Return the stored account, or ``None`` until an email is saved."""
        row = self._database.fetch_one(
            "SELECT * FROM account_settings WHERE id = ?", (_ROW_ID,)
        )
        if row is None or not row["email"]:
            return None
        return _row_to_settings(row)

    def save(self, update: dict[str, Any]) -> AccountSettings:
        """Merge ``update`` over the stored record and persist the result.

        ``update`` uses the :class:`AccountSettings` field names; nested
        ``imap``/``smtp`` mappings may be partial. ``email`` is required.
        A server block left without a host is filled from the provider preset
        of the email domain, keeping any port or TLS flag given explicitly.
        """
        existing = self.load()
        merged: dict[str, Any] = existing.model_dump() if existing else {}
        for key, value in update.items():
            if value is None:
                continue
            if key in ("imap", "smtp") and isinstance(value, dict):
                server = dict(merged.get(key) or {"port": _DEFAULT_PORTS[key]})
                server.update({k: v for k, v in value.items() if v is not None})
                merged[key] = server
            else:
                merged[key] = value
        if isinstance(merged.get("email"), str):
            merged["email"] = merged["email"].strip()
        _apply_preset(merged, update)
        settings = AccountSettings.model_validate(merged)

        with self._database.transaction() as connection:
            connection.execute(
                """
                INSERT INTO account_settings (
                    id,
                    display_name,
                    email,
                    password,
                    imap_host,
                    imap_port,
                    imap_secure,
                    smtp_host,
                    smtp_port,
                    smtp_secure,
                    updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    display_name=excluded.display_name,
                    email=excluded.email,
                    password=excluded.password,
                    imap_host=excluded.imap_host,
                    imap_port=excluded.imap_port,
                    imap_secure=excluded.imap_secure,
                    smtp_host=excluded.smtp_host,
                    smtp_port=excluded.smtp_port,
                    smtp_secure=excluded.smtp_secure,
                    updated_at=excluded.updated_at
                """,
                (
                    _ROW_ID,
                    settings.display_name,
                    settings.email,
                    settings.password,
                    settings.imap.host,
                    settings.imap.port,
                    1 if settings.imap.secure else 0,
                    settings.smtp.host,
                    settings.smtp.port,
                    1 if settings.smtp.secure else 0,
                    datetime.now(UTC).isoformat(),
                ),
            )
        LOGGER.info("Saved account settings for %s", settings.email)
        return settings


def _apply_preset(merged: dict[str, Any], update: dict[str, Any]) -> None:
    email = merged.get("email")
    preset = preset_for_email(email) if isinstance(email, str) else None
    if preset is None:
        return
    for key in ("imap", "smtp"):
        server = merged.get(key) or {}
        if server.get("host"):
            continue
        explicit = update.get(key) or {}
        filled = getattr(preset, key).model_dump()
        filled.update(
            {k: v for k, v in explicit.items() if v is not None and k != "host"}
        )
        merged[key] = filled
        LOGGER.info("Using %s %s preset for %s", preset.name, key.upper(), email)


def _row_to_settings(row: sqlite3.Row) -> AccountSettings:
    return AccountSettings(
        display_name=row["display_name"] or "",
        email=row["email"].strip(),
        password=row["password"] or "",
        imap=ServerSettings(
            host=row["imap_host"] or "",
            port=row["imap_port"] or 993,
            secure=bool(row["imap_secure"]),
        ),
        smtp=ServerSettings(
            host=row["smtp_host"] or "",
            port=row["smtp_port"] or 465,
            secure=bool(row["smtp_secure"]),
        ),
    )


__all__ = ["AccountSettingsStore"]
