"""SQLite-backed mailbox store: messages, folders and their counts."""

from __future__ import annotations

import logging
import secrets
import sqlite3
from collections.abc import Iterable

from ..core.datetime_utils import timestamp_millis
from ..core.errors import NotFoundError
from ..core.models import (
    CUSTOM_FOLDER_PREFIX,
    INBOX,
    SYSTEM_FOLDER_IDS,
    VIRTUAL_FOLDER_IDS,
    Folder,
    Message,
    MessagePatch,
)
from .database import Database

LOGGER = logging.getLogger(__name__)

_MESSAGE_COLUMNS = """
    id,
    sender_name,
    sender_email,
    recipient,
    subject,
    snippet,
    body,
    html_body,
    date,
    read,
    starred,
    folder_id
"""
_UPSERT_ASSIGNMENTS = ", ".join(
    f"{column}=excluded.{column}"
    for column in (
        "sender_name",
        "sender_email",
        "recipient",
        "subject",
        "snippet",
        "body",
        "html_body",
        "date",
        "read",
        "starred",
        "folder_id",
    )
)


class SqliteMailboxStore:
    """Persist messages and folders using the shared :class:`Database`."""

    def __init__(self, database: Database) -> None:
        """Bind the store to an initialised database handle."""
        self._database = database

    # Messages ------------------------------------------------------------------
    def list_by_folder(self, folder_id: str) -> list[Message]:
        """Return messages in ``folder_id``, newest first.

        The virtual ``starred``/``important`` ids ignore folder membership and
        return every starred message instead.
        """
        if folder_id in VIRTUAL_FOLDER_IDS:
            rows = self._database.fetch_all(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages "
                "WHERE starred = 1 ORDER BY date DESC, id DESC"
            )
        else:
            rows = self._database.fetch_all(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages "
                "WHERE folder_id = ? ORDER BY date DESC, id DESC",
                (folder_id,),
            )
        return [_row_to_message(row) for row in rows]

    def folder_counts(self) -> dict[str, int]:
        """Return message counts keyed by folder id, including virtual views."""
        counts: dict[str, int] = {folder_id: 0 for folder_id in SYSTEM_FOLDER_IDS}
        for row in self._database.fetch_all(
            "SELECT id FROM folders WHERE kind = 'custom'"
        ):
            counts[row["id"]] = 0
        for row in self._database.fetch_all(
            "SELECT folder_id, COUNT(*) AS total FROM messages GROUP BY folder_id"
        ):
            counts[row["folder_id"]] = row["total"]
        starred_row = self._database.fetch_one(
            "SELECT COUNT(*) AS total FROM messages WHERE starred = 1"
        )
        starred_total = starred_row["total"] if starred_row is not None else 0
        for virtual_id in VIRTUAL_FOLDER_IDS:
            counts[virtual_id] = starred_total
        return counts

    def get(self, message_id: str) -> Message | None:
        """Retrieve a stored message."""
        row = self._database.fetch_one(
            f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE id = ?",
            (message_id,),
        )
        return _row_to_message(row) if row is not None else None

    def known_ids(self) -> set[str]:
        """Return a snapshot of every stored message id."""
        return {row["id"] for row in self._database.fetch_all("SELECT id FROM messages")}

    def upsert_if_absent(self, messages: Iterable[Message]) -> int:
        """Insert messages whose id is not stored yet; never overwrite.

        Returns the number of rows actually inserted.
        """
        inserted = 0
        with self._database.transaction() as connection:
            for message in messages:
                cursor = connection.execute(
                    f"INSERT OR IGNORE INTO messages ({_MESSAGE_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    _message_parameters(message),
                )
                inserted += cursor.rowcount
        LOGGER.debug("Inserted %s new message(s)", inserted)
        return inserted

    def insert_or_replace(self, message: Message) -> None:
        """Store ``message``, overwriting any existing row with the same id.

        Updates in place so attachment rows referencing the message survive.
        """
        LOGGER.debug("Storing message %s in folder %s", message.id, message.folder)
        with self._database.transaction() as connection:
            connection.execute(
                f"INSERT INTO messages ({_MESSAGE_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                f"ON CONFLICT(id) DO UPDATE SET {_UPSERT_ASSIGNMENTS}",
                _message_parameters(message),
            )

    def patch(self, message_id: str, patch: MessagePatch) -> Message:
        """Apply the provided fields of ``patch`` in one statement.

        Folder validity is the caller's responsibility; the foreign key on
        ``folder_id`` still rejects unknown folders.
        """
        assignments: list[str] = []
        parameters: list[object] = []
        if patch.read is not None:
            assignments.append("read = ?")
            parameters.append(1 if patch.read else 0)
        if patch.starred is not None:
            assignments.append("starred = ?")
            parameters.append(1 if patch.starred else 0)
        if patch.folder is not None:
            assignments.append("folder_id = ?")
            parameters.append(patch.folder)

        with self._database.transaction() as connection:
            if assignments:
                cursor = connection.execute(
                    f"UPDATE messages SET {', '.join(assignments)} WHERE id = ?",
                    (*parameters, message_id),
                )
                found = cursor.rowcount > 0
            else:
                found = (
                    connection.execute(
                        "SELECT 1 FROM messages WHERE id = ?", (message_id,)
                    ).fetchone()
                    is not None
                )
            if not found:
                raise NotFoundError(f"Message '{message_id}' not found")
            row = connection.execute(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE id = ?",
                (message_id,),
            ).fetchone()
        return _row_to_message(row)

    # Folders -------------------------------------------------------------------
    def list_folders(self) -> list[Folder]:
        """Return system folders first, then custom folders by order and name."""
        rows = self._database.fetch_all(
            """
            SELECT id, name, kind, sort_order
            FROM folders
            ORDER BY
                CASE kind WHEN 'system' THEN 0 ELSE 1 END,
                sort_order ASC,
                name ASC
            """
        )
        return [_row_to_folder(row) for row in rows]

    def get_folder(self, folder_id: str) -> Folder | None:
        """Return the folder with ``folder_id`` if it exists."""
        row = self._database.fetch_one(
            "SELECT id, name, kind, sort_order FROM folders WHERE id = ?",
            (folder_id,),
        )
        return _row_to_folder(row) if row is not None else None

    def create_custom_folder(self, name: str) -> Folder:
        """Insert a custom folder placed after every existing custom folder."""
        folder_id = (
            f"{CUSTOM_FOLDER_PREFIX}{timestamp_millis()}-{secrets.token_hex(4)}"
        )
        with self._database.transaction() as connection:
            row = connection.execute(
                "SELECT COALESCE(MAX(sort_order), 0) AS highest "
                "FROM folders WHERE kind = 'custom'"
            ).fetchone()
            sort_order = row["highest"] + 1
            connection.execute(
                "INSERT INTO folders (id, name, kind, sort_order) "
                "VALUES (?, ?, 'custom', ?)",
                (folder_id, name, sort_order),
            )
        LOGGER.info("Created custom folder %s (%s)", folder_id, name)
        return Folder(id=folder_id, name=name, kind="custom", sort_order=sort_order)

    def delete_custom_folder(self, folder_id: str) -> bool:
        """Move the folder's messages to the inbox and drop the folder row.

        Both statements share one transaction, so no reader sees a message
        pointing at a removed folder. Returns ``False`` for system or unknown ids.
        """
        if folder_id in SYSTEM_FOLDER_IDS:
            return False
        with self._database.transaction() as connection:
            exists = connection.execute(
                "SELECT 1 FROM folders WHERE id = ? AND kind = 'custom'",
                (folder_id,),
            ).fetchone()
            if exists is None:
                return False
            moved = connection.execute(
                "UPDATE messages SET folder_id = ? WHERE folder_id = ?",
                (INBOX, folder_id),
            ).rowcount
            connection.execute(
                "DELETE FROM folders WHERE id = ? AND kind = 'custom'", (folder_id,)
            )
        LOGGER.info(
            "Deleted custom folder %s; moved %s message(s) to %s",
            folder_id,
            moved,
            INBOX,
        )
        return True


def _message_parameters(message: Message) -> tuple[object, ...]:
    return (
        message.id,
        message.sender_name,
        message.sender_email,
        message.recipient,
        message.subject,
        message.snippet,
        message.body,
        message.html_body,
        message.date,
        1 if message.read else 0,
        1 if message.starred else 0,
        message.folder,
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        sender_name=row["sender_name"],
        sender_email=row["sender_email"],
        recipient=row["recipient"],
        subject=row["subject"],
        body=row["body"],
        html_body=row["html_body"],
        date=row["date"],
        read=bool(row["read"]),
        starred=bool(row["starred"]),
        folder=row["folder_id"],
    )


def _row_to_folder(row: sqlite3.Row) -> Folder:
    return Folder(
        id=row["id"],
        name=row["name"],
        kind=row["kind"],
        sort_order=row["sort_order"],
    )


__all__ = ["SqliteMailboxStore"]
