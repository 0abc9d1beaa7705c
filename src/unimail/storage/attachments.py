"""Attachment payloads on disk with metadata rows in SQLite."""

from __future__ import annotations

import hashlib
import logging
import os
import re
import sqlite3
import tempfile
from pathlib import Path

from ..core.errors import NotFoundError
from ..core.models import AttachmentRecord
from .database import Database

LOGGER = logging.getLogger(__name__)

_MESSAGE_ID_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]")
_FILENAME_UNSAFE_RE = re.compile(r"[^\w.\-]", re.ASCII)

_ATTACHMENT_COLUMNS = (
    "id, message_id, ordinal, filename, content_type, size, content_id, content_path"
)


def safe_message_dirname(message_id: str) -> str:
    """Return a path-safe name for ``message_id``.

    Unsafe characters become ``_`` and a short digest of the raw id is appended,
    so ids that differ only in replaced characters stay distinct.
    """
    digest = hashlib.sha1(message_id.encode("utf-8")).hexdigest()[:8]
    return f"{_MESSAGE_ID_UNSAFE_RE.sub('_', message_id)}-{digest}"


def safe_filename(filename: str) -> str:
    """Reduce ``filename`` to a basename made of ``[A-Za-z0-9_.-]``."""
    base = os.path.basename((filename or "").replace("\\", "/"))
    cleaned = _FILENAME_UNSAFE_RE.sub("_", base)
    return cleaned or "attachment"


def attachment_id(message_id: str, ordinal: int) -> str:
    """Return the deterministic id of the ``ordinal``-th attachment of a message."""
    return f"{safe_message_dirname(message_id)}-att-{ordinal}"


def normalize_content_id(content_id: str) -> str:
    """Wrap ``content_id`` in angle brackets unless it already is."""
    value = content_id.strip()
    if value.startswith("<") and value.endswith(">"):
        return value
    return f"<{value}>"


class AttachmentStore:
    """Store attachment bytes under ``root_dir/<message>/`` and index them."""

    def __init__(self, database: Database, root_dir: Path) -> None:
        """Bind the store to the shared database and an attachments directory."""
        self._database = database
        self._root_dir = Path(root_dir)

    @property
    def root_dir(self) -> Path:
        """Return the root attachments directory."""
        return self._root_dir

    def save(
        self,
        message_id: str,
        ordinal: int,
        filename: str,
        content_type: str,
        content: bytes,
        content_id: str | None = None,
    ) -> AttachmentRecord:
        """Write ``content`` to disk and upsert its metadata row.

        Saving the same ``(message_id, ordinal)`` again overwrites both file and
        row. The file write and the row write are separate steps; a crash in
        between can leave an unreferenced file behind.
        """
        record_id = attachment_id(message_id, ordinal)
        target_dir = self._root_dir / safe_message_dirname(message_id)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{record_id}-{safe_filename(filename)}"
        _write_atomically(target, content)

        record = AttachmentRecord(
            id=record_id,
            message_id=message_id,
            ordinal=ordinal,
            filename=filename,
            content_type=content_type,
            size=len(content),
            content_id=content_id,
            content_path=target,
        )
        with self._database.transaction() as connection:
            connection.execute(
                f"INSERT OR REPLACE INTO attachments ({_ATTACHMENT_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.message_id,
                    record.ordinal,
                    record.filename,
                    record.content_type,
                    record.size,
                    record.content_id,
                    str(record.content_path),
                ),
            )
        LOGGER.debug(
            "Saved attachment %s (%s bytes) for message %s",
            record.id,
            record.size,
            message_id,
        )
        return record

    def list_for_message(self, message_id: str) -> list[AttachmentRecord]:
        """Return attachment metadata for ``message_id`` in ordinal order."""
        rows = self._database.fetch_all(
            f"SELECT {_ATTACHMENT_COLUMNS} FROM attachments "
            "WHERE message_id = ? ORDER BY ordinal ASC",
            (message_id,),
        )
        return [_row_to_record(row) for row in rows]

    def get(self, record_id: str) -> AttachmentRecord:
        """Return the attachment, treating a missing backing file as not found."""
        row = self._database.fetch_one(
            f"SELECT {_ATTACHMENT_COLUMNS} FROM attachments WHERE id = ?",
            (record_id,),
        )
        return _require_readable(row, f"Attachment '{record_id}' not found")

    def get_by_content_id(self, message_id: str, content_id: str) -> AttachmentRecord:
        """Resolve an inline part by Content-ID, with or without angle brackets."""
        normalized = normalize_content_id(content_id)
        row = self._database.fetch_one(
            f"SELECT {_ATTACHMENT_COLUMNS} FROM attachments "
            "WHERE message_id = ? AND (content_id = ? OR content_id = ?) "
            "ORDER BY ordinal ASC LIMIT 1",
            (message_id, content_id, normalized),
        )
        return _require_readable(
            row, f"Inline part '{content_id}' not found for message '{message_id}'"
        )


def _write_atomically(target: Path, content: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(
        prefix=target.name + ".", suffix=".tmp", dir=str(target.parent)
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def _require_readable(row: sqlite3.Row | None, message: str) -> AttachmentRecord:
    if row is None:
        raise NotFoundError(message)
    record = _row_to_record(row)
    if not record.content_path.is_file():
        LOGGER.warning(
            "Attachment %s has no backing file at %s", record.id, record.content_path
        )
        raise NotFoundError(message)
    return record


def _row_to_record(row: sqlite3.Row) -> AttachmentRecord:
    return AttachmentRecord(
        id=row["id"],
        message_id=row["message_id"],
        ordinal=row["ordinal"],
        filename=row["filename"],
        content_type=row["content_type"],
        size=row["size"],
        content_id=row["content_id"],
        content_path=Path(row["content_path"]),
    )


__all__ = [
    "AttachmentStore",
    "attachment_id",
    "normalize_content_id",
    "safe_filename",
    "safe_message_dirname",
]
