"""Explicitly owned SQLite handle with schema initialisation."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from types import TracebackType
from typing import Any

from ..core.config import StorageSettings
from ..core.errors import StorageError
from ..core.models import SYSTEM_FOLDER_IDS

LOGGER = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent / "schema"

_SYSTEM_FOLDER_NAMES: dict[str, str] = {
    "inbox": "Inbox",
    "sent": "Sent",
    "drafts": "Drafts",
    "trash": "Trash",
    "spam": "Spam",
}


class Database:
    """Own a single SQLite connection shared by every store.

    The connection is opened with ``check_same_thread=False`` and guarded by a
    re-entrant lock, so request handlers and the sync engine can share it.
    Every mutation goes through :meth:`transaction`.
    """

    def __init__(self, settings: StorageSettings) -> None:
        """Open the database file, creating parent directories as needed."""
        self._settings = settings
        db_path = Path(settings.db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._connection = sqlite3.connect(db_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        with self._connection:
            self._connection.execute("PRAGMA foreign_keys = ON")
            self._connection.execute("PRAGMA journal_mode = WAL")
        self._initialized = False

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> Database:
        """Enter context manager scope."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure the connection is closed when exiting context manager."""
        self.close()

    # Lifecycle -----------------------------------------------------------------
    def initialize(self) -> None:
        """Apply schema scripts and seed system folders; safe to call repeatedly."""
        with self._lock:
            for script_path in sorted(SCHEMA_DIR.glob("*.sql")):
                LOGGER.debug("Applying schema script %s", script_path.name)
                script = script_path.read_text(encoding="utf-8")
                try:
                    self._connection.executescript(script)
                except sqlite3.Error as exc:
                    raise StorageError(
                        f"Failed to apply schema script {script_path.name}: {exc}"
                    ) from exc
            self._seed_system_folders()
            self._initialized = True
        LOGGER.info("Database ready at %s", self._settings.db_path)

    @property
    def initialized(self) -> bool:
        return self._initialized

    def close(self) -> None:
        """Close the underlying SQLite connection."""
        with self._lock:
            self._connection.close()

    # Query helpers -------------------------------------------------------------
    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection inside a single commit-or-rollback transaction."""
        with self._lock:
            try:
                with self._connection:
                    yield self._connection
            except sqlite3.Error as exc:
                LOGGER.error("Database transaction failed: %s", exc, exc_info=True)
                raise StorageError(f"Database error: {exc}") from exc

    def fetch_all(self, query: str, parameters: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Run a read query and return every row."""
        with self._lock:
            try:
                return self._connection.execute(query, tuple(parameters)).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"Database error: {exc}") from exc

    def fetch_one(
        self, query: str, parameters: Sequence[Any] = ()
    ) -> sqlite3.Row | None:
        """Run a read query and return the first row, if any."""
        with self._lock:
            try:
                return self._connection.execute(query, tuple(parameters)).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"Database error: {exc}") from exc

    # Internal helpers ----------------------------------------------------------
    def _seed_system_folders(self) -> None:
        with self.transaction() as connection:
            for sort_order, folder_id in enumerate(SYSTEM_FOLDER_IDS):
                connection.execute(
                    """
                    INSERT OR IGNORE INTO folders (id, name, kind, sort_order)
                    VALUES (?, ?, 'system', ?)
                    """,
                    (folder_id, _SYSTEM_FOLDER_NAMES[folder_id], sort_order),
                )


__all__ = ["Database", "SCHEMA_DIR"]
