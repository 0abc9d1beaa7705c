"""Folder lifecycle and message state transitions."""

from __future__ import annotations

import logging

from ..core.errors import NotFoundError, ValidationError
from ..core.models import (
    CUSTOM_FOLDER_PREFIX,
    SYSTEM_FOLDER_IDS,
    VIRTUAL_FOLDER_IDS,
    Folder,
    Message,
    MessagePatch,
)
from ..storage.sqlite import SqliteMailboxStore

LOGGER = logging.getLogger(__name__)


class FolderService:
    """Validate folder and message mutations before they reach storage."""

    def __init__(self, store: SqliteMailboxStore) -> None:
        self._store = store

    # Folders -------------------------------------------------------------------
    def list_folders(self) -> list[Folder]:
        return self._store.list_folders()

    def get_folder(self, folder_id: str) -> Folder:
        folder = self._store.get_folder(folder_id)
        if folder is None:
            raise NotFoundError(f"Folder '{folder_id}' not found")
        return folder

    def create_folder(self, name: str) -> Folder:
        """Create a custom folder named ``name`` with surrounding whitespace removed."""
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("Folder name must not be empty")
        return self._store.create_custom_folder(trimmed)

    def delete_folder(self, folder_id: str) -> bool:
        """Delete a custom folder, moving its messages to the inbox.

        Returns ``False`` for system ids and for ids that do not exist.
        """
        if folder_id in SYSTEM_FOLDER_IDS:
            return False
        return self._store.delete_custom_folder(folder_id)

    def is_assignable(self, folder_id: str) -> bool:
        """Return ``True`` when a message may be moved into ``folder_id``."""
        if folder_id in SYSTEM_FOLDER_IDS:
            return True
        if not folder_id.startswith(CUSTOM_FOLDER_PREFIX):
            return False
        folder = self._store.get_folder(folder_id)
        return folder is not None and not folder.is_system

    def resolve_listing_folder(self, folder_id: str | None) -> str:
        """Validate a folder id used to list messages, including virtual views."""
        if not folder_id:
            raise ValidationError("Missing folder")
        if folder_id in VIRTUAL_FOLDER_IDS or self.is_assignable(folder_id):
            return folder_id
        raise ValidationError(f"Invalid folder '{folder_id}'")

    # Messages ------------------------------------------------------------------
    def list_messages(self, folder_id: str | None) -> list[Message]:
        return self._store.list_by_folder(self.resolve_listing_folder(folder_id))

    def folder_counts(self) -> dict[str, int]:
        return self._store.folder_counts()

    def get_message(self, message_id: str) -> Message:
        message = self._store.get(message_id)
        if message is None:
            raise NotFoundError(f"Message '{message_id}' not found")
        return message

    def patch_message(self, message_id: str, patch: MessagePatch) -> Message:
        """Apply ``patch`` atomically; nothing is written when validation fails."""
        if patch.is_empty():
            raise ValidationError("Nothing to update")
        if patch.folder is not None and not self.is_assignable(patch.folder):
            raise ValidationError(f"Invalid folder '{patch.folder}'")
        updated = self._store.patch(message_id, patch)
        LOGGER.debug(
            "Patched message %s (read=%s, starred=%s, folder=%s)",
            message_id,
            patch.read,
            patch.starred,
            patch.folder,
        )
        return updated


__all__ = ["FolderService"]
