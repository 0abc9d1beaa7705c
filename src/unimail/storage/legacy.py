"""One-shot import of the legacy ``mails.json`` mailbox file."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.datetime_utils import format_message_date
from ..core.errors import StorageError
from ..core.models import INBOX, SYSTEM_FOLDER_IDS, Message
from .sqlite import SqliteMailboxStore

LOGGER = logging.getLogger(__name__)


class LegacyMail(BaseModel):
    """Shape of one entry in the legacy JSON file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    sender_name: str = Field(default="", alias="from")
    sender_email: str = Field(default="", alias="fromEmail")
    recipient: str = Field(default="", alias="to")
    subject: str = ""
    body: str = ""
    html_body: str | None = Field(default=None, alias="htmlBody")
    date: str | None = None
    read: bool = False
    starred: bool = False
    folder: str = INBOX

    def to_message(self, known_folders: set[str]) -> Message:
        folder = self.folder if self.folder in known_folders else INBOX
        return Message(
            id=self.id,
            sender_name=self.sender_name or self.sender_email or "unknown",
            sender_email=self.sender_email,
            recipient=self.recipient,
            subject=self.subject,
            body=self.body,
            html_body=self.html_body,
            date=self.date or format_message_date(),
            read=self.read,
            starred=self.starred,
            folder=folder,
        )


def import_legacy_messages(store: SqliteMailboxStore, path: Path | None) -> int:
    """Import ``path`` into ``store`` once, then rename it to ``<name>.bak``.

    Entries already stored are left untouched. Entries whose folder no longer
    exists land in the inbox. Returns the number of messages inserted.
    """
    if path is None:
        return 0
    source = Path(path)
    if not source.is_file():
        return 0

    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise StorageError(f"Unable to read legacy mailbox {source}: {exc}") from exc
    if not isinstance(payload, list):
        raise StorageError(f"Legacy mailbox {source} must contain a JSON array")

    known_folders = set(SYSTEM_FOLDER_IDS)
    known_folders.update(folder.id for folder in store.list_folders())

    messages: list[Message] = []
    for index, entry in enumerate(payload):
        try:
            legacy = LegacyMail.model_validate(entry)
        except PydanticValidationError as exc:
            LOGGER.warning("Skipping legacy entry %s: %s", index, exc)
            continue
        messages.append(legacy.to_message(known_folders))

    inserted = store.upsert_if_absent(messages)
    backup = source.with_name(source.name + ".bak")
    source.replace(backup)
    LOGGER.info(
        "Imported %s of %s legacy message(s); original moved to %s",
        inserted,
        len(messages),
        backup,
    )
    return inserted


__all__ = ["LegacyMail", "import_legacy_messages"]
