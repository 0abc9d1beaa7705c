"""Core domain models used across the application."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

INBOX = "inbox"
SENT = "sent"
DRAFTS = "drafts"
TRASH = "trash"
SPAM = "spam"

SYSTEM_FOLDER_IDS: tuple[str, ...] = (INBOX, SENT, DRAFTS, TRASH, SPAM)
VIRTUAL_FOLDER_IDS: tuple[str, ...] = ("starred", "important")
CUSTOM_FOLDER_PREFIX = "custom-"

SNIPPET_LENGTH = 80
_WHITESPACE_RE = re.compile(r"\s+")


def make_snippet(body: str) -> str:
    """Return the list preview for ``body``: 80 characters, whitespace collapsed."""
    return _WHITESPACE_RE.sub(" ", body[:SNIPPET_LENGTH])


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class Message:
    """A stored mail item; ``snippet`` is always derived from ``body``."""

    id: str
    sender_name: str
    sender_email: str
    recipient: str
    subject: str
    body: str
    date: str
    folder: str
    html_body: str | None = None
    read: bool = False
    starred: bool = False
    snippet: str = field(init=False)

    def __post_init__(self) -> None:
        self.snippet = make_snippet(self.body)


@dataclass(slots=True)
class AttachmentRecord:
    """Metadata describing a stored attachment; bytes live at ``content_path``."""

    id: str
    message_id: str
    ordinal: int
    filename: str
    content_type: str
    size: int
    content_id: str | None
    content_path: Path


@dataclass(slots=True)
class Folder:
    """A system or custom bucket for messages."""

    id: str
    name: str
    kind: str
    sort_order: int

    @property
    def is_system(self) -> bool:
        return self.kind == "system"


@dataclass(slots=True)
class MessagePatch:
    """Partial update of a message's mutable state."""

    read: bool | None = None
    starred: bool | None = None
    folder: str | None = None

    def is_empty(self) -> bool:
        return self.read is None and self.starred is None and self.folder is None


@dataclass(frozen=True, slots=True)
class EnvelopeAddress:
    """A single mailbox from an envelope address list."""

    name: str
    email: str


@dataclass(frozen=True, slots=True)
class RemoteEnvelope:
    """Envelope fields reported by the IMAP server for a message."""

    subject: str | None
    sender: tuple[EnvelopeAddress, ...]
    recipients: tuple[EnvelopeAddress, ...]
    date: datetime | None


@dataclass(slots=True)
class RemoteMessage:
    """Raw IMAP payload paired with its UID and envelope."""

    uid: int
    envelope: RemoteEnvelope
    raw: bytes


@dataclass(slots=True)
class ParsedAttachment:
    """A binary MIME part extracted from a message."""

    filename: str
    content_type: str
    content: bytes
    content_id: str | None = None


@dataclass(slots=True)
class ParsedMessage:
    """Textual bodies and attachments decoded from a raw source."""

    text: str | None
    html: str | None
    attachments: tuple[ParsedAttachment, ...] = ()


@dataclass(slots=True)
class SyncReport:
    """Outcome summary for a sync run."""

    synced: int


@dataclass(frozen=True, slots=True)
class OutgoingAttachment:
    """Attachment submitted with a message being sent."""

    filename: str
    content_type: str
    content: bytes


@dataclass(frozen=True, slots=True)
class OutgoingMessage:
    """Validated command to send a new message."""

    to: str
    subject: str
    body: str
    html_body: str | None = None
    attachments: tuple[OutgoingAttachment, ...] = ()


@dataclass(frozen=True, slots=True)
class DraftCommand:
    """Validated command to save (or re-save) a draft."""

    to: str
    subject: str
    body: str
    id: str | None = None


__all__ = [
    "AttachmentRecord",
    "CUSTOM_FOLDER_PREFIX",
    "DRAFTS",
    "DraftCommand",
    "EnvelopeAddress",
    "Folder",
    "INBOX",
    "Message",
    "MessagePatch",
    "OutgoingAttachment",
    "OutgoingMessage",
    "ParsedAttachment",
    "ParsedMessage",
    "RemoteEnvelope",
    "RemoteMessage",
    "SENT",
    "SPAM",
    "SYSTEM_FOLDER_IDS",
    "SyncReport",
    "TRASH",
    "VIRTUAL_FOLDER_IDS",
    "make_snippet",
]
