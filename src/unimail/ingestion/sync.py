"""Mail synchronization orchestration logic."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from ..core.config import AccountSettings
from ..core.datetime_utils import format_message_date
from ..core.errors import ConfigError, ParseError
from ..core.interfaces import AccountSettingsProvider, MailboxConnector, MessageParser
from ..core.models import (
    INBOX,
    Message,
    ParsedAttachment,
    RemoteMessage,
    SyncReport,
)
from ..storage.attachments import AttachmentStore
from ..storage.sqlite import SqliteMailboxStore
from .parser import DEFAULT_CONTENT_TYPE
from .text import UNPARSEABLE_BODY, cap_html, derive_plain_body

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW = 100
NO_SUBJECT = "(no subject)"
UNKNOWN_SENDER = "unknown"


def derive_message_id(account_email: str, uid: int) -> str:
    """Return the deterministic local id of remote message ``uid``."""
    return f"imap-{account_email}-{uid}"


@dataclass(slots=True)
class _StagedAttachments:
    message_id: str
    attachments: tuple[ParsedAttachment, ...]


class MailSyncEngine:
    """Pull the most recent INBOX messages and store the ones not seen yet."""

    def __init__(
        self,
        connector: MailboxConnector,
        mailbox_store: SqliteMailboxStore,
        attachment_store: AttachmentStore,
        parser: MessageParser,
        settings_provider: AccountSettingsProvider,
        *,
        window: int = DEFAULT_WINDOW,
    ) -> None:
        # pylint: disable=too-many-arguments
        """Initialise the engine with its transport, stores and parser."""
        if window <= 0:
            raise ValueError("window must be positive")
        self._connector = connector
        self._mailbox_store = mailbox_store
        self._attachment_store = attachment_store
        self._parser = parser
        self._settings_provider = settings_provider
        self._window = window
        self._lock = threading.Lock()

    def sync(self) -> SyncReport:
        """Execute one synchronization run and report how many messages were added.

        Runs are serialized: a call made while another run is in progress waits
        for it and then performs its own pass.

        Raises:
            ConfigError: If no account, password or IMAP host is configured
            ImapError: If the server cannot be reached or rejects the session
        """
        with self._lock:
            return self._run()

    def _run(self) -> SyncReport:
        account = self._settings_provider.load()
        if account is None or not account.can_sync:
            raise ConfigError(
                "Configure the account email, IMAP host and password before syncing"
            )

        LOGGER.info(
            "Starting sync for %s via %s:%s",
            account.email,
            account.imap.host,
            account.imap.port,
        )
        session = self._connector.connect(
            account.imap.host,
            account.imap.port,
            account.imap.secure,
            account.email,
            account.password,
        )

        batch: list[Message] = []
        staged: list[_StagedAttachments] = []
        with session:
            known_ids = self._mailbox_store.known_ids()
            uids = session.list_all_identifiers()
            window = uids[-self._window :]
            if not window:
                LOGGER.info("Remote mailbox is empty; nothing to sync")
                return SyncReport(synced=0)

            for remote in session.fetch_raw(window):
                message_id = derive_message_id(account.email, remote.uid)
                if message_id in known_ids:
                    LOGGER.debug("Skipping known message %s", message_id)
                    continue
                message, attachments = self._build_message(account, message_id, remote)
                batch.append(message)
                known_ids.add(message_id)
                if attachments:
                    staged.append(_StagedAttachments(message_id, attachments))

        if not batch:
            LOGGER.info("Sync complete: no new messages")
            return SyncReport(synced=0)

        inserted = self._mailbox_store.upsert_if_absent(batch)
        saved, failed = self._save_attachments(staged)
        LOGGER.info(
            "Sync complete: %s new message(s), %s attachment(s) saved, %s failed",
            inserted,
            saved,
            failed,
        )
        return SyncReport(synced=inserted)

    def _build_message(
        self, account: AccountSettings, message_id: str, remote: RemoteMessage
    ) -> tuple[Message, tuple[ParsedAttachment, ...]]:
        envelope = remote.envelope
        html_body: str | None = None
        attachments: tuple[ParsedAttachment, ...] = ()
        try:
            parsed = self._parser.parse(remote.raw)
        except ParseError as exc:
            LOGGER.warning("Unable to parse UID %s: %s", remote.uid, exc)
            body = UNPARSEABLE_BODY
        else:
            body = derive_plain_body(parsed.text, parsed.html)
            html_body = cap_html(parsed.html)
            attachments = parsed.attachments

        sender = envelope.sender[0] if envelope.sender else None
        sender_email = sender.email if sender else ""
        sender_name = (sender.name if sender else "") or sender_email or UNKNOWN_SENDER
        recipient = envelope.recipients[0].email if envelope.recipients else ""

        LOGGER.debug("Prepared message %s from %s", message_id, sender_email)
        message = Message(
            id=message_id,
            sender_name=sender_name,
            sender_email=sender_email,
            recipient=recipient or account.email,
            subject=envelope.subject or NO_SUBJECT,
            body=body,
            html_body=html_body,
            date=format_message_date(envelope.date),
            read=False,
            starred=False,
            folder=INBOX,
        )
        return message, attachments

    def _save_attachments(self, staged: list[_StagedAttachments]) -> tuple[int, int]:
        saved = 0
        failed = 0
        for entry in staged:
            for ordinal, attachment in enumerate(entry.attachments):
                try:
                    self._attachment_store.save(
                        entry.message_id,
                        ordinal,
                        attachment.filename,
                        attachment.content_type or DEFAULT_CONTENT_TYPE,
                        attachment.content,
                        attachment.content_id,
                    )
                    saved += 1
                except Exception as exc:  # pylint: disable=broad-except
                    failed += 1
                    LOGGER.error(
                        "Failed to save attachment %s of %s (%s): %s",
                        ordinal,
                        entry.message_id,
                        attachment.filename,
                        exc,
                        exc_info=True,
                    )
        return saved, failed


__all__ = ["DEFAULT_WINDOW", "MailSyncEngine", "derive_message_id"]
