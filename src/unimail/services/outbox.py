"""Send and draft-save paths for locally authored mail."""

from __future__ import annotations

import logging
from dataclasses import replace

from ..core.config import AccountSettings
from ..core.datetime_utils import format_message_date, timestamp_millis
from ..core.errors import ConfigError, SentButNotStoredError, ValidationError
from ..core.interfaces import AccountSettingsProvider, MailSender
from ..core.models import DRAFTS, SENT, DraftCommand, Message, OutgoingMessage
from ..ingestion.text import MAX_TEXT_BODY, cap_html
from ..storage.attachments import AttachmentStore
from ..storage.sqlite import SqliteMailboxStore

LOGGER = logging.getLogger(__name__)

MAX_ATTACHMENTS = 20
LOCAL_SENDER_NAME = "me"
LOCAL_SENDER_EMAIL = "me@unimail.app"


class Outbox:
    """Deliver outgoing mail over SMTP and keep local ``sent``/``drafts`` copies."""

    def __init__(
        self,
        mailbox_store: SqliteMailboxStore,
        attachment_store: AttachmentStore,
        settings_provider: AccountSettingsProvider,
        sender: MailSender,
    ) -> None:
        self._mailbox_store = mailbox_store
        self._attachment_store = attachment_store
        self._settings_provider = settings_provider
        self._sender = sender

    def send(self, message: OutgoingMessage) -> Message:
        """Submit ``message`` and store the sent copy.

        Raises:
            ValidationError: If the recipient is missing or too many attachments
            ConfigError: If email, password or SMTP host are not configured
            SmtpError: If the server rejects the submission; nothing is stored
            SentButNotStoredError: If delivery succeeded but the copy was not saved
        """
        outgoing = replace(
            message,
            to=message.to.strip(),
            subject=message.subject.strip(),
            body=message.body.strip(),
        )
        if not outgoing.to:
            raise ValidationError("Missing recipient")
        if len(outgoing.attachments) > MAX_ATTACHMENTS:
            raise ValidationError(
                f"At most {MAX_ATTACHMENTS} attachments can be sent at once"
            )

        account = self._settings_provider.load()
        if account is None or not account.can_send:
            raise ConfigError(
                "Sending is not configured: set the account email, SMTP host and password"
            )

        self._sender.send(account, outgoing)

        sent_copy = Message(
            id=self._next_local_id("sent"),
            sender_name=account.display_name or LOCAL_SENDER_NAME,
            sender_email=account.email,
            recipient=outgoing.to,
            subject=outgoing.subject,
            body=outgoing.body[:MAX_TEXT_BODY],
            html_body=cap_html(outgoing.html_body),
            date=format_message_date(),
            read=True,
            starred=False,
            folder=SENT,
        )
        try:
            self._mailbox_store.insert_or_replace(sent_copy)
            for ordinal, attachment in enumerate(outgoing.attachments):
                self._attachment_store.save(
                    sent_copy.id,
                    ordinal,
                    attachment.filename,
                    attachment.content_type,
                    attachment.content,
                )
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.error(
                "Message to %s was delivered but the sent copy could not be stored: %s",
                outgoing.to,
                exc,
                exc_info=True,
            )
            raise SentButNotStoredError(
                "The message was sent but could not be saved locally"
            ) from exc
        LOGGER.info("Stored sent copy %s", sent_copy.id)
        return sent_copy

    def save_draft(self, command: DraftCommand) -> Message:
        """Rewrite an existing draft in place or create a new one."""
        now = format_message_date()
        if command.id:
            existing = self._mailbox_store.get(command.id)
            if existing is not None:
                updated = replace(
                    existing,
                    recipient=command.to,
                    subject=command.subject,
                    body=command.body[:MAX_TEXT_BODY],
                    date=now,
                )
                self._mailbox_store.insert_or_replace(updated)
                LOGGER.debug("Updated draft %s", updated.id)
                return updated

        account = self._settings_provider.load()
        draft = Message(
            id=self._next_local_id("draft"),
            sender_name=_local_sender_name(account),
            sender_email=account.email if account else LOCAL_SENDER_EMAIL,
            recipient=command.to,
            subject=command.subject,
            body=command.body[:MAX_TEXT_BODY],
            date=now,
            read=True,
            starred=False,
            folder=DRAFTS,
        )
        self._mailbox_store.insert_or_replace(draft)
        LOGGER.debug("Created draft %s", draft.id)
        return draft

    def _next_local_id(self, prefix: str) -> str:
        millis = timestamp_millis()
        candidate = f"{prefix}-{millis}"
        while self._mailbox_store.get(candidate) is not None:
            millis += 1
            candidate = f"{prefix}-{millis}"
        return candidate


def _local_sender_name(account: AccountSettings | None) -> str:
    if account is None:
        return LOCAL_SENDER_NAME
    return account.display_name or LOCAL_SENDER_NAME


__all__ = ["MAX_ATTACHMENTS", "Outbox"]
