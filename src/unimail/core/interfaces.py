"""Protocol interfaces for decoupling components."""

from __future__ import annotations

from collections.abc import Sequence
from types import TracebackType
from typing import Protocol

from .config import AccountSettings
from .models import OutgoingMessage, ParsedMessage, RemoteMessage


class MailboxSession(Protocol):
    """An open, selected remote INBOX."""

    def __enter__(self) -> MailboxSession:
        raise NotImplementedError

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        raise NotImplementedError

    def list_all_identifiers(self) -> list[int]:
        """Return every message UID in the mailbox, ascending."""
        raise NotImplementedError

    def fetch_raw(self, uids: Sequence[int]) -> list[RemoteMessage]:
        """Fetch envelope and full source for ``uids`` in one round trip."""
        raise NotImplementedError

    def close(self) -> None:
        """Release the mailbox and the network connection."""
        raise NotImplementedError


class MailboxConnector(Protocol):
    """Opens sessions against a remote mail store such as IMAP."""

    def connect(
        self,
        host: str,
        port: int,
        use_tls: bool,
        username: str,
        password: str,
    ) -> MailboxSession:
        """Return an authenticated session with INBOX selected."""
        raise NotImplementedError


class MessageParser(Protocol):
    """Decodes raw RFC822 sources."""

    def parse(self, raw: bytes) -> ParsedMessage:
        """Return bodies and attachments or raise ``ParseError``."""
        raise NotImplementedError


class AccountSettingsProvider(Protocol):
    """Source of the configured account."""

    def load(self) -> AccountSettings | None:
        """Return the stored account or ``None`` when nothing is configured."""
        raise NotImplementedError


class MailSender(Protocol):
    """Submits outgoing mail to a remote server."""

    def send(self, account: AccountSettings, message: OutgoingMessage) -> None:
        """Deliver ``message`` or raise ``SmtpError``."""
        raise NotImplementedError


__all__ = [
    "AccountSettingsProvider",
    "MailSender",
    "MailboxConnector",
    "MailboxSession",
    "MessageParser",
]
