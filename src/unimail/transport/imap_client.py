"""IMAP transport adapter providing read-only INBOX access."""

from __future__ import annotations

import imaplib
import logging
import re
from collections.abc import Sequence
from email import policy
from email.parser import BytesHeaderParser
from email.utils import getaddresses, parsedate_to_datetime
from types import TracebackType

from ..core.models import EnvelopeAddress, RemoteEnvelope, RemoteMessage

LOGGER = logging.getLogger(__name__)

MAILBOX = "INBOX"
IMAP_TIMEOUT_SECONDS = 30
FETCH_ITEMS = "(UID BODY.PEEK[HEADER.FIELDS (DATE FROM TO SUBJECT)] BODY.PEEK[])"

_UID_RE = re.compile(rb"UID (\d+)")
_RESPONSE_START_RE = re.compile(rb"^\d+ \(")


class ImapError(RuntimeError):
    """Wrap low level IMAP errors, keeping the server's own wording."""


class ImapConnector:
    """Open authenticated sessions against an IMAP server.

    Every socket operation, including the wait for the server greeting, is
    bounded by ``timeout`` seconds.
    """

    def __init__(self, timeout: float = IMAP_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout

    def connect(
        self,
        host: str,
        port: int,
        use_tls: bool,
        username: str,
        password: str,
    ) -> ImapSession:
        """Connect, log in and select ``INBOX``.

        Any socket or protocol failure surfaces as :class:`ImapError` whose
        message is the underlying error text, unchanged.
        """
        connection: imaplib.IMAP4 | imaplib.IMAP4_SSL | None = None
        try:
            if use_tls:
                LOGGER.debug("Connecting to IMAP host %s:%s via SSL", host, port)
                connection = imaplib.IMAP4_SSL(host, port, timeout=self._timeout)
            else:
                LOGGER.debug("Connecting to IMAP host %s:%s without SSL", host, port)
                connection = imaplib.IMAP4(host, port, timeout=self._timeout)

            LOGGER.debug("Authenticating as %s", username)
            connection.login(username, password)
            status, data = connection.select(MAILBOX, readonly=True)
            if status != "OK":
                raise ImapError(_response_text(data) or f"Unable to select {MAILBOX}")
        except (imaplib.IMAP4.error, OSError) as exc:
            _shutdown_quietly(connection)
            raise ImapError(_error_text(exc)) from exc
        except ImapError:
            _shutdown_quietly(connection)
            raise

        LOGGER.info("Connected to IMAP host %s as %s", host, username)
        return ImapSession(connection)


class ImapSession:
    """An open connection with ``INBOX`` selected."""

    def __init__(self, connection: imaplib.IMAP4 | imaplib.IMAP4_SSL) -> None:
        """Wrap an authenticated ``imaplib`` connection."""
        self._connection: imaplib.IMAP4 | imaplib.IMAP4_SSL | None = connection

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> ImapSession:
        """Return the session itself."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Release the connection regardless of how the scope ended."""
        self.close()

    # Public API ---------------------------------------------------------------
    def list_all_identifiers(self) -> list[int]:
        """Return every UID in the mailbox in ascending order."""
        connection = self._require_connection()
        try:
            status, data = connection.uid("SEARCH", None, "ALL")  # type: ignore[arg-type]
        except (imaplib.IMAP4.error, OSError) as exc:
            raise ImapError(_error_text(exc)) from exc
        if status != "OK":
            raise ImapError(_response_text(data) or "UID SEARCH failed")

        raw_ids = data[0].split() if data and data[0] else []
        uids = sorted(int(raw) for raw in raw_ids)
        LOGGER.debug("Mailbox holds %s message(s)", len(uids))
        return uids

    def fetch_raw(self, uids: Sequence[int]) -> list[RemoteMessage]:
        """Fetch envelope headers and full source for ``uids`` in one command.

        ``BODY.PEEK`` leaves the remote ``\\Seen`` flag untouched.
        """
        if not uids:
            return []
        connection = self._require_connection()
        uid_set = ",".join(str(uid) for uid in uids)
        LOGGER.debug("Fetching %s message(s)", len(uids))
        try:
            status, data = connection.uid("FETCH", uid_set, FETCH_ITEMS)
        except (imaplib.IMAP4.error, OSError) as exc:
            raise ImapError(_error_text(exc)) from exc
        if status != "OK":
            raise ImapError(_response_text(data) or "UID FETCH failed")
        return _parse_fetch_response(data)

    def close(self) -> None:
        """Terminate the session; calling it again is a no-op."""
        if self._connection is None:
            return
        connection = self._connection
        self._connection = None
        try:
            LOGGER.debug("Closing IMAP connection")
            connection.close()
        except (imaplib.IMAP4.error, OSError):  # pragma: no cover - depends on server state
            LOGGER.debug("IMAP close raised; continuing with logout")
        finally:
            try:
                connection.logout()
            except (imaplib.IMAP4.error, OSError):  # pragma: no cover
                LOGGER.debug("IMAP logout raised; suppressing during shutdown")

    # Internal helpers ---------------------------------------------------------
    def _require_connection(self) -> imaplib.IMAP4 | imaplib.IMAP4_SSL:
        if self._connection is None:
            raise ImapError("IMAP session is closed")
        return self._connection


def _parse_fetch_response(data: Sequence[object]) -> list[RemoteMessage]:
    """Group ``imaplib`` fetch chunks into one :class:`RemoteMessage` per UID."""
    records: list[dict[str, object]] = []
    current: dict[str, object] | None = None

    for entry in data:
        if isinstance(entry, tuple) and len(entry) == 2:
            prefix, literal = entry
            if not isinstance(prefix, bytes):
                continue
            if current is None or _RESPONSE_START_RE.match(prefix):
                current = {}
                records.append(current)
            uid_match = _UID_RE.search(prefix)
            if uid_match:
                current["uid"] = int(uid_match.group(1))
            if b"HEADER.FIELDS" in prefix.upper():
                current["header"] = literal
            elif b"BODY[]" in prefix.upper():
                current["raw"] = literal
        elif isinstance(entry, bytes) and current is not None:
            uid_match = _UID_RE.search(entry)
            if uid_match and "uid" not in current:
                current["uid"] = int(uid_match.group(1))

    messages: list[RemoteMessage] = []
    for record in records:
        uid = record.get("uid")
        if not isinstance(uid, int):
            LOGGER.warning("Skipping fetch response without a UID")
            continue
        raw = record.get("raw")
        header = record.get("header")
        raw_bytes = raw if isinstance(raw, bytes) else b""
        header_bytes = header if isinstance(header, bytes) else raw_bytes
        messages.append(
            RemoteMessage(uid=uid, envelope=_parse_envelope(header_bytes), raw=raw_bytes)
        )
    return messages


def _parse_envelope(header_bytes: bytes) -> RemoteEnvelope:
    headers = BytesHeaderParser(policy=policy.default).parsebytes(header_bytes)

    subject = headers.get("Subject")
    date_value = headers.get("Date")
    parsed_date = None
    if date_value:
        try:
            parsed_date = parsedate_to_datetime(str(date_value))
        except (TypeError, ValueError):
            LOGGER.debug("Unparseable Date header: %s", date_value)

    return RemoteEnvelope(
        subject=str(subject) if subject is not None else None,
        sender=_addresses(headers.get_all("From", [])),
        recipients=_addresses(headers.get_all("To", [])),
        date=parsed_date,
    )


def _addresses(values: Sequence[object]) -> tuple[EnvelopeAddress, ...]:
    pairs = getaddresses([str(value) for value in values])
    return tuple(
        EnvelopeAddress(name=name, email=address)
        for name, address in pairs
        if name or address
    )


def _error_text(exc: BaseException) -> str:
    """Return the error text, decoding the raw server bytes ``imaplib`` passes on."""
    if exc.args and isinstance(exc.args[0], bytes):
        return exc.args[0].decode("utf-8", errors="replace")
    return str(exc)


def _response_text(data: Sequence[object] | None) -> str:
    if not data:
        return ""
    first = data[0]
    if isinstance(first, bytes):
        return first.decode("utf-8", errors="replace")
    return str(first) if first is not None else ""


def _shutdown_quietly(connection: imaplib.IMAP4 | imaplib.IMAP4_SSL | None) -> None:
    if connection is None:
        return
    try:
        connection.logout()
    except (imaplib.IMAP4.error, OSError):  # pragma: no cover - network dependent
        LOGGER.debug("IMAP logout after failed connect raised; ignoring")


__all__ = ["IMAP_TIMEOUT_SECONDS", "ImapConnector", "ImapError", "ImapSession"]
