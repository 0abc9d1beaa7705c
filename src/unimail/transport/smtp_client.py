"""SMTP client for submitting outgoing mail with attachments."""

from __future__ import annotations

import logging
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid

from ..core.config import AccountSettings
from ..core.models import OutgoingMessage

LOGGER = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


class SmtpError(RuntimeError):
    """Raised when SMTP connection, authentication, or submission fails."""


class SmtpClient:
    """Submit :class:`OutgoingMessage` objects through the account's SMTP server.

    A connection is opened per submission. ``secure`` selects implicit TLS
    (``SMTP_SSL``); otherwise the session upgrades with STARTTLS when the
    server offers it.
    """

    def __init__(self, timeout: float = SMTP_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout

    def send(self, account: AccountSettings, message: OutgoingMessage) -> None:
        """Deliver ``message`` from ``account``.

        Raises:
            SmtpError: If connecting, authenticating or sending fails
        """
        server = account.smtp
        if not server.host:
            raise SmtpError("SMTP host not configured")

        mime_message = build_mime_message(account, message)
        LOGGER.info(
            "Submitting message to %s via %s:%d", message.to, server.host, server.port
        )
        try:
            connection = self._open(account)
            try:
                refused = connection.send_message(mime_message)
            finally:
                try:
                    connection.quit()
                except smtplib.SMTPException as exc:
                    LOGGER.warning("Error closing SMTP connection: %s", exc)
        except smtplib.SMTPAuthenticationError as exc:
            LOGGER.error("SMTP authentication failed: %s", exc)
            raise SmtpError(f"SMTP authentication failed: {exc}") from exc
        except smtplib.SMTPRecipientsRefused as exc:
            LOGGER.error("All recipients refused: %s", exc)
            raise SmtpError(f"All recipients refused: {exc}") from exc
        except smtplib.SMTPSenderRefused as exc:
            LOGGER.error("Sender refused: %s", exc)
            raise SmtpError(f"Sender refused: {exc}") from exc
        except smtplib.SMTPException as exc:
            LOGGER.error("Failed to send email: %s", exc)
            raise SmtpError(f"Failed to send email: {exc}") from exc
        except OSError as exc:
            LOGGER.error("Network error talking to SMTP server: %s", exc)
            raise SmtpError(f"Network error: {exc}") from exc

        if refused:
            LOGGER.warning("Some recipients were refused: %s", refused)
            raise SmtpError(f"Some recipients were refused: {refused}")
        LOGGER.info("Email sent to %s: %s", message.to, message.subject)

    def _open(self, account: AccountSettings) -> smtplib.SMTP:
        """Return a connected, authenticated session; closed again on failure."""
        server = account.smtp
        connection: smtplib.SMTP
        if server.secure:
            LOGGER.debug("Using SSL for SMTP connection")
            connection = smtplib.SMTP_SSL(
                server.host, server.port, timeout=self._timeout
            )
        else:
            connection = smtplib.SMTP(server.host, server.port, timeout=self._timeout)
        try:
            if not server.secure:
                connection.ehlo()
                if connection.has_extn("starttls"):
                    LOGGER.debug("Upgrading SMTP connection with STARTTLS")
                    connection.starttls()
                    connection.ehlo()
            if account.password:
                LOGGER.debug("Authenticating as %s", account.email)
                connection.login(account.email, account.password)
        except (smtplib.SMTPException, OSError):
            connection.close()
            raise
        return connection


def build_mime_message(
    account: AccountSettings, message: OutgoingMessage
) -> MIMEMultipart:
    """Build the MIME tree: text (and optional HTML) alternatives plus attachments."""
    mime_msg = MIMEMultipart("mixed")
    mime_msg["From"] = formataddr((account.display_name, account.email))
    mime_msg["To"] = message.to
    mime_msg["Subject"] = message.subject
    mime_msg["Date"] = formatdate(localtime=False)
    mime_msg["Message-ID"] = make_msgid(domain=account.email.rpartition("@")[2] or None)

    body = MIMEMultipart("alternative")
    body.attach(MIMEText(message.body, "plain", "utf-8"))
    if message.html_body:
        body.attach(MIMEText(message.html_body, "html", "utf-8"))
    mime_msg.attach(body)

    for attachment in message.attachments:
        maintype, _, subtype = attachment.content_type.partition("/")
        part = MIMEApplication(attachment.content, _subtype=subtype or "octet-stream")
        if maintype and maintype != "application":
            part.replace_header("Content-Type", attachment.content_type)
        part.add_header(
            "Content-Disposition", "attachment", filename=attachment.filename
        )
        mime_msg.attach(part)

    LOGGER.debug(
        "Built MIME message: To=%s, Subject=%s, attachments=%d",
        message.to,
        message.subject,
        len(message.attachments),
    )
    return mime_msg


__all__ = ["SmtpClient", "SmtpError", "build_mime_message"]
