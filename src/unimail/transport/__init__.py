"""Transport adapters for the remote IMAP and SMTP servers."""

from .imap_client import ImapConnector, ImapError, ImapSession
from .smtp_client import SmtpClient, SmtpError

__all__ = ["ImapConnector", "ImapError", "ImapSession", "SmtpClient", "SmtpError"]
