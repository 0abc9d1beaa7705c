"""Utilities for parsing raw RFC822 messages into bodies and attachments."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from email import policy
from email.message import EmailMessage, Message
from email.parser import BytesParser

from ..core.errors import ParseError
from ..core.models import ParsedAttachment, ParsedMessage

LOGGER = logging.getLogger(__name__)

_BODY_TYPES = ("text/plain", "text/html")
_ATTACHED_MESSAGE = "message/rfc822"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
ATTACHED_MESSAGE_FILENAME = "message.eml"


class EmailParser:
    """Split raw email payloads into text, HTML and attachment parts."""

    def __init__(self) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)

    def parse(self, raw: bytes) -> ParsedMessage:
        """Parse ``raw`` or raise :class:`ParseError`.

        A source that is empty or yields no header fields at all is treated as
        unparseable rather than as a message with an empty body.
        """
        if not raw or not raw.strip():
            raise ParseError("Empty message source")
        try:
            message = self._parser.parsebytes(raw)
            if not message.keys():
                raise ParseError("Message source carries no header fields")
            text, html = _extract_bodies(message)
            attachments = tuple(_collect_attachments(message))
        except ParseError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            raise ParseError(f"Failed to parse message: {exc}") from exc
        return ParsedMessage(text=text, html=html, attachments=attachments)


def _is_body_part(part: Message) -> bool:
    return (
        part.get_content_type() in _BODY_TYPES
        and part.get_content_disposition() != "attachment"
        and not part.get_filename()
    )


def _leaf_parts(message: Message) -> Iterable[Message]:
    """Yield leaf parts; an attached message counts as one leaf."""
    if not message.is_multipart():
        yield message
        return
    for part in message.get_payload():
        if part.get_content_type() == _ATTACHED_MESSAGE:
            yield part
        else:
            yield from _leaf_parts(part)


def _decode_text(part: Message) -> str | None:
    try:
        content = part.get_content()  # type: ignore[attr-defined]
    except (LookupError, UnicodeError):
        payload = part.get_payload(decode=True)
        if not isinstance(payload, bytes):
            return None
        content = payload.decode("utf-8", errors="replace")
    return content if isinstance(content, str) else None


def _collapse_chunks(chunks: Iterable[str], separator: str) -> str | None:
    filtered_chunks = [chunk for chunk in chunks if chunk]
    if not filtered_chunks:
        return None
    return separator.join(filtered_chunks)


def _extract_bodies(message: EmailMessage) -> tuple[str | None, str | None]:
    plain_chunks: list[str] = []
    html_chunks: list[str] = []

    for part in _leaf_parts(message):
        if not _is_body_part(part):
            continue
        content = _decode_text(part)
        if content is None:
            continue
        if part.get_content_type() == "text/plain":
            plain_chunks.append(content.strip())
        else:
            html_chunks.append(content.strip())

    return _collapse_chunks(plain_chunks, "\n\n"), _collapse_chunks(html_chunks, "\n")


def _collect_attachments(message: EmailMessage) -> Iterable[ParsedAttachment]:
    for part in _leaf_parts(message):
        if _is_body_part(part):
            continue
        content_id = part.get("Content-ID")
        yield ParsedAttachment(
            filename=part.get_filename() or _fallback_filename(part),
            content_type=part.get_content_type() or DEFAULT_CONTENT_TYPE,
            content=_attachment_bytes(part),
            content_id=str(content_id).strip() if content_id else None,
        )


def _fallback_filename(part: Message) -> str:
    if part.get_content_type() == _ATTACHED_MESSAGE:
        return ATTACHED_MESSAGE_FILENAME
    return part.get_content_subtype() or "attachment"


def _attachment_bytes(part: Message) -> bytes:
    if part.get_content_type() == _ATTACHED_MESSAGE:
        inner = part.get_payload()
        if isinstance(inner, list) and inner:
            return inner[0].as_bytes()
        return b""
    payload = part.get_payload(decode=True)
    return payload if isinstance(payload, bytes) else b""


__all__ = ["ATTACHED_MESSAGE_FILENAME", "EmailParser"]
