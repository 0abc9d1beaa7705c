"""Request bodies accepted by the JSON API."""

from __future__ import annotations

import base64
import binascii
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
)

from ..core.models import DraftCommand, MessagePatch, OutgoingAttachment, OutgoingMessage


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MessagePatchRequest(_RequestModel):
    read: StrictBool | None = None
    starred: StrictBool | None = None
    folder: str | None = None

    def to_patch(self) -> MessagePatch:
        return MessagePatch(read=self.read, starred=self.starred, folder=self.folder)


class AttachmentPayload(_RequestModel):
    """One attachment submitted with an outgoing message; content is base64."""

    filename: str
    content_type: str = Field(
        default="application/octet-stream",
        validation_alias=AliasChoices("contentType", "content_type"),
    )
    content: bytes = Field(
        validation_alias=AliasChoices("content", "contentBase64", "content_base64")
    )

    @field_validator("content", mode="before")
    @classmethod
    def _decode_content(cls, value: Any) -> bytes:
        if isinstance(value, bytes):
            value = value.decode("ascii", errors="strict")
        if not isinstance(value, str):
            raise ValueError("content must be a base64 string")
        try:
            return base64.b64decode(value, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("content is not valid base64") from exc

    @field_validator("content_type", mode="before")
    @classmethod
    def _default_content_type(cls, value: Any) -> Any:
        return value or "application/octet-stream"

    def to_attachment(self) -> OutgoingAttachment:
        return OutgoingAttachment(
            filename=self.filename,
            content_type=self.content_type,
            content=self.content,
        )


class SendMailRequest(_RequestModel):
    to: str
    subject: str
    body: str
    html_body: str | None = Field(
        default=None, validation_alias=AliasChoices("htmlBody", "html_body")
    )
    attachments: list[AttachmentPayload] = Field(default_factory=list)

    def to_command(self) -> OutgoingMessage:
        return OutgoingMessage(
            to=self.to,
            subject=self.subject,
            body=self.body,
            html_body=self.html_body,
            attachments=tuple(item.to_attachment() for item in self.attachments),
        )


class FolderCreateRequest(_RequestModel):
    name: str = ""


class DraftRequest(_RequestModel):
    to: str = ""
    subject: str = ""
    body: str = ""
    id: str | None = None

    def to_command(self) -> DraftCommand:
        return DraftCommand(to=self.to, subject=self.subject, body=self.body, id=self.id)


class ServerUpdate(_RequestModel):
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    secure: bool | None = None


class SettingsUpdateRequest(_RequestModel):
    """Partial account update; omitted fields keep their stored values.

    An explicit empty ``password`` clears the stored one.
    """

    email: str
    display_name: str | None = Field(
        default=None, validation_alias=AliasChoices("displayName", "display_name")
    )
    password: str | None = None
    imap: ServerUpdate | None = None
    smtp: ServerUpdate | None = None

    @field_validator("email")
    @classmethod
    def _require_email(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("email is required")
        return trimmed

    def to_update(self) -> dict[str, Any]:
        update: dict[str, Any] = {
            "email": self.email,
            "display_name": self.display_name,
            "password": self.password,
        }
        if self.imap is not None:
            update["imap"] = self.imap.model_dump()
        if self.smtp is not None:
            update["smtp"] = self.smtp.model_dump()
        return update


__all__ = [
    "AttachmentPayload",
    "DraftRequest",
    "FolderCreateRequest",
    "MessagePatchRequest",
    "SendMailRequest",
    "ServerUpdate",
    "SettingsUpdateRequest",
]
