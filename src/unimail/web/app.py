"""FastAPI application exposing the mailbox as a JSON API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import FastAPI, Request, status as http_status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse

from ..bootstrap import build_container, initialize_storage
from ..core import AccountSettings, AppSettings, configure_logging, load_app_settings
from ..core.errors import (
    ConfigError,
    NotFoundError,
    SentButNotStoredError,
    ValidationError,
)
from ..core.interfaces import MailboxConnector, MailSender
from ..core.models import (
    CUSTOM_FOLDER_PREFIX,
    AttachmentRecord,
    Folder,
    Message,
)
from ..core.presets import email_domain, preset_for_email
from ..ingestion import MailSyncEngine
from ..services import FolderService, Outbox
from ..storage import AccountSettingsStore, AttachmentStore
from ..transport import ImapError, SmtpError
from .schemas import (
    DraftRequest,
    FolderCreateRequest,
    MessagePatchRequest,
    SendMailRequest,
    SettingsUpdateRequest,
)

LOGGER = logging.getLogger(__name__)


def create_app(
    settings: AppSettings | None = None,
    *,
    connector: MailboxConnector | None = None,
    sender: MailSender | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``connector`` and ``sender`` replace the IMAP and SMTP transports, which
    lets tests run the full request path without a network.
    """
    app_settings = settings or load_app_settings()
    configure_logging(app_settings.logging)
    container = build_container(app_settings, connector=connector, sender=sender)
    initialize_storage(container, app_settings)

    folder_service: FolderService = container.resolve("folder_service")
    attachment_store: AttachmentStore = container.resolve("attachment_store")
    settings_store: AccountSettingsStore = container.resolve("settings_store")
    outbox: Outbox = container.resolve("outbox")
    sync_engine: MailSyncEngine = container.resolve("sync_engine")

    app = FastAPI(title="Unimail")
    app.state.container = container

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """Release the database handle on app shutdown."""
        container.close()
        LOGGER.info("Service container closed")

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return _error(http_status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(ValidationError)
    async def handle_validation(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(http_status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error(http_status.HTTP_400_BAD_REQUEST, _describe_errors(exc))

    # Sync ----------------------------------------------------------------------
    @app.post("/api/sync")
    async def trigger_sync() -> Any:
        try:
            report = await asyncio.to_thread(sync_engine.sync)
        except ConfigError as exc:
            return _error(http_status.HTTP_400_BAD_REQUEST, str(exc))
        except ImapError as exc:
            LOGGER.warning("Sync failed: %s", exc)
            return _error(http_status.HTTP_502_BAD_GATEWAY, str(exc))
        return {"synced": report.synced}

    # Messages ------------------------------------------------------------------
    @app.get("/api/mails")
    async def list_mails(folder: str | None = None) -> list[dict[str, Any]]:
        return [_serialize_message(item) for item in folder_service.list_messages(folder)]

    @app.post("/api/mails")
    async def send_mail(payload: SendMailRequest) -> Any:
        """Submit a message over SMTP and return the stored sent copy."""
        try:
            message = await asyncio.to_thread(outbox.send, payload.to_command())
        except ConfigError as exc:
            return _error(http_status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))
        except SmtpError as exc:
            return _error(http_status.HTTP_502_BAD_GATEWAY, str(exc))
        except SentButNotStoredError as exc:
            return _error(http_status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
        return _serialize_message(
            message, attachment_store.list_for_message(message.id)
        )

    @app.get("/api/mails/counts")
    async def mail_counts() -> dict[str, int]:
        return folder_service.folder_counts()

    @app.get("/api/mails/{message_id}")
    async def get_mail(message_id: str) -> dict[str, Any]:
        message = folder_service.get_message(message_id)
        return _serialize_message(
            message, attachment_store.list_for_message(message_id)
        )

    @app.patch("/api/mails/{message_id}")
    async def patch_mail(message_id: str, payload: MessagePatchRequest) -> dict[str, Any]:
        message = folder_service.patch_message(message_id, payload.to_patch())
        return _serialize_message(message)

    @app.get("/api/mails/{message_id}/attachments/inline")
    async def inline_attachment(message_id: str, cid: str | None = None) -> Any:
        """Serve an inline part referenced from HTML as ``cid:<value>``."""
        if not cid:
            return _error(http_status.HTTP_400_BAD_REQUEST, "Missing cid")
        record = attachment_store.get_by_content_id(message_id, cid)
        return FileResponse(
            record.content_path,
            media_type=record.content_type,
            filename=record.filename,
            content_disposition_type="inline",
        )

    @app.get("/api/mails/{message_id}/attachments/{attachment_id}")
    async def download_attachment(message_id: str, attachment_id: str) -> Any:
        record = attachment_store.get(attachment_id)
        if record.message_id != message_id:
            raise NotFoundError(f"Attachment '{attachment_id}' not found")
        return FileResponse(
            record.content_path,
            media_type=record.content_type,
            filename=record.filename,
        )

    # Folders -------------------------------------------------------------------
    @app.get("/api/folders")
    async def list_folders() -> list[dict[str, Any]]:
        return [_serialize_folder(folder) for folder in folder_service.list_folders()]

    @app.post("/api/folders")
    async def create_folder(payload: FolderCreateRequest) -> dict[str, Any]:
        return _serialize_folder(folder_service.create_folder(payload.name))

    @app.get("/api/folders/{folder_id}")
    async def get_folder(folder_id: str) -> dict[str, Any]:
        return _serialize_folder(folder_service.get_folder(folder_id))

    @app.delete("/api/folders/{folder_id}")
    async def delete_folder(folder_id: str) -> Any:
        if not folder_id.startswith(CUSTOM_FOLDER_PREFIX):
            return _error(
                http_status.HTTP_400_BAD_REQUEST, "Only custom folders can be deleted"
            )
        if not folder_service.delete_folder(folder_id):
            raise NotFoundError(f"Folder '{folder_id}' not found")
        return {"success": True}

    # Drafts --------------------------------------------------------------------
    @app.post("/api/drafts")
    async def save_draft(payload: DraftRequest) -> dict[str, Any]:
        return _serialize_message(outbox.save_draft(payload.to_command()))

    # Settings ------------------------------------------------------------------
    @app.get("/api/settings")
    async def get_settings() -> dict[str, Any]:
        return _serialize_settings(settings_store.load())

    @app.patch("/api/settings")
    async def update_settings(payload: SettingsUpdateRequest) -> dict[str, Any]:
        return _serialize_settings(settings_store.save(payload.to_update()))

    @app.get("/api/settings/preset")
    async def get_preset(email: str | None = None) -> Any:
        """Suggest server settings for the provider behind ``email``."""
        if not email or email_domain(email) is None:
            return _error(http_status.HTTP_400_BAD_REQUEST, "A valid email is required")
        preset = preset_for_email(email)
        if preset is None:
            return _error(http_status.HTTP_404_NOT_FOUND, "No preset for this provider")
        return {
            "name": preset.name,
            "imap": preset.imap.model_dump(),
            "smtp": preset.smtp.model_dump(),
            "hint": preset.hint,
        }

    return app


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


def _serialize_message(
    message: Message, attachments: list[AttachmentRecord] | None = None
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": message.id,
        "from": message.sender_name,
        "fromEmail": message.sender_email,
        "to": message.recipient,
        "subject": message.subject,
        "snippet": message.snippet,
        "body": message.body,
        "htmlBody": message.html_body,
        "date": message.date,
        "read": message.read,
        "starred": message.starred,
        "folder": message.folder,
    }
    if attachments is not None:
        payload["attachments"] = [
            _serialize_attachment(record) for record in attachments
        ]
    return payload


def _serialize_attachment(record: AttachmentRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "filename": record.filename,
        "contentType": record.content_type,
        "size": record.size,
        "contentId": record.content_id,
        "url": f"/api/mails/{record.message_id}/attachments/{record.id}",
    }


def _serialize_folder(folder: Folder) -> dict[str, Any]:
    return {
        "id": folder.id,
        "name": folder.name,
        "kind": folder.kind,
        "sortOrder": folder.sort_order,
    }


def _serialize_settings(account: AccountSettings | None) -> dict[str, Any]:
    if account is None:
        return {"configured": False}
    return {
        "configured": True,
        "displayName": account.display_name,
        "email": account.email,
        "hasPassword": bool(account.password),
        "imap": account.imap.model_dump(),
        "smtp": account.smtp.model_dump(),
        "canSync": account.can_sync,
        "canSend": account.can_send,
    }


__all__ = ["create_app"]
