"""Application services sitting between the HTTP layer and storage."""

from .folders import FolderService
from .outbox import MAX_ATTACHMENTS, Outbox

__all__ = ["FolderService", "MAX_ATTACHMENTS", "Outbox"]
