"""Core utilities for configuration, logging, and dependency wiring."""

from .config import (
    AccountSettings,
    AppSettings,
    ServerSettings,
    StorageSettings,
    SyncSettings,
    load_app_settings,
)
from .container import ServiceContainer
from .logging import configure_logging

__all__ = [
    "AccountSettings",
    "AppSettings",
    "ServerSettings",
    "ServiceContainer",
    "StorageSettings",
    "SyncSettings",
    "configure_logging",
    "load_app_settings",
]
