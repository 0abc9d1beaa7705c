"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field


class StorageSettings(BaseModel):
    """Settings for local persistence."""

    db_path: Path = Field(
        default=Path("./.data/unimail.db"), description="SQLite database path"
    )
    attachments_dir: Path = Field(
        default=Path("./.data/attachments"),
        description="Directory holding attachment payloads",
    )
    legacy_json_path: Path | None = Field(
        default=Path("./.data/mails.json"),
        description="Legacy JSON mailbox imported once during initialisation",
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class SyncSettings(BaseModel):
    """Settings controlling the bounds of a sync run."""

    window: int = Field(
        default=100, ge=1, description="Most recent remote messages considered"
    )
    timeout_seconds: float = Field(
        default=30.0, gt=0, description="Socket timeout for IMAP connections"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)


class ServerSettings(BaseModel):
    """Host, port and TLS mode of a remote mail server."""

    host: str = ""
    port: int
    secure: bool = True


def _default_imap() -> ServerSettings:
    return ServerSettings(port=993)


def _default_smtp() -> ServerSettings:
    return ServerSettings(port=465)


class AccountSettings(BaseModel):
    """Credentials and servers of the single configured mailbox."""

    display_name: str = ""
    email: str
    password: str = ""
    imap: ServerSettings = Field(default_factory=_default_imap)
    smtp: ServerSettings = Field(default_factory=_default_smtp)

    @property
    def can_sync(self) -> bool:
        """Return ``True`` when enough is configured to reach the IMAP server."""
        return bool(self.password and self.imap.host)

    @property
    def can_send(self) -> bool:
        """Return ``True`` when enough is configured to submit over SMTP."""
        return bool(self.email and self.password and self.smtp.host)


ENV_PREFIX = "UNIMAIL_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, include_environment: bool
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(env_file, include_environment)
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AccountSettings",
    "AppSettings",
    "LoggingSettings",
    "ServerSettings",
    "StorageSettings",
    "SyncSettings",
    "load_app_settings",
]
