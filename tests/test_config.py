"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from unimail.core.config import AccountSettings, ServerSettings, load_app_settings


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    """Ensure each test sees a fresh settings instance."""

    load_app_settings.cache_clear()


def test_defaults_loaded_without_env_file() -> None:
    """Default values should be returned when no overrides are present."""

    settings = load_app_settings(include_environment=False)
    assert settings.storage.db_path == Path("./.data/unimail.db")
    assert settings.storage.attachments_dir == Path("./.data/attachments")
    assert settings.sync.window == 100
    assert settings.sync.timeout_seconds == 30.0
    assert settings.logging.level == "INFO"


def test_env_file_overrides(tmp_path: Path) -> None:
    """Values defined in an env file should override defaults."""

    env_file = tmp_path / "test.env"
    env_file.write_text(
        "UNIMAIL_SYNC__WINDOW=25\n"
        "UNIMAIL_STORAGE__DB_PATH=/tmp/other.db\n"
        "UNIMAIL_LOGGING__STRUCTURED=true\n"
        "UNRELATED=ignored\n",
        encoding="utf-8",
    )

    settings = load_app_settings(env_file=env_file, include_environment=False)
    assert settings.sync.window == 25
    assert settings.storage.db_path == Path("/tmp/other.db")
    assert settings.logging.structured is True


def test_environment_wins_over_env_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / "test.env"
    env_file.write_text("UNIMAIL_SYNC__WINDOW=25\n", encoding="utf-8")
    monkeypatch.setenv("UNIMAIL_SYNC__WINDOW", "7")

    settings = load_app_settings(env_file=env_file)
    assert settings.sync.window == 7


def test_empty_legacy_path_disables_import(tmp_path: Path) -> None:
    env_file = tmp_path / "test.env"
    env_file.write_text("UNIMAIL_STORAGE__LEGACY_JSON_PATH=\n", encoding="utf-8")

    settings = load_app_settings(env_file=env_file, include_environment=False)
    assert settings.storage.legacy_json_path is None


def test_account_readiness_flags() -> None:
    account = AccountSettings(email="me@example.com")
    assert not account.can_sync
    assert not account.can_send
    assert account.imap.port == 993
    assert account.smtp.port == 465

    ready = AccountSettings(
        email="me@example.com",
        password="secret",
        imap=ServerSettings(host="imap.example.com", port=993),
        smtp=ServerSettings(host="smtp.example.com", port=587, secure=False),
    )
    assert ready.can_sync
    assert ready.can_send
