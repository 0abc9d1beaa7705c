"""Command-line entry point for Unimail."""

from __future__ import annotations

import argparse
from pathlib import Path

from unimail.bootstrap import build_container, initialize_storage
from unimail.core import AppSettings, ServiceContainer, configure_logging, load_app_settings
from unimail.core.errors import ConfigError
from unimail.ingestion import MailSyncEngine
from unimail.services import FolderService
from unimail.storage import AccountSettingsStore
from unimail.transport import ImapError


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Unimail local mailbox")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "sync", "folders", "counts"],
        help="Operation to execute.",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return the process exit code."""
    container = build_container(settings)
    try:
        initialize_storage(container, settings)
        command = args.command
        if command == "info":
            _print_info(container, settings)
            return 0
        if command == "sync":
            return _run_sync(container)
        if command == "folders":
            _print_folders(container)
            return 0
        if command == "counts":
            _print_counts(container)
            return 0
        return 2
    finally:
        container.close()


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    raise SystemExit(execute(args, settings))


def _print_info(container: ServiceContainer, settings: AppSettings) -> None:
    settings_store: AccountSettingsStore = container.resolve("settings_store")
    account = settings_store.load()
    print(f"Database path: {settings.storage.db_path}")
    print(f"Attachments directory: {settings.storage.attachments_dir}")
    if account is None:
        print("No account configured. Save one through PATCH /api/settings.")
        return
    print(f"Account: {account.email}")
    print(f"IMAP host: {account.imap.host or '-'} (sync ready: {account.can_sync})")
    print(f"SMTP host: {account.smtp.host or '-'} (send ready: {account.can_send})")


def _run_sync(container: ServiceContainer) -> int:
    """Run a synchronization cycle and report the outcome."""
    engine: MailSyncEngine = container.resolve("sync_engine")
    try:
        report = engine.sync()
    except ConfigError as exc:
        print(f"Sync not configured: {exc}")
        return 1
    except ImapError as exc:
        print(f"Sync failed: {exc}")
        return 1
    print(f"Synced {report.synced} new message(s).")
    return 0


def _print_folders(container: ServiceContainer) -> None:
    folder_service: FolderService = container.resolve("folder_service")
    folders = folder_service.list_folders()
    header = f"{'ID':<32}  {'Kind':<6}  Name"
    print(header)
    print("-" * len(header))
    for folder in folders:
        print(f"{folder.id:<32}  {folder.kind:<6}  {folder.name}")


def _print_counts(container: ServiceContainer) -> None:
    folder_service: FolderService = container.resolve("folder_service")
    for folder_id, total in folder_service.folder_counts().items():
        print(f"{folder_id:<32}  {total:>6}")


if __name__ == "__main__":
    main()
