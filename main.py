#!/usr/bin/env python3
"""
PopCam Record Store - Main Entry Point

Runs the API server or one-off maintenance jobs against the cloud ledger.

Usage:
    python main.py serve --reload
    python main.py backfill --user user_2abc
    python main.py backfill --user user_2abc --email someone@example.com
    python main.py sync --user user_2abc
    python main.py cleanup
    python main.py storage
"""

import argparse
import asyncio
import logging
import sys

from src.core.config import AppConfig
from src.core.errors import NotConfiguredError, RecordStorageError
from src.core.file_verifier import StorageUsage
from src.core.storage import R2Storage
from src.db.engine import create_session_factory
from src.services.backfill import backfill_ledger
from src.services.container import build_services
from src.services.ledger_client import CloudLedgerClient


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        description="Local-first generation record store with cloud reconciliation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --port 8000 --reload
  %(prog)s backfill --user user_2abc
  %(prog)s sync --user user_2abc --verbose
  %(prog)s cleanup
        """
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    backfill = commands.add_parser(
        "backfill",
        help="Index stored objects that are missing a ledger row",
    )
    backfill.add_argument("--user", "-u", type=str, required=True, help="Owner id to backfill")
    backfill.add_argument(
        "--email",
        type=str,
        help="Create the ledger user with this email first if it does not exist",
    )

    sync = commands.add_parser("sync", help="Pull ledger entries into the local record store")
    sync.add_argument("--user", "-u", type=str, required=True, help="Owner id to sync")

    commands.add_parser("cleanup", help="Delete media files no stored record references")
    commands.add_parser("storage", help="Show on-device media usage")

    return parser


async def run_backfill(config: AppConfig, owner_id: str, email: str | None) -> int:
    storage = R2Storage.from_config(config.storage)
    engine, factory = create_session_factory(config.ledger)
    try:
        ledger = CloudLedgerClient(factory)
        if email:
            await ledger.create_user(owner_id, email, config.ledger.default_credits)
        return await backfill_ledger(storage, ledger, owner_id)
    finally:
        await engine.dispose()


async def run_sync(config: AppConfig, owner_id: str) -> int:
    engine, factory = create_session_factory(config.ledger)
    try:
        services = build_services(config, factory)
        inserted = await services.reconciler.sync_from_cloud(owner_id)
        await services.background.drain()
        return inserted
    finally:
        await engine.dispose()


async def run_cleanup(config: AppConfig) -> int:
    services = build_services(config)
    return await services.cache.cleanup_orphaned_files()


async def run_storage_info(config: AppConfig) -> StorageUsage:
    services = build_services(config)
    return await services.cache.storage_info()


def main():
    """Main entry point."""
    parser = create_argument_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "serve":
        import uvicorn

        uvicorn.run("src.api.app:app", host=args.host, port=args.port, reload=args.reload)
        return 0

    config = AppConfig()

    try:
        if args.command == "backfill":
            added = asyncio.run(run_backfill(config, args.user, args.email))
            print(f"✓ Backfilled {added} record(s) for {args.user}")
        elif args.command == "cleanup":
            removed = asyncio.run(run_cleanup(config))
            print(f"✓ Removed {removed} orphaned media file(s) from {config.records.media_dir}")
        elif args.command == "storage":
            usage = asyncio.run(run_storage_info(config))
            print(f"{config.records.media_dir}: {usage.total_files} file(s), {usage.formatted_size}")
        else:
            inserted = asyncio.run(run_sync(config, args.user))
            print(f"✓ Synced {inserted} record(s) for {args.user}")
    except (NotConfiguredError, RecordStorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
