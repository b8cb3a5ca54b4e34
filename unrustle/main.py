"""UnRustle command line entry point"""

import argparse
import asyncio
import os
import sys

import uvicorn
from pydantic import ValidationError

from unrustle.app import create_app
from unrustle.core.config import CONFIG_ENV_VAR, Settings, get_settings
from unrustle.core.database import DatabaseManager
from unrustle.core.exceptions import UserStoreError
from unrustle.models import SERVICES
from unrustle.repositories import PostgresUserRepository


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unrustle", description="Twitch / Destiny.gg login gateway"
    )
    parser.add_argument(
        "--config", help=f"TOML config file (default: ${CONFIG_ENV_VAR} or config.toml)"
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Run the HTTP server (default)")

    delete = subparsers.add_parser("delete-user", help="Delete a user record")
    delete.add_argument("name", help="Provider login name")
    delete.add_argument("service", choices=SERVICES, help="Provider service")

    return parser


def load_settings() -> Settings | None:
    try:
        return get_settings()
    except ValidationError as e:
        print(f"[ERROR] Invalid configuration:\n{e}", file=sys.stderr)
        return None


def serve(settings: Settings) -> int:
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
    )
    return 0


async def delete_user(settings: Settings, name: str, service: str) -> int:
    if not settings.database.url:
        print("[ERROR] No database configured, nothing to delete", file=sys.stderr)
        return 1

    db_manager = DatabaseManager(settings.database.url)
    try:
        await db_manager.connect()
    except Exception as e:
        print(f"[ERROR] Cannot connect to database: {e}", file=sys.stderr)
        return 1

    try:
        deleted = await PostgresUserRepository(db_manager.pool).delete_user(name, service)
    except UserStoreError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    finally:
        await db_manager.disconnect()

    if not deleted:
        print(f"No user {name} ({service})")
        return 1
    print(f"Deleted user {name} ({service})")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.config:
        os.environ[CONFIG_ENV_VAR] = args.config
        get_settings.cache_clear()

    settings = load_settings()
    if settings is None:
        return 1

    if args.command == "delete-user":
        return asyncio.run(delete_user(settings, args.name, args.service))
    return serve(settings)


if __name__ == "__main__":
    sys.exit(main())
