#!/usr/bin/env python3
"""
CredStore -- management CLI for the authentication API.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 5000 --reload
  python main.py init-db
  python main.py list-users
  python main.py list-users --json

Environment variables (see core/config.py):
  SECRET_KEY     Token signing key, at least 32 chars. Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL, or set DB_HOST, DB_USER, DB_PASSWORD, DB_NAME
                 to connect to MySQL.
  DEBUG          "true" enables an auto-generated key and a local SQLite file.
"""

import argparse
import json
import sys
from dataclasses import asdict
from typing import Optional

from auth.errors import StorageUnavailableError
from auth.store import UserStore
from core.config import Settings, get_settings


def _open_store(settings: Settings) -> UserStore:
    return UserStore(
        settings.database_url,
        pool_size=settings.db_pool_size,
        pool_timeout=settings.db_pool_timeout,
    )


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _cmd_init_db(args: argparse.Namespace) -> int:
    """Create the users table if needed. The store's constructor does the work."""
    settings = get_settings()
    try:
        store = _open_store(settings)
    except StorageUnavailableError as e:
        print(f"  [!] Could not initialize database: {e.__cause__ or e}")
        return 1
    store.close()
    print("  [+] Database and tables initialized.")
    return 0


def _cmd_list_users(args: argparse.Namespace) -> int:
    settings = get_settings()
    try:
        store = _open_store(settings)
        try:
            users = store.list_users()
        finally:
            store.close()
    except StorageUnavailableError as e:
        print(f"  [!] Could not read users: {e.__cause__ or e}")
        return 1

    if args.json:
        print(json.dumps([asdict(u) for u in users], indent=2))
        return 0
    if not users:
        print("  No users.")
        return 0
    print(f"  {'ID':>5}  {'USERNAME':<20} {'EMAIL':<32} CREATED")
    for u in users:
        print(f"  {u.id:>5}  {u.username:<20} {u.email:<32} {u.created_at}")
    print(f"\n  {len(users)} user(s)")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credstore",
        description="CredStore -- username/password authentication API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    serve.set_defaults(func=_cmd_serve)

    init_db = sub.add_parser("init-db", help="Create the users table if it does not exist")
    init_db.set_defaults(func=_cmd_init_db)

    list_users = sub.add_parser("list-users", help="Print all users, newest first")
    list_users.add_argument("--json", action="store_true", help="Output JSON instead of a table")
    list_users.set_defaults(func=_cmd_list_users)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ValueError as e:
        # Settings validation (missing SECRET_KEY, incomplete DB config).
        print(f"  [!] Configuration error: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
