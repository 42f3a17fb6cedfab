#!/usr/bin/env python3
"""
locallogin — username/password accounts with session-cookie login.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 3000
  python main.py serve --reload
  python main.py create-user alice

Environment variables:
  SECRET_KEY    Session signing key, 32+ characters. Required unless DEBUG=true.
  DATABASE_URL  Full SQLAlchemy URL. Overrides the DB_* variables below.
  DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME
                PostgreSQL connection parameters.
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.exceptions import DuplicateUsernameError, StoreUnavailableError
from auth.passwords import PasswordHasher
from auth.service import register_user
from auth.store import UserStore
from core.config import get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_user(args: argparse.Namespace) -> int:
    """Register an account from the terminal, prompting for the password twice."""
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        print("  [!] Passwords do not match.")
        return 1

    settings = get_settings()
    store = UserStore(
        settings.sqlalchemy_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
    )
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    try:
        user_id = register_user(store, hasher, args.username, password)
    except ValueError as e:
        print(f"  [!] {e}")
        return 1
    except DuplicateUsernameError:
        print(f"  [!] User '{args.username}' already exists.")
        return 1
    except StoreUnavailableError as e:
        print(f"  [!] Could not reach the database: {e}")
        return 1
    finally:
        store.close()

    print(f"  Created user '{args.username}' (id {user_id}).")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="locallogin",
        description="Username/password accounts with session-cookie login.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 3000
  SECRET_KEY=... DB_HOST=localhost DB_NAME=app python main.py create-user alice
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the web application with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=3000, help="Port to listen on (default: 3000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Register a new account")
    create.add_argument("username", help="Username for the new account (case-sensitive)")
    create.set_defaults(func=_create_user)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
