#!/usr/bin/env python3
"""
MediaVault -- personal media tracking backend.

Usage:
  python main.py                       serve on HOST:PORT from the environment (default 127.0.0.1:5000)
  python main.py serve --port 8080     serve on another port
  python main.py serve --reload        auto-reload on code changes (development)
  python main.py purge-tokens          run the expired-session sweep once and exit

Environment variables:
  SECRET_KEY          Token signing secret (required for auth and media routes, >= 32 chars)
  CONNECTION_STRING   SQLAlchemy database URL (default sqlite:///mediavault.db)
  PORT                Listen port (default 5000)
"""

import argparse
import logging

import uvicorn

from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("mediavault.cli")


def _serve(args: argparse.Namespace) -> None:
    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )


def _purge_tokens(args: argparse.Namespace) -> None:
    """Delete expired session tokens without starting the server.

    Useful from cron when the API runs with a long purge interval.
    """
    store = UserStore(get_settings().connection_string)
    try:
        removed = store.purge_expired_tokens()
    finally:
        store.close()
    print(f"  Removed {removed} expired session token(s).")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="mediavault",
        description="Personal media tracking backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  PORT=8080 python main.py serve
  python main.py serve --host 0.0.0.0 --port 5000
  python main.py purge-tokens
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API (default command)")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST or 127.0.0.1)")
    serve.add_argument("--port", type=int, default=None, help="Listen port (default: PORT or 5000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve.set_defaults(func=_serve)

    purge = sub.add_parser("purge-tokens", help="Delete expired session tokens and exit")
    purge.set_defaults(func=_purge_tokens)

    args = parser.parse_args()
    if args.command is None:
        args = parser.parse_args(["serve"])
    args.func(args)


if __name__ == "__main__":
    main()
