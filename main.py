"""Command-line interface for the userhub services."""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

import anyio
from dotenv import load_dotenv

from userhub.api import run_store_call
from userhub.application import create_database
from userhub.client import APIClientError, UsersAPIClient
from userhub.config import Settings, load_settings
from userhub.database import StoreError

logger = logging.getLogger("userhub.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="userhub user directory utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (defaults to USERHUB_CONFIG)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Create the users table in the configured store")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the API (default: PORT or 3001)",
    )

    web_parser = subparsers.add_parser("web", help="Start the dashboard frontend")
    web_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the frontend")
    web_parser.add_argument("--port", type=int, default=3000, help="Port for the frontend (default: 3000)")
    web_parser.add_argument(
        "--api-url",
        default=None,
        help="Base URL of the user API (default: USERHUB_API_URL or http://localhost:3001)",
    )

    users_parser = subparsers.add_parser("users", help="Manage users through a running API")
    users_parser.add_argument(
        "--service-url",
        default=None,
        help="Base URL of the user API (default: USERHUB_API_URL or http://localhost:3001)",
    )
    users_subparsers = users_parser.add_subparsers(dest="action", required=True)
    users_subparsers.add_parser("list", help="List users, newest first")
    add_parser = users_subparsers.add_parser("add", help="Create a user")
    add_parser.add_argument("name", help="Display name for the user")
    add_parser.add_argument("email", help="Email address for the user")
    delete_parser = users_subparsers.add_parser("delete", help="Delete a user by id")
    delete_parser.add_argument("user_id", help="Identifier of the user to delete")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "web", "init-db", "users"}

    # Global options come before the subcommand; anything else defaults to "serve".
    global_args: list[str] = []
    while args_list[:1] == ["--config"] and len(args_list) >= 2:
        global_args.extend(args_list[:2])
        args_list = args_list[2:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(global_args + args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(global_args + args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(global_args + args_list)


async def _initialise_database(settings: Settings) -> None:
    database = create_database(settings.database)
    try:
        await run_store_call(database.initialize)
    finally:
        close = getattr(database, "close", None)
        if close is not None:
            await run_store_call(close)


def _serve(settings: Settings, *, host: str, port: int | None) -> None:
    from userhub.application import create_application
    import uvicorn

    port = port or settings.port
    logger.info("Starting user API on http://%s:%s", host, port)
    uvicorn.run(create_application(settings), host=host, port=port, log_level="info")


def _serve_web(settings: Settings, *, host: str, port: int, api_url: str | None) -> None:
    from userhub.web import create_app
    import uvicorn

    api_url = api_url or settings.api_url
    logger.info("Starting dashboard on http://%s:%s (API %s)", host, port, api_url)
    uvicorn.run(create_app(api_base_url=api_url), host=host, port=port, log_level="info")


async def _run_users_command(args: argparse.Namespace, service_url: str) -> None:
    async with UsersAPIClient(service_url) as client:
        if args.action == "list":
            users = await client.list_users()
            if not users:
                print("No users are currently registered.")
                return
            print(f"{len(users)} user(s) found:")
            print(f"{'ID':>4}  {'Name':<24}  {'Email':<32}  Created")
            print("-" * 80)
            for user in users:
                created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
                print(f"{user.id:>4}  {user.name:<24}  {user.email:<32}  {created}")
        elif args.action == "add":
            user = await client.create_user(args.name, args.email)
            print(f"Created user #{user.id}: {user.name} <{user.email}>")
        elif args.action == "delete":
            message = await client.delete_user(args.user_id)
            print(message)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    load_dotenv()

    args = _parse_args(argv)
    settings = load_settings(Path(args.config) if args.config else None)

    if args.command == "serve":
        _serve(settings, host=args.host, port=args.port)
    elif args.command == "web":
        _serve_web(settings, host=args.host, port=args.port, api_url=args.api_url)
    elif args.command == "init-db":
        try:
            anyio.run(_initialise_database, settings)
        except StoreError as exc:
            raise SystemExit(f"Database initialisation failed: {exc}") from exc
        print("Database initialisation complete.")
    elif args.command == "users":
        service_url = args.service_url or settings.api_url
        try:
            anyio.run(_run_users_command, args, service_url)
        except APIClientError as exc:
            raise SystemExit(f"Request to {service_url} failed: {exc}") from exc


if __name__ == "__main__":
    main()
