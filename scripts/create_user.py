from __future__ import annotations

import argparse
import sys
from pathlib import Path

import anyio

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userhub.api import run_store_call
from userhub.application import create_database
from userhub.config import load_settings
from userhub.database import StoreError


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Insert a user directly into the configured store")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Email address for the user")
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to a YAML settings file (defaults to USERHUB_CONFIG)",
    )
    return parser.parse_args()


async def _create(name: str, email: str, config_path: str | None):
    settings = load_settings(Path(config_path) if config_path else None)
    database = create_database(settings.database)
    try:
        await run_store_call(database.initialize)
        return await run_store_call(database.create_user, name, email)
    finally:
        close = getattr(database, "close", None)
        if close is not None:
            await run_store_call(close)


def main() -> int:
    args = parse_args()

    try:
        user = anyio.run(_create, args.name, args.email, args.config_path)
    except StoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user #{user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
