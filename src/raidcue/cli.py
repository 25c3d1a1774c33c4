#!/usr/bin/env python3
"""
raidcue: command-line access to the platform and reporting clients.

Usage:
    raidcue manifest --force
    raidcue pgcr 1234567890
    raidcue clan 4611686018400000000 3
    raidcue players --search Guardian
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from pydantic import BaseModel, ValidationError

from raidcue.config import Settings
from raidcue.errors import TransportFailure, user_message
from raidcue.platform import PlatformClient
from raidcue.reporting import ReportingClient
from raidcue.store import SQLiteStore


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the command line."""
    raidcue_logger = logging.getLogger("raidcue")
    if verbose:
        raidcue_logger.setLevel(logging.DEBUG)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        raidcue_logger.addHandler(handler)
    else:
        # Retries and swallowed store errors still surface
        raidcue_logger.setLevel(logging.WARNING)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


async def run_platform(args: argparse.Namespace, settings: Settings) -> Any:
    store = SQLiteStore(settings.store_path)
    try:
        async with PlatformClient.from_settings(settings, store=store) as client:
            if args.command == "manifest":
                return await client.get_manifest(force_refresh=args.force)
            if args.command == "pgcr":
                return await client.get_post_game_carnage_report(args.activity_id)
            return await client.get_groups_for_member(
                args.membership_id, args.membership_type
            )
    finally:
        await store.close()


async def run_reporting(args: argparse.Namespace, settings: Settings) -> Any:
    async with ReportingClient.from_settings(settings) as client:
        if args.search:
            return await client.search_players(args.search)
        return await client.list_players()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="raidcue",
        description="Query the game platform and reporting service",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log scheduling, retries and cache activity to stderr",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    manifest = commands.add_parser("manifest", help="Print the platform manifest")
    manifest.add_argument(
        "--force",
        action="store_true",
        help="Fetch even when the cached copy is fresh",
    )

    pgcr = commands.add_parser("pgcr", help="Print a post-game carnage report")
    pgcr.add_argument("activity_id", help="Activity instance ID")

    clan = commands.add_parser("clan", help="Print the clans a member belongs to")
    clan.add_argument("membership_id", help="Platform membership ID")
    clan.add_argument("membership_type", type=int, help="Membership type (e.g. 3 for Steam)")

    players = commands.add_parser("players", help="List or search tracked players")
    players.add_argument("--search", default=None, help="Name to search for")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the raidcue command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose)

    try:
        settings = Settings()
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    runner = run_reporting if args.command == "players" else run_platform
    try:
        result = asyncio.run(runner(args, settings))
    except TransportFailure as exc:
        print(user_message(exc), file=sys.stderr)
        return 1
    except ValueError as exc:
        # Missing API key and similar setup problems
        print(str(exc), file=sys.stderr)
        return 2

    print(json.dumps(_jsonable(result), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
