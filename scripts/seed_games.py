#!/usr/bin/env python3
"""Seed the local game tables from the full IGDB catalogue."""

from __future__ import annotations

import argparse
import sys
from functools import partial
from pathlib import Path
from typing import Callable, Sequence

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import config as app_config
from db import schema as db_schema
from db import utils as db_utils
from games.store import store_game_metadata
from igdb.client import IGDBClient
from init import configure_logging
from seeding.service import SeedSummary, seed_games
from web.app_factory import build_database, build_igdb_client


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--offset",
        type=int,
        default=0,
        help="IGDB offset to start from, e.g. the next_offset of a failed run",
    )
    parser.add_argument(
        "--max-games",
        type=int,
        default=app_config.SEED_MAX_GAMES,
        help="stop after this many games have been fetched",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=app_config.SEED_DELAY_SECONDS,
        help="seconds to wait between page requests",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=app_config.IGDB_BATCH_SIZE,
        help="games per IGDB request (maximum 500)",
    )
    parser.add_argument(
        "--filters",
        default="",
        help="optional IGDB where clause, e.g. 'where category = 0'",
    )
    return parser


def run_seed(
    args: argparse.Namespace,
    *,
    db: db_utils.DatabaseEngine,
    igdb_client: IGDBClient,
    sleep: Callable[[float], None] | None = None,
) -> SeedSummary:
    """Ensure the schema exists and seed games according to ``args``."""

    db_schema.ensure_schema(db)
    fetch_page = partial(_fetch_page, igdb_client, filters=args.filters)
    return seed_games(
        fetch_page,
        partial(store_game_metadata, db),
        page_size=args.page_size,
        start_offset=args.offset,
        max_games=args.max_games,
        delay=args.delay,
        sleep=sleep,
    )


def _fetch_page(igdb_client: IGDBClient, offset: int, limit: int, *, filters: str):
    return igdb_client.fetch_game_page(offset, limit, filters=filters)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    db = build_database()
    try:
        summary = run_seed(args, db=db, igdb_client=build_igdb_client())
    finally:
        db.dispose()

    print("=" * 50)
    print(f"Seeding {summary.state}")
    print(f"   Total fetched: {summary.fetched}")
    print(f"   Total stored: {summary.stored}")
    print(f"   Failed: {summary.failed}")
    print(f"   Next offset: {summary.next_offset}")
    if summary.error:
        print(f"   Error: {summary.error}")
    print("=" * 50)
    return 0 if summary.succeeded else 1


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
