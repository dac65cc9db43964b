"""Transactional storage of IGDB catalog records."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from sqlalchemy import text

from db.schema import (
    GAMES_TABLE,
    GAME_GENRES_TABLE,
    GAME_PLATFORMS_TABLE,
    GENRES_TABLE,
    PLATFORMS_TABLE,
)
from db.utils import DatabaseEngine
from games.lookup import game_exists
from igdb.records import CatalogRecord, NamedRef, normalize_catalog_record

logger = logging.getLogger(__name__)


def _game_upsert_statement(mysql: bool):
    """Return the game ``INSERT`` statement suited for the active SQL dialect."""

    if mysql:
        return text(
            f"""
            INSERT INTO {GAMES_TABLE}
                (id, title, cover_url, description, release_date)
            VALUES (:id, :title, :cover_url, :description, :release_date)
            ON DUPLICATE KEY UPDATE
                title = VALUES(title),
                cover_url = VALUES(cover_url),
                description = VALUES(description),
                release_date = VALUES(release_date)
            """
        )
    return text(
        f"""
        INSERT INTO {GAMES_TABLE}
            (id, title, cover_url, description, release_date)
        VALUES (:id, :title, :cover_url, :description, :release_date)
        ON CONFLICT(id) DO UPDATE SET
            title = excluded.title,
            cover_url = excluded.cover_url,
            description = excluded.description,
            release_date = excluded.release_date
        """
    )


def _reference_upsert_statement(table: str, mysql: bool):
    if mysql:
        return text(
            f"""
            INSERT INTO {table} (id, name) VALUES (:id, :name)
            ON DUPLICATE KEY UPDATE name = VALUES(name)
            """
        )
    return text(
        f"""
        INSERT INTO {table} (id, name) VALUES (:id, :name)
        ON CONFLICT(id) DO UPDATE SET name = excluded.name
        """
    )


def _link_insert_statement(table: str, column: str, mysql: bool):
    if mysql:
        return text(
            f"INSERT IGNORE INTO {table} (game_id, {column}) VALUES (:game_id, :ref_id)"
        )
    return text(
        f"""
        INSERT INTO {table} (game_id, {column}) VALUES (:game_id, :ref_id)
        ON CONFLICT DO NOTHING
        """
    )


def _storable_refs(refs: Iterable[NamedRef], *, kind: str, game_id: int) -> list[NamedRef]:
    storable: list[NamedRef] = []
    for ref in refs:
        if ref.id is None:
            logger.debug("Skipping %s without id for game %s: %r", kind, game_id, ref.name)
            continue
        storable.append(ref)
    return storable


def store_game_metadata(db: DatabaseEngine, record: CatalogRecord | Any) -> CatalogRecord:
    """Persist ``record`` with its genres and platforms in one transaction.

    The game row is written first, then each genre followed by its link
    row, then each platform followed by its link row. Any failure rolls the
    whole transaction back and is re-raised, so either every row from this
    call is visible afterwards or none is. The connection is checked out for
    this call only and returned to the pool in every case.
    """

    normalized = normalize_catalog_record(record)
    if normalized is None:
        raise ValueError(f"cannot store catalog record without a valid id: {record!r}")

    mysql = db.is_mysql
    game_sql = _game_upsert_statement(mysql)
    genre_sql = _reference_upsert_statement(GENRES_TABLE, mysql)
    platform_sql = _reference_upsert_statement(PLATFORMS_TABLE, mysql)
    genre_link_sql = _link_insert_statement(GAME_GENRES_TABLE, "genre_id", mysql)
    platform_link_sql = _link_insert_statement(GAME_PLATFORMS_TABLE, "platform_id", mysql)

    genres = _storable_refs(normalized.genres, kind="genre", game_id=normalized.id)
    platforms = _storable_refs(normalized.platforms, kind="platform", game_id=normalized.id)

    with db.sa_connection() as conn:
        transaction = conn.begin()
        try:
            conn.execute(
                game_sql,
                {
                    "id": normalized.id,
                    "title": normalized.name,
                    "cover_url": normalized.cover_url,
                    "description": normalized.summary,
                    "release_date": normalized.release_date,
                },
            )
            for genre in genres:
                conn.execute(genre_sql, {"id": genre.id, "name": genre.name})
                conn.execute(genre_link_sql, {"game_id": normalized.id, "ref_id": genre.id})
            for platform in platforms:
                conn.execute(platform_sql, {"id": platform.id, "name": platform.name})
                conn.execute(
                    platform_link_sql, {"game_id": normalized.id, "ref_id": platform.id}
                )
            transaction.commit()
        except Exception:
            transaction.rollback()
            raise

    return normalized


def upsert_platform(db: DatabaseEngine, platform_id: int, name: str) -> None:
    """Insert or rename one platform row outside of a full game store."""

    with db.sa_connection() as conn:
        transaction = conn.begin()
        try:
            conn.execute(
                _reference_upsert_statement(PLATFORMS_TABLE, db.is_mysql),
                {"id": platform_id, "name": name},
            )
            transaction.commit()
        except Exception:
            transaction.rollback()
            raise


def ensure_game_stored(
    db: DatabaseEngine,
    fetch_details: Callable[[int], CatalogRecord | None],
    igdb_id: int,
) -> bool:
    """Make sure ``igdb_id`` has a catalog row before user data points at it.

    Games missing locally are fetched through ``fetch_details`` and stored.
    Returns ``False`` when IGDB does not know the game either.
    """

    if game_exists(db, igdb_id):
        return True
    record = fetch_details(igdb_id)
    if record is None:
        return False
    store_game_metadata(db, record)
    logger.info("Stored game %s on demand", igdb_id)
    return True


__all__ = ["ensure_game_stored", "store_game_metadata", "upsert_platform"]
