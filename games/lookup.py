"""Read-side queries deciding whether catalog data is already stored locally."""

from __future__ import annotations

from typing import Any

from sqlalchemy import text

from db.schema import (
    GAMES_TABLE,
    GAME_GENRES_TABLE,
    GAME_PLATFORMS_TABLE,
    GENRES_TABLE,
    PLATFORMS_TABLE,
)
from db.utils import DatabaseEngine
from helpers import _coerce_positive_id

LOCAL_SEARCH_LIMIT = 42

_GAME_COLUMNS = "id, title, cover_url, description, release_date"


def _escape_like(value: str) -> str:
    return value.replace("!", "!!").replace("%", "!%").replace("_", "!_")


def _serialize_game_row(row: Any) -> dict[str, Any]:
    game = dict(row)
    release_date = game.get("release_date")
    if release_date is not None and hasattr(release_date, "isoformat"):
        game["release_date"] = release_date.isoformat()
    return game


def game_exists(db: DatabaseEngine, igdb_id: Any) -> bool:
    """Return ``True`` when a game row with ``igdb_id`` is stored."""

    numeric_id = _coerce_positive_id(igdb_id)
    if numeric_id is None:
        return False
    with db.sa_connection() as conn:
        row = conn.execute(
            text(f"SELECT id FROM {GAMES_TABLE} WHERE id = :id"),
            {"id": numeric_id},
        ).first()
    return row is not None


def platform_exists(db: DatabaseEngine, platform_id: Any) -> bool:
    numeric_id = _coerce_positive_id(platform_id)
    if numeric_id is None:
        return False
    with db.sa_connection() as conn:
        row = conn.execute(
            text(f"SELECT id FROM {PLATFORMS_TABLE} WHERE id = :id"),
            {"id": numeric_id},
        ).first()
    return row is not None


def search_games_in_database(
    db: DatabaseEngine, query: str, *, limit: int = LOCAL_SEARCH_LIMIT
) -> list[dict[str, Any]]:
    """Return stored games whose title contains ``query``, in storage order.

    Both sides are lowered so the match ignores case on every backend.
    """

    term = (query or "").strip()
    if not term:
        return []
    capped = max(1, min(int(limit), LOCAL_SEARCH_LIMIT))
    statement = text(
        f"SELECT {_GAME_COLUMNS} FROM {GAMES_TABLE} "
        "WHERE lower(title) LIKE lower(:pattern) ESCAPE '!' "
        f"LIMIT {capped}"
    )
    with db.sa_connection() as conn:
        rows = conn.execute(statement, {"pattern": f"%{_escape_like(term)}%"}).mappings().all()
    return [_serialize_game_row(row) for row in rows]


def get_game_by_id(db: DatabaseEngine, igdb_id: Any) -> dict[str, Any] | None:
    """Return a stored game merged with its genres and platforms."""

    numeric_id = _coerce_positive_id(igdb_id)
    if numeric_id is None:
        return None
    with db.sa_connection() as conn:
        row = (
            conn.execute(
                text(f"SELECT {_GAME_COLUMNS} FROM {GAMES_TABLE} WHERE id = :id"),
                {"id": numeric_id},
            )
            .mappings()
            .first()
        )
        if row is None:
            return None
        genres = conn.execute(
            text(
                f"""
                SELECT g.id, g.name
                FROM {GENRES_TABLE} g
                JOIN {GAME_GENRES_TABLE} gg ON g.id = gg.genre_id
                WHERE gg.game_id = :id
                ORDER BY g.id
                """
            ),
            {"id": numeric_id},
        ).mappings().all()
        platforms = conn.execute(
            text(
                f"""
                SELECT p.id, p.name
                FROM {PLATFORMS_TABLE} p
                JOIN {GAME_PLATFORMS_TABLE} gp ON p.id = gp.platform_id
                WHERE gp.game_id = :id
                ORDER BY p.id
                """
            ),
            {"id": numeric_id},
        ).mappings().all()

    game = _serialize_game_row(row)
    game["genres"] = [dict(genre) for genre in genres]
    game["platforms"] = [dict(platform) for platform in platforms]
    return game


__all__ = [
    "LOCAL_SEARCH_LIMIT",
    "game_exists",
    "get_game_by_id",
    "platform_exists",
    "search_games_in_database",
]
