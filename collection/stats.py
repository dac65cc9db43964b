"""Aggregates over user collections: dashboard, profile stats and trending games."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import text

from collection.store import VALID_STATUSES, get_user_games
from db.schema import (
    GAMES_TABLE,
    GAME_GENRES_TABLE,
    GENRES_TABLE,
    LISTS_TABLE,
    LOGS_TABLE,
    USER_GAMES_TABLE,
)
from db.utils import DatabaseEngine
from helpers import _isoformat_values
from lists.store import get_user_lists

TRENDING_WINDOW_DAYS = 30
TRENDING_LIMIT = 12
TOP_GENRE_COUNT = 5

# Dashboard sections: response key, status, number of games.
DASHBOARD_SECTIONS = (
    ("currentlyPlaying", "Playing", 4),
    ("backlog", "Backlog", 8),
    ("wishlist", "Wishlist", 8),
    ("completed", "Completed", 8),
)


def get_user_stats(db: DatabaseEngine, user_id: int) -> dict[str, Any]:
    """Count the user's games per status and average their personal ratings."""

    with db.sa_connection() as conn:
        status_rows = conn.execute(
            text(
                f"SELECT status, COUNT(*) AS entries FROM {USER_GAMES_TABLE} "
                "WHERE user_id = :user_id GROUP BY status"
            ),
            {"user_id": user_id},
        ).all()
        average = conn.execute(
            text(
                f"SELECT AVG(personal_rating) FROM {USER_GAMES_TABLE} "
                "WHERE user_id = :user_id"
            ),
            {"user_id": user_id},
        ).scalar()

    counts = {status: int(count) for status, count in status_rows}
    stats: dict[str, Any] = {"total": sum(counts.values())}
    for status in VALID_STATUSES:
        stats[status.lower()] = counts.get(status, 0)
    stats["averageRating"] = round(float(average), 2) if average is not None else None
    return stats


def get_profile_stats(db: DatabaseEngine, user_id: int) -> dict[str, Any]:
    """Return :func:`get_user_stats` plus rating, list, play time and genre totals."""

    stats = get_user_stats(db, user_id)
    params = {"user_id": user_id}
    with db.sa_connection() as conn:
        rated = conn.execute(
            text(
                f"SELECT COUNT(personal_rating) FROM {USER_GAMES_TABLE} "
                "WHERE user_id = :user_id"
            ),
            params,
        ).scalar()
        list_count = conn.execute(
            text(f"SELECT COUNT(*) FROM {LISTS_TABLE} WHERE user_id = :user_id"), params
        ).scalar()
        log_row = conn.execute(
            text(
                f"SELECT COUNT(*) AS logs, COALESCE(SUM(time_played), 0) AS minutes "
                f"FROM {LOGS_TABLE} WHERE user_id = :user_id"
            ),
            params,
        ).mappings().one()
        genres = conn.execute(
            text(
                f"""
                SELECT ge.id, ge.name, COUNT(*) AS genre_count
                FROM {USER_GAMES_TABLE} ug
                JOIN {GAME_GENRES_TABLE} gg ON gg.game_id = ug.game_id
                JOIN {GENRES_TABLE} ge ON ge.id = gg.genre_id
                WHERE ug.user_id = :user_id
                GROUP BY ge.id, ge.name
                ORDER BY genre_count DESC, ge.name ASC
                LIMIT {TOP_GENRE_COUNT}
                """
            ),
            params,
        ).mappings().all()

    stats.update(
        {
            "ratedGames": int(rated or 0),
            "lists": int(list_count or 0),
            "logs": int(log_row["logs"]),
            "timePlayed": int(log_row["minutes"]),
            "topGenres": [
                {"id": row["id"], "name": row["name"], "count": int(row["genre_count"])}
                for row in genres
            ],
        }
    )
    return stats


def get_trending_games(
    db: DatabaseEngine,
    *,
    days: int = TRENDING_WINDOW_DAYS,
    limit: int = TRENDING_LIMIT,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Return the games most users added or updated within the last ``days`` days.

    Each game carries ``trackers``, the number of such users. Ties go to the
    lower game id.
    """

    current = now or datetime.now(timezone.utc)
    cutoff = (current - timedelta(days=days)).strftime("%Y-%m-%d %H:%M:%S")
    with db.sa_connection() as conn:
        rows = conn.execute(
            text(
                f"""
                SELECT g.id, g.title, g.cover_url, g.release_date,
                       COUNT(ug.user_id) AS trackers
                FROM {USER_GAMES_TABLE} ug
                JOIN {GAMES_TABLE} g ON g.id = ug.game_id
                WHERE ug.updated_at >= :cutoff
                GROUP BY g.id, g.title, g.cover_url, g.release_date
                ORDER BY trackers DESC, g.id ASC
                LIMIT {max(int(limit), 1)}
                """
            ),
            {"cutoff": cutoff},
        ).mappings().all()

    games = []
    for row in rows:
        game = _isoformat_values(row)
        game["trackers"] = int(game["trackers"])
        games.append(game)
    return games


def get_dashboard(db: DatabaseEngine, user_id: int) -> dict[str, Any]:
    """Collect the stats, per-status game previews and lists shown on the dashboard."""

    dashboard: dict[str, Any] = {"stats": get_user_stats(db, user_id)}
    for key, status, limit in DASHBOARD_SECTIONS:
        dashboard[key] = get_user_games(db, user_id, status, limit=limit)
    dashboard["lists"] = get_user_lists(db, user_id)
    return dashboard


__all__ = [
    "DASHBOARD_SECTIONS",
    "TRENDING_LIMIT",
    "TRENDING_WINDOW_DAYS",
    "get_dashboard",
    "get_profile_stats",
    "get_trending_games",
    "get_user_stats",
]
