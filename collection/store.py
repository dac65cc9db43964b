"""Per-user collection entries: backlog status and personal ratings."""

from __future__ import annotations

import logging
import math
from typing import Any

from sqlalchemy import text

from db.schema import GAMES_TABLE, USER_GAMES_TABLE
from db.utils import DatabaseEngine, execute_write
from helpers import _isoformat_values

logger = logging.getLogger(__name__)

VALID_STATUSES = ("Wishlist", "Backlog", "Playing", "Completed", "Abandoned")

RATING_MIN = 0
RATING_MAX = 5

_ENTRY_COLUMNS = (
    "g.id, g.title, g.cover_url, g.release_date, "
    "ug.status, ug.personal_rating, ug.added_at, ug.updated_at"
)


def is_valid_status(value: Any) -> bool:
    return isinstance(value, str) and value in VALID_STATUSES


def is_valid_rating(value: Any) -> bool:
    """Ratings are plain numbers between 0 and 5 inclusive; booleans are not numbers here."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and RATING_MIN <= value <= RATING_MAX


def _entry_upsert_statement(mysql: bool):
    if mysql:
        return text(
            f"""
            INSERT INTO {USER_GAMES_TABLE} (user_id, game_id, status)
            VALUES (:user_id, :game_id, :status)
            ON DUPLICATE KEY UPDATE
                status = VALUES(status),
                updated_at = CURRENT_TIMESTAMP
            """
        )
    return text(
        f"""
        INSERT INTO {USER_GAMES_TABLE} (user_id, game_id, status)
        VALUES (:user_id, :game_id, :status)
        ON CONFLICT(user_id, game_id) DO UPDATE SET
            status = excluded.status,
            updated_at = CURRENT_TIMESTAMP
        """
    )


def add_game_to_collection(db: DatabaseEngine, user_id: int, game_id: int, status: str) -> None:
    """Track ``game_id`` for ``user_id`` with ``status``, replacing any earlier status.

    The game must already be stored in the catalog. A personal rating
    survives status changes.
    """

    if not is_valid_status(status):
        raise ValueError(f"invalid collection status: {status!r}")

    with db.sa_connection() as conn:
        transaction = conn.begin()
        try:
            conn.execute(
                _entry_upsert_statement(db.is_mysql),
                {"user_id": user_id, "game_id": game_id, "status": status},
            )
            transaction.commit()
        except Exception:
            transaction.rollback()
            raise
    logger.debug("User %s set game %s to %s", user_id, game_id, status)


def get_game_status(db: DatabaseEngine, user_id: int, game_id: int) -> str | None:
    with db.sa_connection() as conn:
        return conn.execute(
            text(
                f"SELECT status FROM {USER_GAMES_TABLE} "
                "WHERE user_id = :user_id AND game_id = :game_id"
            ),
            {"user_id": user_id, "game_id": game_id},
        ).scalar_one_or_none()


def remove_game_from_collection(db: DatabaseEngine, user_id: int, game_id: int) -> bool:
    """Drop the entry and its rating. Returns ``False`` when nothing was tracked."""

    return (
        execute_write(
            db,
            f"DELETE FROM {USER_GAMES_TABLE} WHERE user_id = :user_id AND game_id = :game_id",
            {"user_id": user_id, "game_id": game_id},
        )
        > 0
    )


def get_user_games(
    db: DatabaseEngine,
    user_id: int,
    status: str | None = None,
    *,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Return the user's tracked games, most recently changed first."""

    clauses = ["ug.user_id = :user_id"]
    params: dict[str, Any] = {"user_id": user_id}
    if status is not None:
        clauses.append("ug.status = :status")
        params["status"] = status
    statement = (
        f"SELECT {_ENTRY_COLUMNS} FROM {USER_GAMES_TABLE} ug "
        f"JOIN {GAMES_TABLE} g ON g.id = ug.game_id "
        f"WHERE {' AND '.join(clauses)} "
        "ORDER BY ug.updated_at DESC, g.id DESC"
    )
    if limit is not None:
        statement += f" LIMIT {max(int(limit), 1)}"

    with db.sa_connection() as conn:
        rows = conn.execute(text(statement), params).mappings().all()
    return [_isoformat_values(row) for row in rows]


def get_user_rating(db: DatabaseEngine, user_id: int, game_id: int) -> float | None:
    with db.sa_connection() as conn:
        value = conn.execute(
            text(
                f"SELECT personal_rating FROM {USER_GAMES_TABLE} "
                "WHERE user_id = :user_id AND game_id = :game_id"
            ),
            {"user_id": user_id, "game_id": game_id},
        ).scalar_one_or_none()
    return float(value) if value is not None else None


def set_user_rating(db: DatabaseEngine, user_id: int, game_id: int, rating: float | None) -> bool:
    """Store the personal rating on an existing collection entry.

    ``None`` clears the rating. Returns ``False`` when the game is not in
    the user's collection.
    """

    if rating is not None and not is_valid_rating(rating):
        raise ValueError(f"rating must be between {RATING_MIN} and {RATING_MAX}: {rating!r}")

    updated = execute_write(
        db,
        f"UPDATE {USER_GAMES_TABLE} SET personal_rating = :rating, "
        "updated_at = CURRENT_TIMESTAMP "
        "WHERE user_id = :user_id AND game_id = :game_id",
        {"rating": rating, "user_id": user_id, "game_id": game_id},
    )
    return updated > 0


def get_average_rating(db: DatabaseEngine, game_id: int) -> dict[str, Any] | None:
    """Return ``{"average", "count"}`` over every user's rating, or ``None`` when unrated."""

    with db.sa_connection() as conn:
        row = conn.execute(
            text(
                "SELECT AVG(personal_rating) AS average, COUNT(personal_rating) AS ratings "
                f"FROM {USER_GAMES_TABLE} WHERE game_id = :game_id"
            ),
            {"game_id": game_id},
        ).mappings().one()
    if not row["ratings"]:
        return None
    return {"average": round(float(row["average"]), 2), "count": int(row["ratings"])}


def get_rating_counts(db: DatabaseEngine, game_id: int) -> list[dict[str, Any]]:
    """Return how many users gave each distinct rating, lowest rating first."""

    with db.sa_connection() as conn:
        rows = conn.execute(
            text(
                "SELECT personal_rating, COUNT(*) AS votes "
                f"FROM {USER_GAMES_TABLE} "
                "WHERE game_id = :game_id AND personal_rating IS NOT NULL "
                "GROUP BY personal_rating ORDER BY personal_rating"
            ),
            {"game_id": game_id},
        ).mappings().all()
    return [
        {"personal_rating": float(row["personal_rating"]), "count": int(row["votes"])}
        for row in rows
    ]


__all__ = [
    "RATING_MAX",
    "RATING_MIN",
    "VALID_STATUSES",
    "add_game_to_collection",
    "get_average_rating",
    "get_game_status",
    "get_rating_counts",
    "get_user_games",
    "get_user_rating",
    "is_valid_rating",
    "is_valid_status",
    "remove_game_from_collection",
    "set_user_rating",
]
