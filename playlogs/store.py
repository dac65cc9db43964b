"""Play session logs recorded against stored games."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import text

from db.schema import LOGS_TABLE, PLATFORMS_TABLE
from db.utils import DatabaseEngine, execute_write, insert_returning_id
from helpers import _isoformat_values

logger = logging.getLogger(__name__)

# Columns a log update may touch.
LOG_FIELDS = ("title", "platform_id", "time_played", "start_date", "end_date", "review")

_LOG_COLUMNS = ("id", "user_id", "game_id", *LOG_FIELDS, "created_at", "updated_at")


def create_log(
    db: DatabaseEngine, user_id: int, game_id: int, fields: Mapping[str, Any]
) -> int:
    """Insert a log for a stored game and return its id.

    ``fields`` holds already validated column values; ``time_played`` is in
    minutes and defaults to 0.
    """

    params = {
        "title": fields["title"],
        "user_id": user_id,
        "game_id": game_id,
        "platform_id": fields.get("platform_id"),
        "time_played": fields.get("time_played") or 0,
        "start_date": fields.get("start_date"),
        "end_date": fields.get("end_date"),
        "review": fields.get("review"),
    }
    with db.sa_connection() as conn:
        transaction = conn.begin()
        try:
            log_id = insert_returning_id(
                conn,
                f"""
                INSERT INTO {LOGS_TABLE}
                    (title, user_id, game_id, platform_id, time_played,
                     start_date, end_date, review)
                VALUES
                    (:title, :user_id, :game_id, :platform_id, :time_played,
                     :start_date, :end_date, :review)
                """,
                params,
                mysql=db.is_mysql,
            )
            transaction.commit()
        except Exception:
            transaction.rollback()
            raise
    logger.debug("User %s logged %s minutes on game %s", user_id, params["time_played"], game_id)
    return log_id


def get_logs_by_game(db: DatabaseEngine, user_id: int, game_id: int) -> list[dict[str, Any]]:
    """Return the user's logs for one game, newest first, with the platform name."""

    columns = ", ".join(f"l.{column}" for column in _LOG_COLUMNS)
    with db.sa_connection() as conn:
        rows = conn.execute(
            text(
                f"""
                SELECT {columns}, p.name AS platform_name
                FROM {LOGS_TABLE} l
                LEFT JOIN {PLATFORMS_TABLE} p ON p.id = l.platform_id
                WHERE l.user_id = :user_id AND l.game_id = :game_id
                ORDER BY l.created_at DESC, l.id DESC
                """
            ),
            {"user_id": user_id, "game_id": game_id},
        ).mappings().all()
    return [_isoformat_values(row) for row in rows]


def get_log(db: DatabaseEngine, log_id: int) -> dict[str, Any] | None:
    with db.sa_connection() as conn:
        row = (
            conn.execute(
                text(f"SELECT {', '.join(_LOG_COLUMNS)} FROM {LOGS_TABLE} WHERE id = :id"),
                {"id": log_id},
            )
            .mappings()
            .first()
        )
    return _isoformat_values(row) if row is not None else None


def update_log(db: DatabaseEngine, log_id: int, changes: Mapping[str, Any]) -> bool:
    """Apply ``changes`` to the columns named in :data:`LOG_FIELDS`.

    Keys outside that set raise :class:`ValueError`; an empty mapping is a
    no-op that returns ``False``.
    """

    unknown = set(changes) - set(LOG_FIELDS)
    if unknown:
        raise ValueError(f"unknown log fields: {sorted(unknown)}")
    if not changes:
        return False

    assignments = [f"{field} = :{field}" for field in LOG_FIELDS if field in changes]
    assignments.append("updated_at = CURRENT_TIMESTAMP")
    params = {field: changes[field] for field in LOG_FIELDS if field in changes}
    params["id"] = log_id
    return (
        execute_write(
            db, f"UPDATE {LOGS_TABLE} SET {', '.join(assignments)} WHERE id = :id", params
        )
        > 0
    )


def delete_log(db: DatabaseEngine, log_id: int) -> bool:
    return execute_write(db, f"DELETE FROM {LOGS_TABLE} WHERE id = :id", {"id": log_id}) > 0


__all__ = [
    "LOG_FIELDS",
    "create_log",
    "delete_log",
    "get_log",
    "get_logs_by_game",
    "update_log",
]
