"""User-curated game lists."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text

from db.schema import GAMES_TABLE, LISTS_TABLE, LIST_GAMES_TABLE, USER_GAMES_TABLE
from db.utils import DatabaseEngine, execute_write, insert_returning_id
from helpers import _isoformat_values

logger = logging.getLogger(__name__)

LIST_NAME_MAX_LENGTH = 100
PREVIEW_COVER_COUNT = 4


def create_list(db: DatabaseEngine, user_id: int, name: str, description: str = "") -> int:
    with db.sa_connection() as conn:
        transaction = conn.begin()
        try:
            list_id = insert_returning_id(
                conn,
                f"INSERT INTO {LISTS_TABLE} (user_id, name, description) "
                "VALUES (:user_id, :name, :description)",
                {"user_id": user_id, "name": name, "description": description},
                mysql=db.is_mysql,
            )
            transaction.commit()
        except Exception:
            transaction.rollback()
            raise
    logger.info("User %s created list %s", user_id, list_id)
    return list_id


def get_user_lists(db: DatabaseEngine, user_id: int) -> list[dict[str, Any]]:
    """Return the user's lists, newest first, with a game count and preview covers."""

    with db.sa_connection() as conn:
        rows = conn.execute(
            text(
                f"""
                SELECT l.id, l.name, l.description, COUNT(lg.game_id) AS game_count
                FROM {LISTS_TABLE} l
                LEFT JOIN {LIST_GAMES_TABLE} lg ON lg.list_id = l.id
                WHERE l.user_id = :user_id
                GROUP BY l.id, l.name, l.description
                ORDER BY l.id DESC
                """
            ),
            {"user_id": user_id},
        ).mappings().all()
        cover_rows = conn.execute(
            text(
                f"""
                SELECT lg.list_id, g.cover_url
                FROM {LIST_GAMES_TABLE} lg
                JOIN {LISTS_TABLE} l ON l.id = lg.list_id
                JOIN {GAMES_TABLE} g ON g.id = lg.game_id
                WHERE l.user_id = :user_id AND g.cover_url IS NOT NULL
                ORDER BY lg.added_at DESC, g.id DESC
                """
            ),
            {"user_id": user_id},
        ).all()

    covers: dict[int, list[str]] = {}
    for list_id, cover_url in cover_rows:
        bucket = covers.setdefault(list_id, [])
        if len(bucket) < PREVIEW_COVER_COUNT:
            bucket.append(cover_url)

    lists = []
    for row in rows:
        entry = dict(row)
        entry["game_count"] = int(entry["game_count"])
        entry["covers"] = covers.get(entry["id"], [])
        lists.append(entry)
    return lists


def get_list_by_id(db: DatabaseEngine, list_id: int) -> dict[str, Any] | None:
    """Return a list with its games and the owner's status and rating for each."""

    with db.sa_connection() as conn:
        row = (
            conn.execute(
                text(
                    f"SELECT id, user_id, name, description, created_at "
                    f"FROM {LISTS_TABLE} WHERE id = :id"
                ),
                {"id": list_id},
            )
            .mappings()
            .first()
        )
        if row is None:
            return None
        games = conn.execute(
            text(
                f"""
                SELECT g.id, g.title, g.cover_url, g.release_date,
                       ug.status, ug.personal_rating
                FROM {LIST_GAMES_TABLE} lg
                JOIN {GAMES_TABLE} g ON g.id = lg.game_id
                LEFT JOIN {USER_GAMES_TABLE} ug
                    ON ug.game_id = g.id AND ug.user_id = :user_id
                WHERE lg.list_id = :list_id
                ORDER BY lg.added_at DESC, g.id DESC
                """
            ),
            {"list_id": list_id, "user_id": row["user_id"]},
        ).mappings().all()

    details = _isoformat_values(row)
    details["games"] = [_isoformat_values(game) for game in games]
    return details


def list_owned_by(db: DatabaseEngine, list_id: int, user_id: int) -> bool:
    with db.sa_connection() as conn:
        row = conn.execute(
            text(f"SELECT id FROM {LISTS_TABLE} WHERE id = :id AND user_id = :user_id"),
            {"id": list_id, "user_id": user_id},
        ).first()
    return row is not None


def update_list(
    db: DatabaseEngine,
    list_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
) -> bool:
    """Change the name and/or description; omitted values stay as they are."""

    assignments = []
    params: dict[str, Any] = {"id": list_id}
    if name is not None:
        assignments.append("name = :name")
        params["name"] = name
    if description is not None:
        assignments.append("description = :description")
        params["description"] = description
    if not assignments:
        return False
    return (
        execute_write(
            db, f"UPDATE {LISTS_TABLE} SET {', '.join(assignments)} WHERE id = :id", params
        )
        > 0
    )


def delete_list(db: DatabaseEngine, list_id: int) -> bool:
    deleted = execute_write(db, f"DELETE FROM {LISTS_TABLE} WHERE id = :id", {"id": list_id}) > 0
    if deleted:
        logger.info("Deleted list %s", list_id)
    return deleted


def _list_game_insert_statement(mysql: bool) -> str:
    if mysql:
        return (
            f"INSERT IGNORE INTO {LIST_GAMES_TABLE} (list_id, game_id) "
            "VALUES (:list_id, :game_id)"
        )
    return (
        f"INSERT INTO {LIST_GAMES_TABLE} (list_id, game_id) "
        "VALUES (:list_id, :game_id) ON CONFLICT DO NOTHING"
    )


def add_game_to_list(db: DatabaseEngine, list_id: int, game_id: int) -> bool:
    """Add a stored game to a list. Returns ``False`` when it was already there."""

    return (
        execute_write(
            db,
            _list_game_insert_statement(db.is_mysql),
            {"list_id": list_id, "game_id": game_id},
        )
        > 0
    )


def remove_game_from_list(db: DatabaseEngine, list_id: int, game_id: int) -> bool:
    return (
        execute_write(
            db,
            f"DELETE FROM {LIST_GAMES_TABLE} WHERE list_id = :list_id AND game_id = :game_id",
            {"list_id": list_id, "game_id": game_id},
        )
        > 0
    )


__all__ = [
    "LIST_NAME_MAX_LENGTH",
    "PREVIEW_COVER_COUNT",
    "add_game_to_list",
    "create_list",
    "delete_list",
    "get_list_by_id",
    "get_user_lists",
    "list_owned_by",
    "remove_game_from_list",
    "update_list",
]
