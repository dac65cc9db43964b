"""Account rows: creation, lookup and profile updates."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text

from db.schema import USERS_TABLE
from db.utils import DatabaseEngine, execute_write, insert_returning_id
from helpers import _isoformat_values

logger = logging.getLogger(__name__)

_USER_COLUMNS = "id, username, email, password_hash, created_at, updated_at"


def _find_one(db: DatabaseEngine, where: str, params: dict[str, Any]) -> dict[str, Any] | None:
    with db.sa_connection() as conn:
        row = (
            conn.execute(text(f"SELECT {_USER_COLUMNS} FROM {USERS_TABLE} WHERE {where}"), params)
            .mappings()
            .first()
        )
    return _isoformat_values(row) if row is not None else None


def create_user(db: DatabaseEngine, username: str, email: str, password_hash: str) -> int:
    """Insert an account and return its generated id."""

    with db.sa_connection() as conn:
        transaction = conn.begin()
        try:
            user_id = insert_returning_id(
                conn,
                f"INSERT INTO {USERS_TABLE} (username, email, password_hash) "
                "VALUES (:username, :email, :password_hash)",
                {"username": username, "email": email, "password_hash": password_hash},
                mysql=db.is_mysql,
            )
            transaction.commit()
        except Exception:
            transaction.rollback()
            raise
    logger.info("Registered user %s (%s)", user_id, username)
    return user_id


def find_user_by_email(db: DatabaseEngine, email: str) -> dict[str, Any] | None:
    return _find_one(db, "email = :email", {"email": email})


def find_user_by_username(db: DatabaseEngine, username: str) -> dict[str, Any] | None:
    return _find_one(db, "username = :username", {"username": username})


def find_user_by_id(db: DatabaseEngine, user_id: int) -> dict[str, Any] | None:
    return _find_one(db, "id = :id", {"id": user_id})


def email_exists(db: DatabaseEngine, email: str) -> bool:
    return find_user_by_email(db, email) is not None


def username_exists(db: DatabaseEngine, username: str) -> bool:
    return find_user_by_username(db, username) is not None


def update_username(db: DatabaseEngine, user_id: int, username: str) -> bool:
    return bool(
        execute_write(
            db,
            f"UPDATE {USERS_TABLE} SET username = :username, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = :id",
            {"username": username, "id": user_id},
        )
    )


def update_password_hash(db: DatabaseEngine, user_id: int, password_hash: str) -> bool:
    return bool(
        execute_write(
            db,
            f"UPDATE {USERS_TABLE} SET password_hash = :password_hash, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = :id",
            {"password_hash": password_hash, "id": user_id},
        )
    )


def delete_user(db: DatabaseEngine, user_id: int) -> bool:
    """Delete an account; its collection, lists and play logs cascade with it."""

    deleted = execute_write(db, f"DELETE FROM {USERS_TABLE} WHERE id = :id", {"id": user_id}) > 0
    if deleted:
        logger.info("Deleted user %s", user_id)
    return deleted


def public_user(user: dict[str, Any], *, with_created: bool = False) -> dict[str, Any]:
    """Return the account fields safe to send to clients."""

    public = {"id": user["id"], "username": user["username"], "email": user["email"]}
    if with_created:
        public["created_at"] = user.get("created_at")
    return public


__all__ = [
    "create_user",
    "delete_user",
    "email_exists",
    "find_user_by_email",
    "find_user_by_id",
    "find_user_by_username",
    "public_user",
    "update_password_hash",
    "update_username",
    "username_exists",
]
