"""Table definitions for the game catalog and the per-user library tables."""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.engine import Connection

from db.utils import MYSQL_DIALECTS, DatabaseEngine

GAMES_TABLE = "games"
GENRES_TABLE = "genres"
PLATFORMS_TABLE = "platforms"
GAME_GENRES_TABLE = "game_genres"
GAME_PLATFORMS_TABLE = "game_platforms"

USERS_TABLE = "users"
USER_GAMES_TABLE = "user_games"
LISTS_TABLE = "lists"
LIST_GAMES_TABLE = "list_games"
LOGS_TABLE = "logs"

CATALOG_TABLES = (
    GAMES_TABLE,
    GENRES_TABLE,
    PLATFORMS_TABLE,
    GAME_GENRES_TABLE,
    GAME_PLATFORMS_TABLE,
)

LIBRARY_TABLES = (
    USERS_TABLE,
    USER_GAMES_TABLE,
    LISTS_TABLE,
    LIST_GAMES_TABLE,
    LOGS_TABLE,
)


def _table_suffix(dialect: str | None) -> str:
    if dialect in MYSQL_DIALECTS:
        return " ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"
    return ""


def _serial_primary_key(dialect: str | None) -> str:
    if dialect in MYSQL_DIALECTS:
        return "BIGINT AUTO_INCREMENT PRIMARY KEY"
    if dialect == "postgresql":
        return "BIGSERIAL PRIMARY KEY"
    return "INTEGER PRIMARY KEY AUTOINCREMENT"


def _table_definitions(dialect: str | None) -> list[str]:
    text_type = "TEXT"
    name_type = "VARCHAR(255)"
    suffix = _table_suffix(dialect)

    return [
        f"""
        CREATE TABLE IF NOT EXISTS {GAMES_TABLE} (
            id BIGINT PRIMARY KEY,
            title {name_type} NOT NULL,
            cover_url {text_type},
            description {text_type},
            release_date DATE
        ){suffix}
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {GENRES_TABLE} (
            id BIGINT PRIMARY KEY,
            name {name_type} NOT NULL
        ){suffix}
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {PLATFORMS_TABLE} (
            id BIGINT PRIMARY KEY,
            name {name_type} NOT NULL
        ){suffix}
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {GAME_GENRES_TABLE} (
            game_id BIGINT NOT NULL,
            genre_id BIGINT NOT NULL,
            PRIMARY KEY (game_id, genre_id),
            FOREIGN KEY (game_id) REFERENCES {GAMES_TABLE} (id) ON DELETE CASCADE,
            FOREIGN KEY (genre_id) REFERENCES {GENRES_TABLE} (id) ON DELETE CASCADE
        ){suffix}
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {GAME_PLATFORMS_TABLE} (
            game_id BIGINT NOT NULL,
            platform_id BIGINT NOT NULL,
            PRIMARY KEY (game_id, platform_id),
            FOREIGN KEY (game_id) REFERENCES {GAMES_TABLE} (id) ON DELETE CASCADE,
            FOREIGN KEY (platform_id) REFERENCES {PLATFORMS_TABLE} (id) ON DELETE CASCADE
        ){suffix}
        """,
    ]


def _library_table_definitions(dialect: str | None) -> list[str]:
    serial = _serial_primary_key(dialect)
    suffix = _table_suffix(dialect)
    created = "created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP"
    updated = "updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP"

    return [
        f"""
        CREATE TABLE IF NOT EXISTS {USERS_TABLE} (
            id {serial},
            username VARCHAR(50) NOT NULL UNIQUE,
            email VARCHAR(255) NOT NULL UNIQUE,
            password_hash VARCHAR(255) NOT NULL,
            {created},
            {updated}
        ){suffix}
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {USER_GAMES_TABLE} (
            user_id BIGINT NOT NULL,
            game_id BIGINT NOT NULL,
            status VARCHAR(20) NOT NULL,
            personal_rating REAL,
            added_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            {updated},
            PRIMARY KEY (user_id, game_id),
            FOREIGN KEY (user_id) REFERENCES {USERS_TABLE} (id) ON DELETE CASCADE,
            FOREIGN KEY (game_id) REFERENCES {GAMES_TABLE} (id) ON DELETE CASCADE
        ){suffix}
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {LISTS_TABLE} (
            id {serial},
            user_id BIGINT NOT NULL,
            name VARCHAR(100) NOT NULL,
            description TEXT,
            {created},
            FOREIGN KEY (user_id) REFERENCES {USERS_TABLE} (id) ON DELETE CASCADE
        ){suffix}
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {LIST_GAMES_TABLE} (
            list_id BIGINT NOT NULL,
            game_id BIGINT NOT NULL,
            added_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (list_id, game_id),
            FOREIGN KEY (list_id) REFERENCES {LISTS_TABLE} (id) ON DELETE CASCADE,
            FOREIGN KEY (game_id) REFERENCES {GAMES_TABLE} (id) ON DELETE CASCADE
        ){suffix}
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {LOGS_TABLE} (
            id {serial},
            title VARCHAR(255) NOT NULL,
            user_id BIGINT NOT NULL,
            game_id BIGINT NOT NULL,
            platform_id BIGINT,
            time_played INTEGER NOT NULL DEFAULT 0,
            start_date DATE,
            end_date DATE,
            review TEXT,
            {created},
            {updated},
            FOREIGN KEY (user_id) REFERENCES {USERS_TABLE} (id) ON DELETE CASCADE,
            FOREIGN KEY (game_id) REFERENCES {GAMES_TABLE} (id) ON DELETE CASCADE,
            FOREIGN KEY (platform_id) REFERENCES {PLATFORMS_TABLE} (id) ON DELETE SET NULL
        ){suffix}
        """,
    ]


def create_catalog_tables(conn: Connection) -> None:
    """Create the catalog tables on ``conn`` when they are missing."""

    for statement in _table_definitions(conn.dialect.name):
        conn.execute(text(statement))


def create_library_tables(conn: Connection) -> None:
    """Create the account, collection, list and play log tables when missing.

    Must run after :func:`create_catalog_tables`; every library table
    references ``games``.
    """

    for statement in _library_table_definitions(conn.dialect.name):
        conn.execute(text(statement))


def ensure_schema(db: DatabaseEngine) -> None:
    """Create the catalog and library tables if absent."""

    with db.engine.begin() as conn:
        create_catalog_tables(conn)
        create_library_tables(conn)


__all__ = [
    "CATALOG_TABLES",
    "GAMES_TABLE",
    "GAME_GENRES_TABLE",
    "GAME_PLATFORMS_TABLE",
    "GENRES_TABLE",
    "LIBRARY_TABLES",
    "LISTS_TABLE",
    "LIST_GAMES_TABLE",
    "LOGS_TABLE",
    "PLATFORMS_TABLE",
    "USERS_TABLE",
    "USER_GAMES_TABLE",
    "create_catalog_tables",
    "create_library_tables",
    "ensure_schema",
]
