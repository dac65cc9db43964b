"""Engine construction and connection handling for the catalog database."""

from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine, make_url

logger = logging.getLogger(__name__)

MYSQL_DIALECTS = frozenset({"mysql", "mariadb"})

# Applied in order to every new SQLite connection; ``None`` values are skipped.
_SQLITE_PRAGMAS = ("busy_timeout", "journal_mode", "foreign_keys")


class DatabaseEngine:
    """Wrapper exposing context-managed SQLAlchemy connections."""

    def __init__(self, engine: Engine):
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @property
    def is_mysql(self) -> bool:
        """``True`` for MySQL and MariaDB backends, which need their own upsert syntax."""

        return self.dialect_name in MYSQL_DIALECTS

    @contextmanager
    def sa_connection(self) -> Iterator[Connection]:
        """Check out one pooled connection and return it to the pool on exit.

        Callers own transaction handling; nothing is committed implicitly.
        """

        with self._engine.connect() as conn:
            yield conn

    def dispose(self) -> None:
        self._engine.dispose()


def _sqlite_pragma_values(busy_timeout: float | None) -> dict[str, Any]:
    busy_timeout_ms = None
    if busy_timeout is not None and busy_timeout > 0:
        busy_timeout_ms = int(busy_timeout * 1000)
    return {
        "busy_timeout": busy_timeout_ms,
        "journal_mode": "WAL",
        "foreign_keys": "ON",
    }


def _configure_sqlite_connection(conn: Any, *, busy_timeout: float | None = None) -> Any:
    """Enable WAL, a busy timeout and foreign key enforcement on ``conn``."""

    if not isinstance(conn, sqlite3.Connection):
        return conn

    values = _sqlite_pragma_values(busy_timeout)
    for name in _SQLITE_PRAGMAS:
        value = values[name]
        if value is None:
            continue
        try:
            conn.execute(f"PRAGMA {name}={value}").fetchall()
        except sqlite3.OperationalError as exc:  # pragma: no cover - depends on sqlite build
            logger.warning("SQLite rejected PRAGMA %s=%s: %s", name, value, exc)

    return conn


def _configure_mariadb_connection(conn: Any, *, lock_timeout: float | None = None) -> Any:
    """Bound how long catalog upserts wait on InnoDB row locks."""

    if lock_timeout is None:
        return conn

    cursor = conn.cursor()
    try:
        cursor.execute(
            "SET SESSION innodb_lock_wait_timeout = %s", (max(int(lock_timeout), 1),)
        )
    finally:
        cursor.close()

    return conn


def _resolve_sqlite_path_from_dsn(dsn: str) -> str:
    """Return the absolute database file path named by a ``sqlite:///`` DSN."""

    url = make_url(dsn)
    if url.get_backend_name() != "sqlite":
        raise ValueError(f"Unsupported DSN for SQLite resolver: {url.drivername}")
    if not url.database or url.database == ":memory:":
        raise ValueError("SQLite DSN must include a filesystem path")
    return os.fspath(Path(url.database).expanduser().resolve())


def execute_write(db: DatabaseEngine, statement: str, params: dict[str, Any]) -> int:
    """Run one write statement in its own transaction and return the affected row count."""

    with db.sa_connection() as conn:
        transaction = conn.begin()
        try:
            count = conn.execute(text(statement), params).rowcount
            transaction.commit()
        except Exception:
            transaction.rollback()
            raise
    return count


def insert_returning_id(
    conn: Connection, statement: str, params: dict[str, Any], *, mysql: bool
) -> int:
    """Run an ``INSERT`` into a table with a generated ``id`` and return that id."""

    if mysql:
        return int(conn.execute(text(statement), params).lastrowid)
    return int(conn.execute(text(f"{statement} RETURNING id"), params).scalar_one())


def build_engine_from_dsn(
    dsn: str,
    *,
    timeout: float | None = None,
    pool_size: int = 5,
    pool_recycle: int = 1_800,
    pool_pre_ping: bool = True,
) -> DatabaseEngine:
    """Return a pooled :class:`DatabaseEngine` for ``dsn``.

    SQLite files get their parent directory created. Every new connection
    receives per-dialect session settings bounded by ``timeout`` seconds.
    """

    url = make_url(dsn)
    backend = url.get_backend_name()
    effective_timeout = timeout if timeout is not None else 5.0
    connect_args: dict[str, object] = {}

    if backend == "sqlite":
        sqlite_path = Path(_resolve_sqlite_path_from_dsn(dsn))
        sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        url = url.set(database=os.fspath(sqlite_path))
        connect_args["check_same_thread"] = False
    else:
        connect_args["connect_timeout"] = max(int(effective_timeout), 1)

    engine = create_engine(
        url,
        pool_size=pool_size,
        pool_recycle=pool_recycle,
        pool_pre_ping=pool_pre_ping,
        connect_args=connect_args,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record):  # type: ignore[override]
        if backend == "sqlite":
            _configure_sqlite_connection(dbapi_conn, busy_timeout=effective_timeout)
        elif backend in MYSQL_DIALECTS:
            _configure_mariadb_connection(dbapi_conn, lock_timeout=effective_timeout)

    logger.debug("Created %s engine for %s", backend, url.render_as_string(hide_password=True))
    return DatabaseEngine(engine)


__all__ = [
    "DatabaseEngine",
    "MYSQL_DIALECTS",
    "build_engine_from_dsn",
    "execute_write",
    "insert_returning_id",
]
