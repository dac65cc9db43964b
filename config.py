"""Application-wide configuration helpers and constants."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Final
from urllib.parse import quote_plus

from dotenv import load_dotenv

BASE_DIR: Final[Path] = Path(__file__).resolve().parent

load_dotenv(BASE_DIR / ".env")


logger = logging.getLogger(__name__)


def _clean_text(value: str | None) -> str:
    """Return ``value`` stripped of surrounding whitespace."""

    if value is None:
        return ""
    return value.strip()


def _path_from(env_value: str | None, default: str | Path) -> Path:
    """Resolve a filesystem path using an environment override when provided."""

    text = _clean_text(env_value)
    candidate = Path(text) if text else Path(default)
    candidate = candidate.expanduser()
    if candidate.is_absolute():
        try:
            return candidate.resolve()
        except (OSError, RuntimeError):  # pragma: no cover - fallback for exotic paths
            return candidate
    return candidate


def _env_number(
    name: str,
    default: float,
    *,
    cast: type = float,
    allow_zero: bool = False,
) -> Any:
    """Return the numeric environment setting ``name`` or ``default``.

    Values that do not parse, are negative, or are zero without
    ``allow_zero`` fall back to ``default``. ``cast=int`` truncates
    fractional input such as ``"3.9"``.
    """

    text = _clean_text(os.environ.get(name))
    if not text:
        return default
    try:
        numeric = cast(float(text))
    except (TypeError, ValueError, OverflowError):
        logger.warning("Ignoring invalid %s=%r; using %s", name, text, default)
        return default
    if numeric > 0 or (allow_zero and numeric == 0):
        return numeric
    logger.warning("Ignoring out-of-range %s=%r; using %s", name, text, default)
    return default


LOG_DIR_PATH: Final[Path] = _path_from(os.environ.get("LOG_DIR"), BASE_DIR / "logs")
LOG_DIR: Final[str] = os.fspath(LOG_DIR_PATH)
LOG_FILE_PATH: Final[Path] = _path_from(
    os.environ.get("LOG_FILE"), LOG_DIR_PATH / "app.log"
)
LOG_FILE: Final[str] = os.fspath(LOG_FILE_PATH)

DB_HOST: Final[str] = _clean_text(os.environ.get("DB_HOST")) or "localhost"
DB_PORT: Final[int] = _env_number("DB_PORT", 3306, cast=int)
DB_NAME: Final[str] = _clean_text(os.environ.get("DB_NAME")) or "backlog_tracker"
DB_USER: Final[str] = _clean_text(os.environ.get("DB_USER"))
DB_PASSWORD: Final[str] = _clean_text(os.environ.get("DB_PASSWORD"))


def _build_db_dsn() -> str:
    """Return a database DSN constructed from environment configuration."""

    explicit = _clean_text(os.environ.get("DATABASE_URL"))
    if explicit:
        return explicit

    maria_overrides = {
        key: _clean_text(os.environ.get(key))
        for key in ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD")
    }
    if any(value for value in maria_overrides.values()):
        auth = ""
        if DB_USER:
            password = quote_plus(DB_PASSWORD) if DB_PASSWORD else ""
            auth = DB_USER
            if password:
                auth = f"{auth}:{password}"
            auth = f"{auth}@"
        return f"mariadb://{auth}{DB_HOST}:{DB_PORT}/{DB_NAME}"

    sqlite_path = _path_from(None, BASE_DIR / "backlog.db").resolve()
    return f"sqlite:///{sqlite_path.as_posix()}"


DB_DSN: Final[str] = _build_db_dsn()

DB_CONNECT_TIMEOUT_SECONDS: Final[float] = _env_number("DB_CONNECT_TIMEOUT", 10.0)

DEFAULT_IGDB_USER_AGENT: Final[str] = "Backlog-Tracker/1.0 (support@example.com)"
IGDB_USER_AGENT: Final[str] = (
    _clean_text(os.environ.get("IGDB_USER_AGENT")) or DEFAULT_IGDB_USER_AGENT
)

TWITCH_CLIENT_ID: Final[str] = _clean_text(os.environ.get("TWITCH_CLIENT_ID"))
TWITCH_CLIENT_SECRET: Final[str] = _clean_text(os.environ.get("TWITCH_CLIENT_SECRET"))

IGDB_REQUEST_TIMEOUT_SECONDS: Final[float] = _env_number("IGDB_REQUEST_TIMEOUT", 30.0)

# IGDB rejects pages larger than 500 records.
IGDB_MAX_PAGE_SIZE: Final[int] = 500
IGDB_BATCH_SIZE: Final[int] = min(
    _env_number("IGDB_BATCH_SIZE", IGDB_MAX_PAGE_SIZE, cast=int),
    IGDB_MAX_PAGE_SIZE,
)

# 4 requests per second.
SEED_DELAY_SECONDS: Final[float] = _env_number(
    "SEED_DELAY_SECONDS", 0.25, allow_zero=True
)
SEED_MAX_GAMES: Final[int | None] = (
    _env_number("SEED_MAX_GAMES", 0, cast=int, allow_zero=True) or None
)

APP_SECRET_KEY: Final[str] = _clean_text(os.environ.get("APP_SECRET_KEY")) or "dev-secret"

# Signed bearer tokens expire after one day.
AUTH_TOKEN_MAX_AGE_SECONDS: Final[int] = _env_number(
    "AUTH_TOKEN_MAX_AGE_SECONDS", 86_400, cast=int
)


def validate_igdb_credentials() -> bool:
    """Return ``True`` when both Twitch credentials are configured."""

    missing = [
        name
        for name, value in (
            ("TWITCH_CLIENT_ID", TWITCH_CLIENT_ID),
            ("TWITCH_CLIENT_SECRET", TWITCH_CLIENT_SECRET),
        )
        if not value
    ]

    if missing:
        logger.error(
            "Missing required IGDB credentials; set %s.", " and ".join(missing)
        )

    return not missing


__all__ = [
    "APP_SECRET_KEY",
    "AUTH_TOKEN_MAX_AGE_SECONDS",
    "BASE_DIR",
    "DB_CONNECT_TIMEOUT_SECONDS",
    "DB_DSN",
    "DB_HOST",
    "DB_NAME",
    "DB_PASSWORD",
    "DB_PORT",
    "DB_USER",
    "DEFAULT_IGDB_USER_AGENT",
    "IGDB_BATCH_SIZE",
    "IGDB_MAX_PAGE_SIZE",
    "IGDB_REQUEST_TIMEOUT_SECONDS",
    "IGDB_USER_AGENT",
    "LOG_DIR",
    "LOG_DIR_PATH",
    "LOG_FILE",
    "LOG_FILE_PATH",
    "SEED_DELAY_SECONDS",
    "SEED_MAX_GAMES",
    "TWITCH_CLIENT_ID",
    "TWITCH_CLIENT_SECRET",
    "validate_igdb_credentials",
]
