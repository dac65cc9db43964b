"""Application startup orchestration helpers."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Callable

from flask import Flask

from config import LOG_FILE, validate_igdb_credentials
from db import schema as db_schema
from db import utils as db_utils

logger = logging.getLogger(__name__)


def _determine_log_level(flask_app: Flask | None = None) -> int:
    if flask_app is not None and flask_app.debug:
        return logging.DEBUG
    if os.environ.get('FLASK_DEBUG', '').lower() in {'1', 'true', 'yes', 'on'}:
        return logging.DEBUG
    return logging.INFO


def configure_logging(
    flask_app: Flask | None = None,
    *,
    log_file: str = LOG_FILE,
    level: int | None = None,
) -> None:
    """Send log records to stdout and to a rotating log file."""

    log_level = level if level is not None else _determine_log_level(flask_app)
    log_path = Path(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.warning('Unable to create log directory %s', log_path.parent)

    if flask_app is not None:
        for handler in list(flask_app.logger.handlers):
            flask_app.logger.removeHandler(handler)

    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'standard': {
                    'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
                    'datefmt': '%Y-%m-%d %H:%M:%S',
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'standard',
                    'level': log_level,
                    'stream': 'ext://sys.stdout',
                },
                'file': {
                    'class': 'logging.handlers.RotatingFileHandler',
                    'formatter': 'standard',
                    'level': logging.DEBUG,
                    'filename': os.fspath(log_path),
                    'maxBytes': 5 * 1024 * 1024,
                    'backupCount': 5,
                    'encoding': 'utf-8',
                },
            },
            'root': {
                'level': log_level,
                'handlers': ['console', 'file'],
            },
        }
    )

    if flask_app is not None:
        flask_app.logger.setLevel(log_level)


def initialize_app(
    db: db_utils.DatabaseEngine,
    *,
    ensure_schema: Callable[[db_utils.DatabaseEngine], None] = db_schema.ensure_schema,
    validate_credentials: Callable[[], bool] = validate_igdb_credentials,
) -> bool:
    """Prepare the catalog tables and report whether IGDB access is configured.

    Missing credentials do not stop startup: locally stored games can still
    be served, and remote lookups fail with an upstream error.
    """

    try:
        ensure_schema(db)
    except Exception:
        logger.exception('Failed to prepare the catalog schema during startup')
        raise

    igdb_enabled = validate_credentials()
    if not igdb_enabled:
        logger.warning('IGDB lookups are disabled until credentials are configured')
    return igdb_enabled


__all__ = ["configure_logging", "initialize_app"]
