import logging

import pytest

import config as app_config
from init import initialize_app


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 7), ("", 7), ("12", 12), ("3.9", 3), ("-4", 7), ("0", 7), ("abc", 7)],
)
def test_env_number_as_positive_int(monkeypatch, raw, expected):
    if raw is None:
        monkeypatch.delenv("BACKLOG_TEST_NUMBER", raising=False)
    else:
        monkeypatch.setenv("BACKLOG_TEST_NUMBER", raw)

    assert app_config._env_number("BACKLOG_TEST_NUMBER", 7, cast=int) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [("0", 0.0), ("1.5", 1.5), ("-1", 0.25), ("soon", 0.25)],
)
def test_env_number_allowing_zero(monkeypatch, raw, expected):
    monkeypatch.setenv("BACKLOG_TEST_DELAY", raw)

    assert app_config._env_number("BACKLOG_TEST_DELAY", 0.25, allow_zero=True) == expected


def test_database_url_takes_precedence(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", " sqlite:////tmp/custom.db ")
    monkeypatch.setenv("DB_HOST", "db.internal")

    assert app_config._build_db_dsn() == "sqlite:////tmp/custom.db"


def test_default_dsn_is_local_sqlite(monkeypatch):
    for key in ("DATABASE_URL", "DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD"):
        monkeypatch.delenv(key, raising=False)

    dsn = app_config._build_db_dsn()

    assert dsn.startswith("sqlite:///")
    assert dsn.endswith("/backlog.db")


def test_batch_size_never_exceeds_igdb_limit():
    assert 0 < app_config.IGDB_BATCH_SIZE <= app_config.IGDB_MAX_PAGE_SIZE


def test_validate_credentials_reports_missing_values(monkeypatch, caplog):
    monkeypatch.setattr(app_config, "TWITCH_CLIENT_ID", "")
    monkeypatch.setattr(app_config, "TWITCH_CLIENT_SECRET", "secret")

    with caplog.at_level(logging.ERROR, logger="config"):
        assert app_config.validate_igdb_credentials() is False

    assert "TWITCH_CLIENT_ID" in caplog.text
    assert "TWITCH_CLIENT_SECRET" not in caplog.text


def test_validate_credentials_accepts_complete_configuration(monkeypatch, caplog):
    monkeypatch.setattr(app_config, "TWITCH_CLIENT_ID", "client")
    monkeypatch.setattr(app_config, "TWITCH_CLIENT_SECRET", "secret")

    with caplog.at_level(logging.ERROR, logger="config"):
        assert app_config.validate_igdb_credentials() is True

    assert caplog.text == ""


def test_initialize_app_prepares_schema_and_checks_credentials():
    calls = []

    enabled = initialize_app(
        "db-handle",
        ensure_schema=calls.append,
        validate_credentials=lambda: True,
    )

    assert enabled is True
    assert calls == ["db-handle"]


def test_initialize_app_propagates_schema_failure():
    def broken_schema(db):
        raise RuntimeError("database offline")

    with pytest.raises(RuntimeError, match="database offline"):
        initialize_app(object(), ensure_schema=broken_schema, validate_credentials=lambda: True)
