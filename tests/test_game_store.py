import pytest
from sqlalchemy import event, text
from sqlalchemy.exc import DBAPIError

from games.store import store_game_metadata
from igdb.records import CatalogRecord, NamedRef, normalize_catalog_record

from tests.app_helpers import count_rows, fetch_all, igdb_game_payload


class StatementRecorder:
    """Count INSERTs, commits, rollbacks and pool check-ins on an engine."""

    def __init__(self, engine):
        self.inserts = 0
        self.commits = 0
        self.rollbacks = 0
        self.checkins = 0
        event.listen(engine, "before_cursor_execute", self._before_execute)
        event.listen(engine, "commit", self._commit)
        event.listen(engine, "rollback", self._rollback)
        event.listen(engine, "checkin", self._checkin)

    def _before_execute(self, conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("INSERT"):
            self.inserts += 1

    def _commit(self, conn):
        self.commits += 1

    def _rollback(self, conn):
        self.rollbacks += 1

    def _checkin(self, dbapi_connection, connection_record):
        self.checkins += 1


def _witcher(**overrides):
    payload = igdb_game_payload(
        1942,
        name="The Witcher 3: Wild Hunt",
        summary="Geralt hunts monsters.",
        genres=[(12, "Role-playing (RPG)"), (31, "Adventure")],
        platforms=[(6, "PC (Microsoft Windows)")],
    )
    payload.update(overrides)
    return payload


def test_store_writes_game_refs_and_links_in_one_transaction(db):
    recorder = StatementRecorder(db.engine)

    stored = store_game_metadata(db, _witcher())

    assert stored.id == 1942
    assert recorder.inserts == 7
    assert recorder.commits == 1
    assert recorder.rollbacks == 0
    assert recorder.checkins == 1

    games = fetch_all(db, "SELECT id, title, cover_url, description, release_date FROM games")
    assert games == [
        {
            "id": 1942,
            "title": "The Witcher 3: Wild Hunt",
            "cover_url": "https://images.igdb.com/igdb/image/upload/t_thumb/abc.jpg",
            "description": "Geralt hunts monsters.",
            "release_date": "2020-09-13",
        }
    ]
    assert fetch_all(db, "SELECT id, name FROM genres ORDER BY id") == [
        {"id": 12, "name": "Role-playing (RPG)"},
        {"id": 31, "name": "Adventure"},
    ]
    assert fetch_all(db, "SELECT game_id, genre_id FROM game_genres ORDER BY genre_id") == [
        {"game_id": 1942, "genre_id": 12},
        {"game_id": 1942, "genre_id": 31},
    ]
    assert fetch_all(db, "SELECT game_id, platform_id FROM game_platforms") == [
        {"game_id": 1942, "platform_id": 6},
    ]


def test_single_genre_and_platform_take_five_writes(db):
    recorder = StatementRecorder(db.engine)

    store_game_metadata(
        db,
        CatalogRecord(
            id=1,
            name="Tiny",
            genres=(NamedRef(5, "Shooter"),),
            platforms=(NamedRef(6, "PC (Microsoft Windows)"),),
        ),
    )

    assert recorder.inserts == 5
    assert recorder.commits == 1
    assert recorder.checkins == 1


def test_restoring_updates_rows_without_duplicate_links(db):
    store_game_metadata(db, _witcher())
    store_game_metadata(
        db,
        _witcher(
            name="The Witcher 3: Wild Hunt - Complete Edition",
            summary=None,
            genres=[{"id": 12, "name": "RPG"}],
        ),
    )

    games = fetch_all(db, "SELECT title, description FROM games WHERE id = 1942")
    assert games == [
        {"title": "The Witcher 3: Wild Hunt - Complete Edition", "description": None}
    ]
    assert fetch_all(db, "SELECT name FROM genres WHERE id = 12") == [{"name": "RPG"}]
    assert count_rows(db, "games") == 1
    assert count_rows(db, "game_genres") == 2
    assert count_rows(db, "game_platforms") == 1


def test_shared_refs_are_reused_across_games(db):
    store_game_metadata(db, igdb_game_payload(1, name="One"))
    store_game_metadata(db, igdb_game_payload(2, name="Two"))

    assert count_rows(db, "games") == 2
    assert count_rows(db, "genres") == 1
    assert count_rows(db, "platforms") == 1
    assert count_rows(db, "game_genres") == 2
    assert count_rows(db, "game_platforms") == 2


def test_game_without_genres_or_platforms(db):
    recorder = StatementRecorder(db.engine)

    store_game_metadata(db, igdb_game_payload(77, genres=[], platforms=[]))

    assert recorder.inserts == 1
    assert count_rows(db, "games") == 1
    assert count_rows(db, "genres") == 0
    assert count_rows(db, "game_platforms") == 0


def test_refs_without_ids_are_not_stored(db):
    record = normalize_catalog_record(
        {"id": 5, "name": "Loose refs", "genres": ["Arcade"], "platforms": [{"id": 6, "name": "PC"}]}
    )

    store_game_metadata(db, record)

    assert count_rows(db, "genres") == 0
    assert count_rows(db, "game_genres") == 0
    assert count_rows(db, "game_platforms") == 1


def test_failure_rolls_back_every_write(db):
    with db.engine.begin() as conn:
        conn.execute(
            text(
                """
                CREATE TRIGGER reject_platform_links
                BEFORE INSERT ON game_platforms
                BEGIN
                    SELECT RAISE(ABORT, 'boom');
                END
                """
            )
        )
    recorder = StatementRecorder(db.engine)

    with pytest.raises(DBAPIError, match="boom"):
        store_game_metadata(db, _witcher())

    assert recorder.commits == 0
    assert recorder.rollbacks == 1
    assert recorder.checkins == 1
    assert count_rows(db, "games") == 0
    assert count_rows(db, "genres") == 0
    assert count_rows(db, "game_genres") == 0
    assert count_rows(db, "platforms") == 0


def test_invalid_record_is_rejected_before_connecting(db):
    recorder = StatementRecorder(db.engine)

    with pytest.raises(ValueError):
        store_game_metadata(db, {"name": "No id"})

    assert recorder.checkins == 0
    assert count_rows(db, "games") == 0
