from games.lookup import (
    LOCAL_SEARCH_LIMIT,
    game_exists,
    get_game_by_id,
    search_games_in_database,
)
from sqlalchemy import event

from games.store import store_game_metadata

from tests.app_helpers import igdb_game_payload


def test_game_exists_after_store(db):
    assert game_exists(db, 1942) is False

    store_game_metadata(db, igdb_game_payload(1942, name="The Witcher 3"))

    assert game_exists(db, 1942) is True
    assert game_exists(db, "1942") is True
    assert game_exists(db, 1943) is False


def test_game_exists_rejects_invalid_ids(db):
    assert game_exists(db, None) is False
    assert game_exists(db, "abc") is False
    assert game_exists(db, -1) is False


def test_search_matches_substring_case_insensitively(db):
    store_game_metadata(db, igdb_game_payload(1, name="Super Mario Bros."))
    store_game_metadata(db, igdb_game_payload(2, name="Mario Kart 8"))
    store_game_metadata(db, igdb_game_payload(3, name="Zelda"))

    results = search_games_in_database(db, "mario")

    assert sorted(game["id"] for game in results) == [1, 2]
    assert set(results[0]) == {"id", "title", "cover_url", "description", "release_date"}


def test_search_without_matches_returns_empty_list(db):
    store_game_metadata(db, igdb_game_payload(1, name="Zelda"))

    assert search_games_in_database(db, "halo") == []
    assert search_games_in_database(db, "   ") == []


def test_search_is_capped(db):
    for igdb_id in range(1, LOCAL_SEARCH_LIMIT + 11):
        store_game_metadata(
            db, igdb_game_payload(igdb_id, name=f"Puzzle {igdb_id}", genres=[], platforms=[])
        )

    assert len(search_games_in_database(db, "puzzle")) == LOCAL_SEARCH_LIMIT
    assert len(search_games_in_database(db, "puzzle", limit=5)) == 5
    assert len(search_games_in_database(db, "puzzle", limit=500)) == LOCAL_SEARCH_LIMIT


def test_search_treats_wildcards_literally(db):
    store_game_metadata(db, igdb_game_payload(1, name="100% Orange Juice"))
    store_game_metadata(db, igdb_game_payload(2, name="1000 Tiny Claws"))
    store_game_metadata(db, igdb_game_payload(3, name="snake_case"))
    store_game_metadata(db, igdb_game_payload(4, name="snakeXcase"))
    store_game_metadata(db, igdb_game_payload(5, name="Wow!"))

    assert [game["id"] for game in search_games_in_database(db, "100%")] == [1]
    assert [game["id"] for game in search_games_in_database(db, "snake_")] == [3]
    assert [game["id"] for game in search_games_in_database(db, "w!")] == [5]


def test_get_game_by_id_merges_genres_and_platforms(db):
    store_game_metadata(
        db,
        igdb_game_payload(
            1942,
            name="The Witcher 3",
            genres=[(31, "Adventure"), (12, "Role-playing (RPG)")],
            platforms=[(48, "PlayStation 4"), (6, "PC (Microsoft Windows)")],
        ),
    )

    game = get_game_by_id(db, 1942)

    assert game == {
        "id": 1942,
        "title": "The Witcher 3",
        "cover_url": "https://images.igdb.com/igdb/image/upload/t_thumb/abc.jpg",
        "description": "Summary",
        "release_date": "2020-09-13",
        "genres": [
            {"id": 12, "name": "Role-playing (RPG)"},
            {"id": 31, "name": "Adventure"},
        ],
        "platforms": [
            {"id": 6, "name": "PC (Microsoft Windows)"},
            {"id": 48, "name": "PlayStation 4"},
        ],
    }


def test_get_game_by_id_unknown(db):
    assert get_game_by_id(db, 5) is None
    assert get_game_by_id(db, "nope") is None


def test_search_ignores_case_of_query_and_title(db):
    store_game_metadata(db, igdb_game_payload(1, name="DOOM Eternal"))
    store_game_metadata(db, igdb_game_payload(2, name="doom 64"))
    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(db.engine, "before_cursor_execute", record)
    try:
        upper = search_games_in_database(db, "DOOM")
        lower = search_games_in_database(db, "dOoM")
    finally:
        event.remove(db.engine, "before_cursor_execute", record)

    assert sorted(game["id"] for game in upper) == [1, 2]
    assert sorted(game["id"] for game in lower) == [1, 2]
    assert all("lower(title) LIKE lower(" in statement for statement in statements)


def test_get_game_by_id_keeps_release_dates_before_1970(db):
    store_game_metadata(db, {"id": 3, "name": "Spacewar!", "first_release_date": -240796800})

    assert get_game_by_id(db, 3)["release_date"] == "1962-05-16"
