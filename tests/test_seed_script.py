from igdb.client import IGDBRequestError
from scripts import seed_games as seed_script

from tests.app_helpers import count_rows, get_test_db_engine, igdb_game_payload


class FakeIGDBClient:
    def __init__(self, total, *, fail=False):
        self.total = total
        self.fail = fail
        self.calls = []

    def fetch_game_page(self, offset, limit, *, filters=""):
        self.calls.append((offset, limit, filters))
        if self.fail:
            raise IGDBRequestError("IGDB request failed: 503")
        end = min(offset + limit, self.total)
        return [igdb_game_payload(igdb_id, name=f"Game {igdb_id}") for igdb_id in range(offset + 1, end + 1)]


def test_parser_defaults():
    args = seed_script.build_parser().parse_args([])

    assert args.offset == 0
    assert args.filters == ""
    assert args.page_size > 0


def test_run_seed_creates_schema_and_stores_games(tmp_path):
    db = get_test_db_engine(tmp_path)
    client = FakeIGDBClient(3)
    args = seed_script.build_parser().parse_args(
        ["--page-size", "2", "--delay", "0", "--filters", "where category = 0"]
    )

    try:
        summary = seed_script.run_seed(args, db=db, igdb_client=client)

        assert summary.state == "done"
        assert summary.stored == 3
        assert count_rows(db, "games") == 3
        assert count_rows(db, "game_genres") == 3
        assert client.calls == [
            (0, 2, "where category = 0"),
            (2, 2, "where category = 0"),
            (4, 2, "where category = 0"),
        ]
    finally:
        db.dispose()


def test_run_seed_honours_offset_and_max_games(tmp_path):
    db = get_test_db_engine(tmp_path)
    client = FakeIGDBClient(50)
    args = seed_script.build_parser().parse_args(
        ["--offset", "10", "--max-games", "5", "--page-size", "20", "--delay", "0"]
    )

    try:
        summary = seed_script.run_seed(args, db=db, igdb_client=client)

        assert summary.stored == 5
        assert summary.next_offset == 15
        assert count_rows(db, "games") == 5
    finally:
        db.dispose()


def _patch_services(monkeypatch, tmp_path, client):
    db = get_test_db_engine(tmp_path)
    monkeypatch.setattr(seed_script, "configure_logging", lambda: None)
    monkeypatch.setattr(seed_script, "build_database", lambda: db)
    monkeypatch.setattr(seed_script, "build_igdb_client", lambda: client)
    return db


def test_main_returns_zero_when_done(monkeypatch, tmp_path, capsys):
    _patch_services(monkeypatch, tmp_path, FakeIGDBClient(2))

    exit_code = seed_script.main(["--delay", "0"])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "Seeding done" in output
    assert "Total stored: 2" in output


def test_main_returns_one_when_fetch_fails(monkeypatch, tmp_path, capsys):
    _patch_services(monkeypatch, tmp_path, FakeIGDBClient(2, fail=True))

    exit_code = seed_script.main(["--delay", "0", "--offset", "500"])

    assert exit_code == 1
    output = capsys.readouterr().out
    assert "Seeding failed" in output
    assert "Next offset: 500" in output
    assert "IGDB request failed: 503" in output
