import logging

from seeding.service import (
    SEED_STATE_DONE,
    SEED_STATE_FAILED,
    SeedSummary,
    seed_games,
)


class FakeCatalog:
    """Serve ``total`` sequential games by offset, optionally failing."""

    def __init__(self, total, *, fail_at_offset=None):
        self.total = total
        self.fail_at_offset = fail_at_offset
        self.calls = []

    def __call__(self, offset, limit):
        self.calls.append((offset, limit))
        if self.fail_at_offset is not None and offset >= self.fail_at_offset:
            raise RuntimeError("IGDB request failed: 500")
        end = min(offset + limit, self.total)
        return [{"id": igdb_id, "name": f"Game {igdb_id}"} for igdb_id in range(offset + 1, end + 1)]


class RecordingStore:
    def __init__(self, reject_ids=()):
        self.reject_ids = set(reject_ids)
        self.stored = []

    def __call__(self, item):
        if item["id"] in self.reject_ids:
            raise ValueError(f"cannot store {item['id']}")
        self.stored.append(item["id"])


def test_seed_stores_every_game_until_empty_page():
    catalog = FakeCatalog(3)
    store = RecordingStore()
    sleeps = []

    summary = seed_games(catalog, store, page_size=500, sleep=sleeps.append)

    assert summary.state == SEED_STATE_DONE
    assert summary.succeeded is True
    assert store.stored == [1, 2, 3]
    assert summary.fetched == 3
    assert summary.stored == 3
    assert summary.failed == 0
    assert summary.pages == 1
    assert catalog.calls == [(0, 500), (500, 500)]
    assert sleeps == [0.25]


def test_item_failure_is_skipped_and_run_completes(caplog):
    catalog = FakeCatalog(3)
    store = RecordingStore(reject_ids={2})

    with caplog.at_level(logging.ERROR, logger="seeding.service"):
        summary = seed_games(catalog, store, sleep=lambda _: None)

    assert summary.state == SEED_STATE_DONE
    assert store.stored == [1, 3]
    assert summary.stored == 2
    assert summary.failed == 1
    assert "Failed to store game 2" in caplog.text


def test_fetch_failure_stops_run_without_retry():
    catalog = FakeCatalog(10, fail_at_offset=0)
    store = RecordingStore()

    summary = seed_games(catalog, store, sleep=lambda _: None)

    assert summary.state == SEED_STATE_FAILED
    assert summary.succeeded is False
    assert summary.stored == 0
    assert summary.error == "IGDB request failed: 500"
    assert catalog.calls == [(0, 500)]


def test_fetch_failure_midway_reports_resume_offset():
    catalog = FakeCatalog(10, fail_at_offset=4)
    store = RecordingStore()

    summary = seed_games(catalog, store, page_size=4, sleep=lambda _: None)

    assert summary.state == SEED_STATE_FAILED
    assert store.stored == [1, 2, 3, 4]
    assert summary.next_offset == 4
    assert catalog.calls == [(0, 4), (4, 4)]


def test_pages_advance_by_page_size():
    catalog = FakeCatalog(10)
    store = RecordingStore()
    sleeps = []

    summary = seed_games(catalog, store, page_size=4, delay=1.5, sleep=sleeps.append)

    assert store.stored == list(range(1, 11))
    assert catalog.calls == [(0, 4), (4, 4), (8, 4), (12, 4)]
    assert summary.pages == 3
    assert summary.next_offset == 12
    assert sleeps == [1.5, 1.5, 1.5]


def test_max_games_truncates_last_page():
    catalog = FakeCatalog(100)
    store = RecordingStore()
    sleeps = []

    summary = seed_games(catalog, store, page_size=4, max_games=6, sleep=sleeps.append)

    assert summary.state == SEED_STATE_DONE
    assert store.stored == [1, 2, 3, 4, 5, 6]
    assert summary.fetched == 6
    assert summary.next_offset == 6
    assert catalog.calls == [(0, 4), (4, 4)]
    assert sleeps == [0.25]


def test_start_offset_resumes_from_given_position():
    catalog = FakeCatalog(5)
    store = RecordingStore()

    summary = seed_games(catalog, store, page_size=2, start_offset=3, sleep=lambda _: None)

    assert store.stored == [4, 5]
    assert catalog.calls[0] == (3, 2)
    assert summary.state == SEED_STATE_DONE


def test_zero_delay_never_sleeps():
    catalog = FakeCatalog(4)
    sleeps = []

    seed_games(catalog, RecordingStore(), page_size=2, delay=0, sleep=sleeps.append)

    assert sleeps == []


def test_empty_catalogue_finishes_immediately():
    catalog = FakeCatalog(0)
    sleeps = []

    summary = seed_games(catalog, RecordingStore(), sleep=sleeps.append)

    assert summary == SeedSummary(state=SEED_STATE_DONE)
    assert sleeps == []


def test_summary_to_dict():
    summary = SeedSummary(state=SEED_STATE_FAILED, fetched=3, stored=2, failed=1, error="boom")

    assert summary.to_dict() == {
        "state": "failed",
        "fetched": 3,
        "stored": 2,
        "failed": 1,
        "pages": 0,
        "next_offset": 0,
        "error": "boom",
    }
