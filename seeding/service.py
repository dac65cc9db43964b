"""Bulk ingestion of the IGDB catalogue into the local game tables."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from igdb.client import resolve_igdb_page_size

logger = logging.getLogger(__name__)


SEED_STATE_FETCHING = 'fetching'
SEED_STATE_STORING = 'storing'
SEED_STATE_DONE = 'done'
SEED_STATE_FAILED = 'failed'
SEED_TERMINAL_STATES = {SEED_STATE_DONE, SEED_STATE_FAILED}

PROGRESS_LOG_INTERVAL = 10


@dataclass
class SeedSummary:
    state: str = SEED_STATE_FETCHING
    fetched: int = 0
    stored: int = 0
    failed: int = 0
    pages: int = 0
    next_offset: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == SEED_STATE_DONE

    def to_dict(self) -> dict[str, Any]:
        return {
            'state': self.state,
            'fetched': self.fetched,
            'stored': self.stored,
            'failed': self.failed,
            'pages': self.pages,
            'next_offset': self.next_offset,
            'error': self.error,
        }


def _describe_item(item: Any) -> tuple[Any, Any]:
    if isinstance(item, Mapping):
        return item.get('id'), item.get('name')
    return getattr(item, 'id', None), getattr(item, 'name', None)


def seed_games(
    fetch_page: Callable[[int, int], Sequence[Any]],
    store_game: Callable[[Any], Any],
    *,
    page_size: int = 500,
    start_offset: int = 0,
    max_games: int | None = None,
    delay: float = 0.25,
    sleep: Callable[[float], None] | None = None,
) -> SeedSummary:
    """Page through the catalogue and store every record.

    ``fetch_page(offset, limit)`` returns one page and ``store_game(item)``
    persists a single record. A record that fails to store is logged,
    counted and skipped. A page that fails to fetch ends the run in the
    ``failed`` state without retrying; ``next_offset`` in the summary is
    where a later run can resume. The run is ``done`` when a page comes
    back empty or ``max_games`` records have been fetched. ``delay``
    seconds are slept between page fetches only.
    """

    limit = resolve_igdb_page_size(page_size)
    wait = sleep or time.sleep
    cap = max_games if max_games is not None and max_games > 0 else None
    summary = SeedSummary(next_offset=max(0, int(start_offset)))

    logger.info(
        'Starting IGDB seeding at offset %s (page size %s, limit %s)',
        summary.next_offset,
        limit,
        cap if cap is not None else 'none',
    )

    while summary.state not in SEED_TERMINAL_STATES:
        summary.state = SEED_STATE_FETCHING
        offset = summary.next_offset
        logger.info('Fetching batch at offset %s', offset)
        try:
            page = list(fetch_page(offset, limit))
        except Exception as exc:
            logger.error('Error fetching batch at offset %s: %s', offset, exc, exc_info=exc)
            summary.error = str(exc)
            summary.state = SEED_STATE_FAILED
            break

        if not page:
            logger.info('No more games to fetch.')
            summary.state = SEED_STATE_DONE
            break

        advance = limit
        if cap is not None and summary.fetched + len(page) > cap:
            page = page[: cap - summary.fetched]
            advance = len(page)

        summary.pages += 1
        summary.fetched += len(page)
        first_id, first_name = _describe_item(page[0])
        logger.info('Retrieved %s games (first: %s)', len(page), first_name or first_id or 'N/A')

        summary.state = SEED_STATE_STORING
        for item in page:
            try:
                store_game(item)
            except Exception as exc:
                game_id, game_name = _describe_item(item)
                summary.failed += 1
                logger.error('Failed to store game %s (%s): %s', game_id, game_name, exc)
                continue
            summary.stored += 1
            if summary.stored % PROGRESS_LOG_INTERVAL == 0:
                logger.info('Stored %s games so far...', summary.stored)

        summary.next_offset = offset + advance
        logger.info(
            'Batch complete. Total: %s/%s stored', summary.stored, summary.fetched
        )

        if cap is not None and summary.fetched >= cap:
            logger.warning('Reached %s game limit. Stopping.', cap)
            summary.state = SEED_STATE_DONE
            break

        if delay > 0:
            wait(delay)

    logger.info(
        'Seeding %s. Total fetched: %s, stored: %s, failed: %s',
        summary.state,
        summary.fetched,
        summary.stored,
        summary.failed,
    )
    return summary


__all__ = [
    'PROGRESS_LOG_INTERVAL',
    'SEED_STATE_DONE',
    'SEED_STATE_FAILED',
    'SEED_STATE_FETCHING',
    'SEED_STATE_STORING',
    'SEED_TERMINAL_STATES',
    'SeedSummary',
    'seed_games',
]
