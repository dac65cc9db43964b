"""Process-wide cache for the Twitch bearer token used by IGDB requests."""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIFETIME_SECONDS = 3600.0


class _Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[..., None], tuple[Any, ...]], _Timer]
TokenFetcher = Callable[[], tuple[str, Any]]


def _daemon_timer(delay: float, callback: Callable[..., None], args: tuple[Any, ...]) -> _Timer:
    timer = threading.Timer(delay, callback, args=args)
    timer.daemon = True
    return timer


def resolve_token_lifetime(
    value: Any, *, fallback: float = DEFAULT_TOKEN_LIFETIME_SECONDS
) -> float:
    """Return the token lifetime in seconds declared by a token response.

    Missing, non-numeric and non-positive values fall back to ``fallback``
    and emit a warning.
    """

    lifetime: float | None = None
    if value is not None and not isinstance(value, bool):
        try:
            lifetime = float(value)
        except (TypeError, ValueError):
            lifetime = None
    if lifetime is None or not math.isfinite(lifetime) or lifetime <= 0:
        logger.warning(
            "Invalid expires_in %r in token response; using %s second fallback.",
            value,
            int(fallback),
        )
        return fallback
    return lifetime


class AccessTokenCache:
    """Hold at most one live bearer token and expire it in the background.

    ``get()`` returns the cached token while it is valid and otherwise calls
    ``fetch_token`` for a new ``(token, expires_in)`` pair. Expiry is driven
    by a background timer. When the lifetime exceeds ``max_delay`` the timer
    wakes up after ``max_delay`` seconds, then re-arms itself for the
    remainder until the full lifetime has elapsed.

    There is no lock around the fetch: two threads that find the cache empty
    at the same time may both fetch a token, and the last one stored wins.
    """

    def __init__(
        self,
        fetch_token: TokenFetcher,
        *,
        clock: Callable[[], float] | None = None,
        timer_factory: TimerFactory | None = None,
        max_delay: float = threading.TIMEOUT_MAX,
        fallback_lifetime: float = DEFAULT_TOKEN_LIFETIME_SECONDS,
    ) -> None:
        self._fetch_token = fetch_token
        self._clock = clock or time.monotonic
        self._timer_factory = timer_factory or _daemon_timer
        self._max_delay = max_delay if max_delay > 0 else threading.TIMEOUT_MAX
        self._fallback_lifetime = fallback_lifetime
        self._token: str | None = None
        self._expires_at: float | None = None
        self._timer: _Timer | None = None
        self._generation = 0

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def expires_at(self) -> float | None:
        return self._expires_at

    def get(self) -> str:
        """Return a valid bearer token, fetching one when none is cached."""

        token = self._token
        expires_at = self._expires_at
        if token and expires_at is not None and self._clock() < expires_at:
            return token

        new_token, expires_in = self._fetch_token()
        lifetime = resolve_token_lifetime(
            expires_in, fallback=self._fallback_lifetime
        )
        self._store(new_token, lifetime)
        return new_token

    def invalidate(self) -> None:
        """Drop the cached token so the next ``get()`` fetches a new one."""

        self._generation += 1
        self._cancel_timer()
        self._token = None
        self._expires_at = None

    def _store(self, token: str, lifetime: float) -> None:
        self._generation += 1
        generation = self._generation
        self._cancel_timer()
        self._token = token
        self._expires_at = self._clock() + lifetime
        self._arm(generation, lifetime)

    def _arm(self, generation: int, remaining: float) -> None:
        if generation != self._generation:
            return
        if remaining > self._max_delay:
            timer = self._timer_factory(
                self._max_delay, self._arm, (generation, remaining - self._max_delay)
            )
        else:
            timer = self._timer_factory(remaining, self._expire, (generation,))
        self._timer = timer
        timer.start()

    def _expire(self, generation: int) -> None:
        if generation != self._generation:
            return
        logger.debug("IGDB access token expired; next request will refresh it")
        self._timer = None
        self._token = None
        self._expires_at = None

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.cancel()


__all__ = [
    "AccessTokenCache",
    "DEFAULT_TOKEN_LIFETIME_SECONDS",
    "resolve_token_lifetime",
]
