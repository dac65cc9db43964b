"""IGDB client and external API integration helpers."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Mapping

from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from helpers import _coerce_positive_id
from igdb.records import CatalogRecord, normalize_catalog_record
from igdb.token_cache import AccessTokenCache

logger = logging.getLogger(__name__)


__all__ = [
    "DETAIL_FIELDS",
    "IGDBClient",
    "IGDBRequestError",
    "SEARCH_FIELDS",
    "resolve_igdb_page_size",
]


SEARCH_FIELDS = (
    "name,cover.url,summary,first_release_date,genres.name,platforms.name"
)
DETAIL_FIELDS = (
    "name,cover.url,summary,first_release_date,"
    "genres.id,genres.name,platforms.id,platforms.name"
)
PAGE_FIELDS = f"{DETAIL_FIELDS},rating,rating_count"


class IGDBRequestError(RuntimeError):
    """Raised when a request to Twitch or IGDB cannot be completed."""


def resolve_igdb_page_size(batch_size: Any, *, max_page_size: int = 500) -> int:
    """Return a sanitized IGDB page size respecting API constraints."""

    try:
        size = int(batch_size)
    except (TypeError, ValueError):
        return max_page_size
    if size <= 0:
        return max_page_size
    return min(size, max_page_size)


def _quote_search_text(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class IGDBClient:
    """High level helper that manages IGDB authentication and queries."""

    BASE_URL = "https://api.igdb.com/v4"
    TOKEN_URL = "https://id.twitch.tv/oauth2/token"

    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        user_agent: str | None = None,
        max_page_size: int = 500,
        timeout: float = 30.0,
        token_cache: AccessTokenCache | None = None,
        request_factory: Callable[..., Any] | None = None,
        opener: Callable[..., Any] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._env = env if env is not None else os.environ
        self._client_id = (
            client_id or self._env.get("TWITCH_CLIENT_ID") or ""
        ).strip()
        self._client_secret = (
            client_secret or self._env.get("TWITCH_CLIENT_SECRET") or ""
        ).strip()
        self._user_agent = (user_agent or "").strip()
        self._max_page_size = max_page_size if max_page_size > 0 else 500
        self._timeout = timeout if timeout and timeout > 0 else 30.0
        self._request_factory = request_factory or Request
        self._opener = opener or urlopen
        self._token_cache = token_cache or AccessTokenCache(
            self.exchange_twitch_credentials
        )

    @property
    def user_agent(self) -> str:
        if self._user_agent:
            return self._user_agent
        env_agent = self._env.get("IGDB_USER_AGENT")
        if env_agent:
            return env_agent.strip()
        return "Backlog-Tracker/1.0 (support@example.com)"

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def token_cache(self) -> AccessTokenCache:
        return self._token_cache

    def exchange_twitch_credentials(self) -> tuple[str, Any]:
        """Return a fresh Twitch access token and its declared lifetime."""

        if not self._client_id or not self._client_secret:
            raise IGDBRequestError("missing twitch client credentials")

        payload = urlencode(
            {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "grant_type": "client_credentials",
            }
        ).encode("utf-8")

        request = self._request_factory(
            self.TOKEN_URL,
            data=payload,
            method="POST",
        )
        request.add_header("Content-Type", "application/x-www-form-urlencoded")

        data = self._request_json(
            request,
            error_prefix="failed to obtain twitch token",
            generic_error="failed to obtain twitch token",
        )

        token = data.get("access_token") if isinstance(data, Mapping) else None
        if not token:
            raise IGDBRequestError("missing access token in twitch response")
        return str(token), data.get("expires_in")

    def get_access_token(self) -> str:
        """Return the cached bearer token, fetching a new one when required."""

        return self._token_cache.get()

    def search_games(self, query: str, limit: int = 10) -> list[CatalogRecord]:
        """Return up to ``limit`` catalog records matching ``query``."""

        text = (query or "").strip()
        if not text:
            return []
        sanitized_limit = resolve_igdb_page_size(limit, max_page_size=self._max_page_size)
        body = (
            f'search "{_quote_search_text(text)}"; '
            f"fields {SEARCH_FIELDS}; "
            f"limit {sanitized_limit};"
        )
        payload = self._query_games(
            body,
            error_prefix="IGDB search failed",
            generic_error="failed to search IGDB games",
        )
        results: list[CatalogRecord] = []
        for item in payload or []:
            record = normalize_catalog_record(item)
            if record is not None:
                results.append(record)
        return results

    def get_game_details(self, igdb_id: Any) -> CatalogRecord | None:
        """Return the catalog record for ``igdb_id`` or ``None`` when unknown."""

        numeric_id = _coerce_positive_id(igdb_id)
        if numeric_id is None:
            return None
        body = f"fields {DETAIL_FIELDS}; where id = {numeric_id}; limit 1;"
        payload = self._query_games(
            body,
            error_prefix="IGDB request failed",
            generic_error="failed to query IGDB game",
        )
        if not isinstance(payload, list) or not payload:
            return None
        return normalize_catalog_record(payload[0])

    def fetch_game_page(
        self,
        offset: int,
        limit: int,
        *,
        filters: str = "",
    ) -> list[Any]:
        """Return one raw page of IGDB games ordered by id."""

        sanitized_limit = resolve_igdb_page_size(limit, max_page_size=self._max_page_size)
        clause = filters.strip()
        if clause and not clause.endswith(";"):
            clause = f"{clause};"
        body = (
            f"{clause + ' ' if clause else ''}"
            f"fields {PAGE_FIELDS}; "
            f"limit {sanitized_limit}; "
            f"offset {max(0, int(offset))}; "
            "sort id asc;"
        )
        payload = self._query_games(
            body,
            error_prefix="IGDB request failed",
            generic_error="failed to query IGDB games",
        )
        if not isinstance(payload, list):
            raise IGDBRequestError("unexpected IGDB page payload")
        return payload

    def _query_games(self, body: str, *, error_prefix: str, generic_error: str) -> Any:
        access_token = self.get_access_token()
        request = self._request_factory(
            f"{self.BASE_URL}/games",
            data=body.encode("utf-8"),
            method="POST",
        )
        self._apply_headers(request, access_token)
        return self._request_json(
            request,
            error_prefix=error_prefix,
            generic_error=generic_error,
        )

    def _apply_headers(self, request: Any, access_token: str) -> None:
        request.add_header("Client-ID", self._client_id)
        request.add_header("Authorization", f"Bearer {access_token}")
        request.add_header("Accept", "application/json")
        request.add_header("User-Agent", self.user_agent)

    def _request_json(
        self,
        request: Any,
        *,
        error_prefix: str,
        generic_error: str,
    ) -> Any:
        try:
            with self._opener(request, timeout=self._timeout) as response:
                body = response.read()
        except HTTPError as exc:
            raise IGDBRequestError(_format_http_error(error_prefix, exc)) from exc
        except Exception as exc:
            raise IGDBRequestError(f"{generic_error}: {exc}") from exc
        try:
            text = body.decode("utf-8") if body else ""
        except UnicodeDecodeError as exc:
            raise IGDBRequestError("invalid response encoding from IGDB") from exc
        try:
            return json.loads(text) if text else []
        except ValueError as exc:
            raise IGDBRequestError("invalid JSON response from IGDB") from exc


def _format_http_error(prefix: str, error: HTTPError) -> str:
    message = f"{prefix}: {error.code}"
    error_message = ""
    try:
        error_body = error.read()
    except Exception:  # pragma: no cover - best effort to capture error body
        error_body = b""
    if error_body:
        error_message = error_body.decode("utf-8", errors="replace").strip()
    if not error_message and error.reason:
        error_message = str(error.reason)
    if error_message:
        message = f"{message} {error_message}"
    return message
