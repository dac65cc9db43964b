"""Catalog record types and normalization of raw IGDB payloads."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from helpers import (
    _coerce_positive_id,
    _format_first_release_date,
    _normalize_lookup_name,
)

logger = logging.getLogger(__name__)

IGDB_IMAGE_BASE_URL = "https://images.igdb.com/igdb/image/upload"


__all__ = [
    "CatalogRecord",
    "NamedRef",
    "cover_url_from_cover",
    "normalize_catalog_record",
    "release_date_from_timestamp",
]


@dataclass(frozen=True)
class NamedRef:
    """A genre or platform reference as returned by the catalog."""

    id: int | None
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class CatalogRecord:
    """Immutable representation of one game fetched from IGDB."""

    id: int
    name: str
    cover_url: str | None = None
    summary: str | None = None
    first_release_date: int | None = None
    genres: tuple[NamedRef, ...] = field(default_factory=tuple)
    platforms: tuple[NamedRef, ...] = field(default_factory=tuple)

    @property
    def release_date(self) -> str | None:
        return release_date_from_timestamp(self.first_release_date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cover_url": self.cover_url,
            "summary": self.summary,
            "first_release_date": self.first_release_date,
            "genres": [ref.to_dict() for ref in self.genres],
            "platforms": [ref.to_dict() for ref in self.platforms],
        }


def release_date_from_timestamp(value: Any) -> str | None:
    """Return the ISO release date for an IGDB Unix timestamp."""

    return _format_first_release_date(value)


def cover_url_from_cover(value: Any, size: str = "t_cover_big") -> str | None:
    """Return an absolute cover URL from an IGDB ``cover`` payload."""

    if isinstance(value, Mapping):
        url = _normalize_lookup_name(value.get("url"))
        if url:
            if url.startswith("//"):
                return f"https:{url}"
            return url
        image_id = _normalize_lookup_name(value.get("image_id") or value.get("imageId"))
    else:
        image_id = _normalize_lookup_name(value)
    if not image_id:
        return None
    return f"{IGDB_IMAGE_BASE_URL}/{size}/{image_id}.jpg"


def _parse_refs(value: Any) -> tuple[NamedRef, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    refs: list[NamedRef] = []
    seen: set[int] = set()
    for element in value:
        if isinstance(element, Mapping):
            ref_id = _coerce_positive_id(element.get("id"))
            name = _normalize_lookup_name(element.get("name"))
        else:
            ref_id = None
            name = _normalize_lookup_name(element)
        if not name and ref_id is None:
            continue
        if ref_id is not None:
            if ref_id in seen:
                continue
            seen.add(ref_id)
        refs.append(NamedRef(id=ref_id, name=name))
    return tuple(refs)


def _coerce_timestamp(value: Any) -> int | None:
    if value in (None, "") or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def normalize_catalog_record(item: Any) -> CatalogRecord | None:
    """Return a :class:`CatalogRecord` for a raw IGDB payload.

    Payloads without a usable positive ``id`` are skipped and reported as
    ``None``. Genre and platform entries keep whatever id the payload
    carried; entries without one can be displayed but not stored.
    """

    if isinstance(item, CatalogRecord):
        return item
    if not isinstance(item, Mapping):
        return None

    raw_id = item.get("id")
    igdb_id = _coerce_positive_id(raw_id)
    if igdb_id is None:
        logger.warning("Skipping IGDB entry with invalid id %s", raw_id)
        return None

    summary = _normalize_lookup_name(item.get("summary"))

    return CatalogRecord(
        id=igdb_id,
        name=_normalize_lookup_name(item.get("name")),
        cover_url=cover_url_from_cover(item.get("cover")),
        summary=summary or None,
        first_release_date=_coerce_timestamp(item.get("first_release_date")),
        genres=_parse_refs(item.get("genres")),
        platforms=_parse_refs(item.get("platforms")),
    )
