"""General-purpose helper utilities shared across the application."""

from __future__ import annotations

import numbers
from datetime import date, datetime, timezone
from typing import Any

import pandas as pd


__all__ = [
    "_coerce_positive_id",
    "_format_first_release_date",
    "_isoformat_values",
    "_normalize_lookup_name",
    "_parse_iso_date",
]


def _normalize_lookup_name(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def _coerce_positive_id(value: Any) -> int | None:
    """Return ``value`` as a positive integer identifier, or ``None``."""

    if value is None or isinstance(value, bool):
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, numbers.Integral):
        numeric = int(value)
    elif isinstance(value, numbers.Real):
        if not float(value).is_integer():
            return None
        numeric = int(value)
    else:
        text = str(value).strip()
        if text.endswith(".0") and text[:-2].isdigit():
            text = text[:-2]
        if not text.isdigit():
            return None
        numeric = int(text)
    return numeric if numeric > 0 else None


def _format_first_release_date(value: Any) -> str | None:
    """Return the ISO date (UTC) for a Unix release timestamp, if usable.

    Negative timestamps are valid and name dates before 1970.
    """

    if value in (None, "", 0) or isinstance(value, bool):
        return None
    try:
        timestamp = float(value)
    except (TypeError, ValueError):
        try:
            timestamp = float(str(value).strip())
        except (TypeError, ValueError):
            return None
    if timestamp == 0:
        return None
    try:
        dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return dt.date().isoformat()


def _parse_iso_date(value: Any) -> str | None:
    """Return ``value`` as a ``YYYY-MM-DD`` string.

    Accepts dates, datetimes and ISO strings, including full timestamps
    such as ``2024-03-01T10:00:00Z``. Blank values map to ``None``; anything
    else that does not parse raises :class:`ValueError`.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        raise ValueError(f"not a date: {value!r}")
    text = value.strip()
    if not text:
        return None
    return date.fromisoformat(text[:10]).isoformat()


def _isoformat_values(row: Any) -> dict[str, Any]:
    """Return ``row`` as a dict with date and datetime values rendered as ISO text."""

    values = dict(row)
    for key, value in values.items():
        if isinstance(value, (date, datetime)):
            values[key] = value.isoformat()
    return values
