"""
Date Grouping

Legacy timestamps arrive in three encodings:

- ISO-8601 with a ``T`` separator   (``2025-09-28T00:17:47.323Z``)
- SQL-style datetime                 (``2025-09-24 23:08:53``)
- Unix epoch, seconds or milliseconds (``1696118400`` / ``1696118400000``)

Anything else falls back to the operator-configured fallback date, which is
always passed in explicitly.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from .models import CanonicalDocument

# Epoch values above this are milliseconds
EPOCH_MILLIS_THRESHOLD = 1e12


def _as_epoch_millis(value: str) -> Optional[float]:
    try:
        num = float(value)
    except ValueError:
        return None
    if not math.isfinite(num):
        return None
    return num if num > EPOCH_MILLIS_THRESHOLD else num * 1000


def _epoch_to_datetime(millis: float) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _is_calendar_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _is_sql_datetime(value: str) -> bool:
    return " " in value and "-" in value


def _parse_iso(value: str) -> Optional[datetime]:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _format_iso(dt: datetime) -> str:
    """Render with millisecond precision; UTC and naive values end in ``Z``."""
    if dt.tzinfo is None:
        return dt.isoformat(timespec="milliseconds") + "Z"
    rendered = dt.isoformat(timespec="milliseconds")
    if rendered.endswith("+00:00"):
        rendered = rendered[:-6] + "Z"
    return rendered


def extract_date(timestamp: Optional[object], fallback_date: str) -> str:
    """
    Return the ``YYYY-MM-DD`` calendar date of a legacy timestamp.
    """
    if timestamp is None or timestamp == "":
        return fallback_date

    value = str(timestamp).strip()

    if "T" in value or _is_sql_datetime(value):
        day = value[:10]
        return day if _is_calendar_date(day) else fallback_date

    millis = _as_epoch_millis(value)
    if millis is not None:
        dt = _epoch_to_datetime(millis)
        if dt is not None:
            return dt.strftime("%Y-%m-%d")

    return fallback_date


def normalize_timestamp(timestamp: Optional[object], fallback_date: str) -> str:
    """
    Normalize a legacy timestamp to the ISO-8601 form stored in archives.

    ISO values that already parse are kept verbatim. SQL datetimes are
    re-rendered with milliseconds, keeping any fractional seconds or offset.
    Without usable time-of-day information the result is noon on
    ``fallback_date``.
    """
    noon = f"{fallback_date}T12:00:00.000Z"
    if timestamp is None or timestamp == "":
        return noon

    value = str(timestamp).strip()

    if "T" in value and "-" in value:
        return value if _parse_iso(value) is not None else noon

    if _is_sql_datetime(value):
        dt = _parse_iso(value.replace(" ", "T", 1))
        return _format_iso(dt) if dt is not None else noon

    millis = _as_epoch_millis(value)
    if millis is not None:
        dt = _epoch_to_datetime(millis)
        if dt is not None:
            return _format_iso(dt)

    return noon


def timestamp_sort_key(timestamp: Optional[object]) -> datetime:
    """
    Sort key for archive timestamps; unparseable values sort last.

    Archives written by other producers may carry epoch numbers instead of
    ISO strings, so those are accepted too.
    """
    if timestamp is not None and timestamp != "":
        value = str(timestamp).strip()
        dt = _parse_iso(value)
        if dt is None:
            millis = _as_epoch_millis(value)
            if millis is not None:
                dt = _epoch_to_datetime(millis)
        if dt is not None:
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt
    return datetime.max.replace(tzinfo=timezone.utc)


def group_by_date(
    documents: Iterable[CanonicalDocument],
    fallback_date: str,
) -> Dict[str, List[CanonicalDocument]]:
    """
    Bucket documents by calendar date, keeping scan order within a date.
    """
    groups: Dict[str, List[CanonicalDocument]] = OrderedDict()
    for doc in documents:
        day = extract_date(doc.timestamp, fallback_date)
        groups.setdefault(day, []).append(doc)
    return groups
