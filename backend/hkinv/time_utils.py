from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

"""
Time handling: everything is stored UTC-naive and leaves the API as
ISO-8601 with a trailing Z (timestamps) or YYYY-MM-DD (calendar dates).
"""


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def _as_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2024-03-05T08:00" is taken as UTC; "...Z" and "...+07:00" are converted.
    Blank input gives None, anything unparsable raises ValueError.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return _as_utc_naive(datetime.fromisoformat(text))


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """A bare YYYY-MM-DD, or the UTC date part of a full ISO timestamp."""
    text = (value or "").strip()
    if not text:
        return None
    if len(text) == len("YYYY-MM-DD"):
        return date.fromisoformat(text)
    return parse_iso_datetime(text).date()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    stamp = _as_utc_naive(dt).replace(microsecond=0)
    return f"{stamp.isoformat()}Z"


def to_iso_date(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    if isinstance(d, datetime):
        d = d.date()
    return d.isoformat()
