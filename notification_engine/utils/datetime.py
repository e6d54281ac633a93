"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_DEFAULT_TIMEZONE: Final[str] = "UTC"
_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)
_TIME_OF_DAY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<hours>[01]?\d|2[0-3]):(?P<minutes>[0-5]\d)$"
)


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in UTC.

    Naive values are assumed to already be UTC, which is how they are stored
    in the database.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC without ``tzinfo`` for storage."""

    normalized = ensure_utc(value)
    if normalized is None:
        return None
    return normalized.replace(tzinfo=None)


def now_naive_utc() -> datetime:
    """Return the current UTC time without ``tzinfo``; used as column default."""

    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


@lru_cache(maxsize=128)
def resolve_timezone(tz_name: str | None) -> tzinfo:
    """Resolve ``tz_name`` into a ``tzinfo`` instance.

    IANA names are tried first, then ``UTC+05:30`` style offsets. Unknown
    values fall back to UTC.
    """

    name = (tz_name or "").strip() or _DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        match = _OFFSET_PATTERN.match(name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            offset = timedelta(hours=hours, minutes=minutes)
            return timezone(sign * offset)
    return timezone.utc


def is_known_timezone(tz_name: str) -> bool:
    """Return ``True`` when ``tz_name`` names a zone or a UTC offset."""

    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return _OFFSET_PATTERN.match(tz_name.strip()) is not None
    return True


def parse_time_of_day(value: str) -> tuple[int, int]:
    """Parse an ``HH:mm`` string into ``(hours, minutes)``."""

    match = _TIME_OF_DAY_PATTERN.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid time of day '{value}', expected HH:mm")
    return int(match.group("hours")), int(match.group("minutes"))


def minutes_of_day(value: str) -> int:
    """Return the number of minutes since midnight for an ``HH:mm`` string."""

    hours, minutes = parse_time_of_day(value)
    return hours * 60 + minutes


__all__ = [
    "ensure_utc",
    "is_known_timezone",
    "minutes_of_day",
    "now_naive_utc",
    "now_utc",
    "parse_time_of_day",
    "resolve_timezone",
    "to_naive_utc",
]
