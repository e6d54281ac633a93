"""Utility helpers for reusable functionality."""

from .async_bridge import LoopBridge
from .datetime import (
    ensure_utc,
    is_known_timezone,
    minutes_of_day,
    now_naive_utc,
    now_utc,
    parse_time_of_day,
    resolve_timezone,
    to_naive_utc,
)

__all__ = [
    "LoopBridge",
    "ensure_utc",
    "is_known_timezone",
    "minutes_of_day",
    "now_naive_utc",
    "now_utc",
    "parse_time_of_day",
    "resolve_timezone",
    "to_naive_utc",
]
