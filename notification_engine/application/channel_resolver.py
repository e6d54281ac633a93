"""Compute the channels a notification is delivered on, and when."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Iterable

from notification_engine.domain.entities import NotificationPreferences
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)
from notification_engine.utils import ensure_utc, minutes_of_day, parse_time_of_day, resolve_timezone


@dataclass(frozen=True)
class ChannelResolution:
    """Effective channels plus the quiet-hours decision.

    ``defer_until`` is set when delivery must wait for quiet hours to end.
    """

    channels: list[NotificationChannel] = field(default_factory=list)
    defer_until: datetime | None = None
    in_quiet_hours: bool = False

    @property
    def deferred(self) -> bool:
        return self.defer_until is not None


def _unique(channels: Iterable[NotificationChannel]) -> list[NotificationChannel]:
    seen: list[NotificationChannel] = []
    for channel in channels:
        channel = NotificationChannel(channel)
        if channel not in seen:
            seen.append(channel)
    return seen


def effective_channels(
    requested: Iterable[NotificationChannel],
    category: NotificationCategory,
    preferences: NotificationPreferences | None,
) -> list[NotificationChannel]:
    """Filter ``requested`` by the global toggles and the category rule.

    The result always contains at least the in-app channel.
    """

    channels = _unique(requested)
    if preferences is not None:
        channels = [channel for channel in channels if preferences.channel_enabled(channel)]
        category_preference = preferences.categories.get(category)
        if category_preference is not None:
            if not category_preference.enabled:
                channels = []
            else:
                allowed = set(category_preference.channels)
                channels = [channel for channel in channels if channel in allowed]
    if not channels:
        channels = [NotificationChannel.IN_APP]
    return channels


def is_in_quiet_hours(
    preferences: NotificationPreferences | None, now: datetime
) -> bool:
    """Return ``True`` when ``now`` falls in the user's local quiet window.

    A window whose start is later than its end wraps past midnight.
    """

    if preferences is None or not preferences.quiet_hours_enabled:
        return False
    local_now = ensure_utc(now).astimezone(resolve_timezone(preferences.timezone))
    current = local_now.hour * 60 + local_now.minute
    start = minutes_of_day(preferences.quiet_hours_start)
    end = minutes_of_day(preferences.quiet_hours_end)
    if start > end:
        return current >= start or current <= end
    return start <= current <= end


def next_available_time(preferences: NotificationPreferences, now: datetime) -> datetime:
    """Return the end of quiet hours today, or tomorrow if already past, in UTC.

    Comparison is per minute: during the end minute itself the window is
    still quiet, and the returned time is that same minute today.
    """

    tz = resolve_timezone(preferences.timezone)
    local_now = ensure_utc(now).astimezone(tz)
    hours, minutes = parse_time_of_day(preferences.quiet_hours_end)
    day = local_now.date()
    if local_now.hour * 60 + local_now.minute > hours * 60 + minutes:
        day += timedelta(days=1)
    return datetime.combine(day, time(hours, minutes), tzinfo=tz).astimezone(timezone.utc)


def resolve_channels(
    requested: Iterable[NotificationChannel],
    category: NotificationCategory,
    priority: NotificationPriority,
    preferences: NotificationPreferences | None,
    now: datetime,
) -> ChannelResolution:
    channels = effective_channels(requested, category, preferences)
    if not is_in_quiet_hours(preferences, now):
        return ChannelResolution(channels=channels)
    if priority is NotificationPriority.URGENT:
        if NotificationChannel.EMAIL not in channels:
            channels.append(NotificationChannel.EMAIL)
        return ChannelResolution(channels=channels, in_quiet_hours=True)
    return ChannelResolution(
        channels=channels,
        defer_until=next_available_time(preferences, now),
        in_quiet_hours=True,
    )


__all__ = [
    "ChannelResolution",
    "effective_channels",
    "is_in_quiet_hours",
    "next_available_time",
    "resolve_channels",
]
