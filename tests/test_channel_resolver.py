"""Tests for channel filtering and quiet-hours handling."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from notification_engine.application.channel_resolver import (
    effective_channels,
    is_in_quiet_hours,
    next_available_time,
    resolve_channels,
)
from notification_engine.application.preferences import default_preferences
from notification_engine.domain.entities import CategoryPreference
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)

IN_APP = NotificationChannel.IN_APP
WEBSOCKET = NotificationChannel.WEBSOCKET
EMAIL = NotificationChannel.EMAIL
PUSH = NotificationChannel.PUSH
SMS = NotificationChannel.SMS


def _quiet(start: str = "22:00", end: str = "08:00", tz: str = "UTC"):
    return replace(
        default_preferences(1),
        quiet_hours_enabled=True,
        quiet_hours_start=start,
        quiet_hours_end=end,
        timezone=tz,
    )


def test_disabled_global_channels_are_removed() -> None:
    preferences = replace(default_preferences(1), email_enabled=False)

    channels = effective_channels([IN_APP, EMAIL, SMS], NotificationCategory.TASK, preferences)

    assert channels == [IN_APP]


def test_category_rule_limits_channels() -> None:
    preferences = default_preferences(1)

    channels = effective_channels(
        [IN_APP, WEBSOCKET, EMAIL, PUSH], NotificationCategory.SOCIAL, preferences
    )

    assert channels == [IN_APP, WEBSOCKET]


def test_disabled_category_falls_back_to_in_app() -> None:
    preferences = default_preferences(1)
    preferences.categories[NotificationCategory.GOAL] = CategoryPreference(
        enabled=False, channels=[EMAIL]
    )

    channels = effective_channels([EMAIL, PUSH], NotificationCategory.GOAL, preferences)

    assert channels == [IN_APP]


def test_without_preferences_requested_channels_are_kept_once() -> None:
    channels = effective_channels([EMAIL, EMAIL, PUSH], NotificationCategory.STUDY, None)

    assert channels == [EMAIL, PUSH]


def test_wrapping_window_in_user_timezone() -> None:
    preferences = _quiet(tz="America/New_York")

    # 03:30 UTC is 22:30 the previous evening in New York (EST).
    assert is_in_quiet_hours(preferences, datetime(2026, 1, 15, 3, 30, tzinfo=timezone.utc))
    # 15:00 UTC is 10:00 in New York.
    assert not is_in_quiet_hours(preferences, datetime(2026, 1, 15, 15, 0, tzinfo=timezone.utc))


def test_non_wrapping_window() -> None:
    preferences = _quiet(start="13:00", end="14:00")

    assert is_in_quiet_hours(preferences, datetime(2026, 1, 15, 13, 30, tzinfo=timezone.utc))
    assert not is_in_quiet_hours(preferences, datetime(2026, 1, 15, 14, 30, tzinfo=timezone.utc))


def test_disabled_quiet_hours_never_match() -> None:
    preferences = replace(_quiet(start="00:00", end="23:59"), quiet_hours_enabled=False)

    assert not is_in_quiet_hours(preferences, datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


def test_next_available_time_rolls_to_tomorrow_after_end() -> None:
    preferences = _quiet(tz="America/New_York")
    now = datetime(2026, 1, 15, 3, 30, tzinfo=timezone.utc)

    # Local time is 22:30 on Jan 14, so quiet hours end at 08:00 EST on Jan 15.
    assert next_available_time(preferences, now) == datetime(
        2026, 1, 15, 13, 0, tzinfo=timezone.utc
    )


def test_next_available_time_is_today_before_end() -> None:
    preferences = _quiet()
    now = datetime(2026, 1, 15, 2, 0, tzinfo=timezone.utc)

    assert next_available_time(preferences, now) == datetime(
        2026, 1, 15, 8, 0, tzinfo=timezone.utc
    )


def test_end_minute_is_quiet_but_not_deferred_to_tomorrow() -> None:
    preferences = _quiet()
    now = datetime(2026, 1, 15, 8, 0, 30, tzinfo=timezone.utc)

    assert is_in_quiet_hours(preferences, now)
    assert next_available_time(preferences, now) == datetime(
        2026, 1, 15, 8, 0, tzinfo=timezone.utc
    )


def test_non_urgent_notifications_are_deferred_with_channels_kept() -> None:
    preferences = _quiet()
    now = datetime(2026, 1, 15, 23, 0, tzinfo=timezone.utc)

    resolution = resolve_channels(
        [IN_APP, WEBSOCKET], NotificationCategory.TASK, NotificationPriority.HIGH, preferences, now
    )

    assert resolution.deferred
    assert resolution.in_quiet_hours
    assert resolution.channels == [IN_APP, WEBSOCKET]
    assert resolution.defer_until == datetime(2026, 1, 16, 8, 0, tzinfo=timezone.utc)


def test_urgent_notifications_bypass_quiet_hours_and_add_email() -> None:
    preferences = _quiet()
    now = datetime(2026, 1, 15, 23, 0, tzinfo=timezone.utc)

    resolution = resolve_channels(
        [IN_APP], NotificationCategory.SESSION, NotificationPriority.URGENT, preferences, now
    )

    assert not resolution.deferred
    assert resolution.channels == [IN_APP, EMAIL]


def test_outside_quiet_hours_nothing_is_deferred() -> None:
    resolution = resolve_channels(
        [IN_APP],
        NotificationCategory.TASK,
        NotificationPriority.LOW,
        _quiet(),
        datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc),
    )

    assert not resolution.deferred
    assert not resolution.in_quiet_hours
