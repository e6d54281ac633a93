"""Default notification preferences for new users."""

from __future__ import annotations

from notification_engine.domain.entities import (
    CategoryPreference,
    NotificationPreferences,
)
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)

_DEFAULT_CHANNELS = (
    NotificationChannel.IN_APP,
    NotificationChannel.WEBSOCKET,
    NotificationChannel.EMAIL,
)
_LIVE_ONLY_CHANNELS = (NotificationChannel.IN_APP, NotificationChannel.WEBSOCKET)


def default_category_preferences() -> dict[NotificationCategory, CategoryPreference]:
    def _entry(channels, priority):
        return CategoryPreference(enabled=True, channels=list(channels), priority=priority)

    return {
        NotificationCategory.STUDY: _entry(_DEFAULT_CHANNELS, NotificationPriority.MEDIUM),
        NotificationCategory.TASK: _entry(_DEFAULT_CHANNELS, NotificationPriority.MEDIUM),
        NotificationCategory.GOAL: _entry(_DEFAULT_CHANNELS, NotificationPriority.MEDIUM),
        NotificationCategory.SESSION: _entry(_LIVE_ONLY_CHANNELS, NotificationPriority.LOW),
        NotificationCategory.SYSTEM: _entry(_DEFAULT_CHANNELS, NotificationPriority.HIGH),
        NotificationCategory.SOCIAL: _entry(_LIVE_ONLY_CHANNELS, NotificationPriority.LOW),
        NotificationCategory.REMINDER: _entry(
            (*_DEFAULT_CHANNELS, NotificationChannel.PUSH), NotificationPriority.HIGH
        ),
    }


def default_preferences(user_id: int) -> NotificationPreferences:
    """Email, push and in-app on; SMS and quiet hours off."""

    return NotificationPreferences(
        id=None,
        user_id=user_id,
        categories=default_category_preferences(),
    )


__all__ = ["default_category_preferences", "default_preferences"]
