"""Domain entities describing a user's notification preferences."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)


@dataclass
class CategoryPreference:
    enabled: bool
    channels: list[NotificationChannel] = field(default_factory=list)
    priority: NotificationPriority = NotificationPriority.MEDIUM


@dataclass
class NotificationPreferences:
    """Per-user channel toggles, quiet hours and category rules."""

    id: int | None
    user_id: int
    email_enabled: bool = True
    push_enabled: bool = True
    in_app_enabled: bool = True
    sms_enabled: bool = False
    quiet_hours_enabled: bool = False
    quiet_hours_start: str = "22:00"
    quiet_hours_end: str = "08:00"
    timezone: str = "UTC"
    categories: dict[NotificationCategory, CategoryPreference] = field(
        default_factory=dict
    )
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def channel_enabled(self, channel: NotificationChannel) -> bool:
        """Return the global toggle for ``channel``.

        The websocket channel has no toggle of its own.
        """

        toggles = {
            NotificationChannel.EMAIL: self.email_enabled,
            NotificationChannel.PUSH: self.push_enabled,
            NotificationChannel.IN_APP: self.in_app_enabled,
            NotificationChannel.SMS: self.sms_enabled,
        }
        return toggles.get(channel, True)


__all__ = ["CategoryPreference", "NotificationPreferences"]
