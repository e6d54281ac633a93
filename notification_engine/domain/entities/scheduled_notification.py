"""Domain entities for deferred and recurring notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    RecurringInterval,
)


@dataclass
class RecurringRule:
    """Repetition settings; bounded by ``end_date`` or ``max_occurrences``.

    ``days_of_week`` uses 0 for Sunday through 6 for Saturday.
    """

    interval: RecurringInterval
    days_of_week: list[int] | None = None
    day_of_month: int | None = None
    end_date: datetime | None = None
    max_occurrences: int | None = None


@dataclass
class ScheduledNotification:
    id: int | None
    user_id: int
    scheduled_at: datetime
    title: str | None = None
    message: str | None = None
    type: NotificationType = NotificationType.INFO
    category: NotificationCategory = NotificationCategory.REMINDER
    priority: NotificationPriority = NotificationPriority.MEDIUM
    channels: list[NotificationChannel] = field(
        default_factory=lambda: [NotificationChannel.IN_APP]
    )
    metadata: dict[str, Any] = field(default_factory=dict)
    template_id: int | None = None
    template_variables: dict[str, Any] = field(default_factory=dict)
    timezone: str = "UTC"
    recurring: RecurringRule | None = None
    is_active: bool = True
    last_executed_at: datetime | None = None
    execution_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


__all__ = ["RecurringRule", "ScheduledNotification"]
