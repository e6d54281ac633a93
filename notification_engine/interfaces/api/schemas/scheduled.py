"""Schemas for scheduled and recurring notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notification_engine.domain.entities import RecurringRule, ScheduledNotification
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    RecurringInterval,
)

_NULLABLE_FIELDS = frozenset({"title", "message", "template_id"})


class RecurringRuleSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    interval: RecurringInterval
    days_of_week: list[int] | None = Field(
        default=None, description="0 = Sunday ... 6 = Saturday"
    )
    day_of_month: int | None = None
    end_date: datetime | None = None
    max_occurrences: int | None = None

    def to_entity(self) -> RecurringRule:
        return RecurringRule(**self.model_dump())


class ScheduledNotificationCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: int | None = None
    scheduled_at: datetime
    title: str | None = Field(default=None, max_length=255)
    message: str | None = None
    type: NotificationType = NotificationType.INFO
    category: NotificationCategory = NotificationCategory.REMINDER
    priority: NotificationPriority = NotificationPriority.MEDIUM
    channels: list[NotificationChannel] = Field(
        default_factory=lambda: [NotificationChannel.IN_APP]
    )
    metadata: dict[str, Any] = Field(default_factory=dict)
    template_id: int | None = None
    template_variables: dict[str, Any] = Field(default_factory=dict)
    timezone: str = "UTC"
    recurring: RecurringRuleSchema | None = None

    def to_entity(self, user_id: int) -> ScheduledNotification:
        values = self.model_dump(exclude={"user_id", "recurring"})
        return ScheduledNotification(
            id=None,
            user_id=user_id,
            recurring=self.recurring.to_entity() if self.recurring else None,
            **values,
        )


class ScheduledNotificationUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scheduled_at: datetime | None = None
    title: str | None = Field(default=None, max_length=255)
    message: str | None = None
    type: NotificationType | None = None
    category: NotificationCategory | None = None
    priority: NotificationPriority | None = None
    channels: list[NotificationChannel] | None = None
    metadata: dict[str, Any] | None = None
    template_id: int | None = None
    template_variables: dict[str, Any] | None = None
    timezone: str | None = None
    recurring: RecurringRuleSchema | None = None

    def to_changes(self) -> dict[str, Any]:
        changes = {
            key: value
            for key, value in self.model_dump(exclude_unset=True, exclude={"recurring"}).items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        if "recurring" in self.model_fields_set:
            changes["recurring"] = self.recurring.to_entity() if self.recurring else None
        return changes


class ScheduledNotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    scheduled_at: datetime
    title: str | None = None
    message: str | None = None
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    channels: list[NotificationChannel]
    metadata: dict[str, Any] = Field(default_factory=dict)
    template_id: int | None = None
    template_variables: dict[str, Any] = Field(default_factory=dict)
    timezone: str
    recurring: RecurringRuleSchema | None = None
    is_active: bool
    last_executed_at: datetime | None = None
    execution_count: int
    created_at: datetime | None = None


__all__ = [
    "RecurringRuleSchema",
    "ScheduledNotificationCreate",
    "ScheduledNotificationRead",
    "ScheduledNotificationUpdate",
]
