"""Schemas for notification preference endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from notification_engine.domain.entities import CategoryPreference
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)


class CategoryPreferenceSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enabled: bool = True
    channels: list[NotificationChannel] = []
    priority: NotificationPriority = NotificationPriority.MEDIUM

    def to_entity(self) -> CategoryPreference:
        return CategoryPreference(
            enabled=self.enabled,
            channels=list(dict.fromkeys(self.channels)),
            priority=self.priority,
        )


class PreferencesRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    email_enabled: bool
    push_enabled: bool
    in_app_enabled: bool
    sms_enabled: bool
    quiet_hours_enabled: bool
    quiet_hours_start: str
    quiet_hours_end: str
    timezone: str
    categories: dict[NotificationCategory, CategoryPreferenceSchema]
    updated_at: datetime | None = None


class PreferencesUpdate(BaseModel):
    """Partial update; only the fields that are sent are changed."""

    model_config = ConfigDict(extra="forbid")

    email_enabled: bool | None = None
    push_enabled: bool | None = None
    in_app_enabled: bool | None = None
    sms_enabled: bool | None = None
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    timezone: str | None = None
    categories: dict[NotificationCategory, CategoryPreferenceSchema] | None = None

    def to_changes(self) -> dict:
        changes = {
            key: value
            for key, value in self.model_dump(exclude_unset=True, exclude={"categories"}).items()
            if value is not None
        }
        if self.categories is not None:
            changes["categories"] = {
                category: preference.to_entity()
                for category, preference in self.categories.items()
            }
        return changes


__all__ = ["CategoryPreferenceSchema", "PreferencesRead", "PreferencesUpdate"]
