"""Schemas for notification template endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notification_engine.domain.entities import NotificationTemplate
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)


class TemplateCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.INFO
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    channels: list[NotificationChannel] = Field(default_factory=list)
    variables: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_entity(self) -> NotificationTemplate:
        return NotificationTemplate(id=None, **self.model_dump())


class TemplateUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    message: str | None = Field(default=None, min_length=1)
    type: NotificationType | None = None
    category: NotificationCategory | None = None
    priority: NotificationPriority | None = None
    channels: list[NotificationChannel] | None = None
    variables: list[str] | None = None
    metadata: dict[str, Any] | None = None
    is_active: bool | None = None


class TemplateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    title: str
    message: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    channels: list[NotificationChannel]
    variables: list[str]
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


__all__ = ["TemplateCreate", "TemplateRead", "TemplateUpdate"]
