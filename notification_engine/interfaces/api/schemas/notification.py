"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notification_engine.domain.entities import NotificationDraft
from notification_engine.domain.enums import (
    BulkAction,
    DeliveryStatus,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)


class NotificationCreate(BaseModel):
    """Payload used to create a notification directly or from a template."""

    model_config = ConfigDict(extra="forbid")

    user_id: int | None = Field(
        default=None, description="Recipient; defaults to the authenticated user"
    )
    title: str | None = Field(default=None, max_length=255)
    message: str | None = None
    type: NotificationType = NotificationType.INFO
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    channels: list[NotificationChannel] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    scheduled_at: datetime | None = None
    expires_at: datetime | None = None
    template_id: int | None = None
    template_variables: dict[str, Any] = Field(default_factory=dict)

    def to_draft(self) -> NotificationDraft:
        values = self.model_dump(exclude={"user_id", "channels"})
        if self.channels:
            values["channels"] = list(dict.fromkeys(self.channels))
        return NotificationDraft(**values)


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    message: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    status: NotificationStatus
    channels: list[NotificationChannel]
    metadata: dict[str, Any] = Field(default_factory=dict)
    scheduled_at: datetime | None = None
    expires_at: datetime | None = None
    template_id: int | None = None
    is_read: bool
    is_archived: bool
    read_at: datetime | None = None
    archived_at: datetime | None = None
    batch_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class NotificationPage(BaseModel):
    items: list[NotificationRead]
    total: int
    limit: int
    offset: int


class NotificationIdsRequest(BaseModel):
    """Payload used to act on a set of notifications."""

    ids: list[int] = Field(..., min_length=1, description="Notification identifiers")

    def unique_ids(self) -> list[int]:
        """Return the identifiers without duplicates, preserving order."""

        return list(dict.fromkeys(self.ids))


class BulkOperationRequest(NotificationIdsRequest):
    action: BulkAction
    data: dict[str, Any] = Field(default_factory=dict)


class OperationResult(BaseModel):
    affected: int


class UnreadCountRead(BaseModel):
    count: int
    hasUnread: bool


class NotificationStatsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    unread: int
    by_type: dict[str, int]
    by_category: dict[str, int]
    by_priority: dict[str, int]
    by_status: dict[str, int]
    delivery_rate: float
    average_delivery_time: float


class DeliveryAttemptRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    notification_id: int
    channel: NotificationChannel
    status: DeliveryStatus
    attempts: int
    last_attempt_at: datetime | None = None
    delivered_at: datetime | None = None
    failure_reason: str | None = None
    external_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class TestNotificationRequest(BaseModel):
    type: NotificationType = NotificationType.INFO
    channel: NotificationChannel | None = None


__all__ = [
    "BulkOperationRequest",
    "DeliveryAttemptRead",
    "NotificationCreate",
    "NotificationIdsRequest",
    "NotificationPage",
    "NotificationRead",
    "NotificationStatsRead",
    "OperationResult",
    "TestNotificationRequest",
    "UnreadCountRead",
]
