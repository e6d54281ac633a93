"""Domain entities representing user notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)


@dataclass
class Notification:
    """User-facing alert persisted by the engine."""

    id: int | None
    user_id: int
    title: str
    message: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    status: NotificationStatus = NotificationStatus.PENDING
    channels: list[NotificationChannel] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    scheduled_at: datetime | None = None
    expires_at: datetime | None = None
    template_id: int | None = None
    template_variables: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    is_archived: bool = False
    read_at: datetime | None = None
    archived_at: datetime | None = None
    batch_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class NotificationDraft:
    """Content requested by a caller before channels are resolved.

    A draft is either templated (``template_id`` set, title and message are
    rendered from the template) or literal (``title`` and ``message`` given).
    """

    title: str | None = None
    message: str | None = None
    type: NotificationType = NotificationType.INFO
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    channels: list[NotificationChannel] = field(
        default_factory=lambda: [NotificationChannel.IN_APP, NotificationChannel.WEBSOCKET]
    )
    metadata: dict[str, Any] = field(default_factory=dict)
    scheduled_at: datetime | None = None
    expires_at: datetime | None = None
    template_id: int | None = None
    template_variables: dict[str, Any] = field(default_factory=dict)
    batch_id: int | None = None

    @property
    def is_templated(self) -> bool:
        return self.template_id is not None


@dataclass
class NotificationFilter:
    """Query options used when listing a user's notifications."""

    type: NotificationType | None = None
    category: NotificationCategory | None = None
    priority: NotificationPriority | None = None
    status: NotificationStatus | None = None
    is_read: bool | None = None
    is_archived: bool | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int = 50
    offset: int = 0
    sort_by: str = "created_at"
    sort_order: str = "desc"


@dataclass
class NotificationStats:
    """Aggregated counters for a user's notifications."""

    total: int
    unread: int
    by_type: dict[str, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    by_status: dict[str, int] = field(default_factory=dict)
    delivery_rate: float = 0.0
    average_delivery_time: float = 0.0


__all__ = [
    "Notification",
    "NotificationDraft",
    "NotificationFilter",
    "NotificationStats",
]
