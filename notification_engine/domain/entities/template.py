"""Domain entity representing a reusable notification template."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)


@dataclass
class NotificationTemplate:
    """Content with ``{{variable}}`` placeholders in title and message."""

    id: int | None
    name: str
    title: str
    message: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    channels: list[NotificationChannel] = field(default_factory=list)
    variables: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    description: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


__all__ = ["NotificationTemplate"]
