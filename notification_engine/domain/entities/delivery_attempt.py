"""Domain entity recording one channel's delivery outcome."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from notification_engine.domain.enums import DeliveryStatus, NotificationChannel


@dataclass
class DeliveryAttempt:
    """Delivery record for a (notification, channel) pair."""

    id: int | None
    notification_id: int
    channel: NotificationChannel
    status: DeliveryStatus = DeliveryStatus.PENDING
    attempts: int = 0
    last_attempt_at: datetime | None = None
    delivered_at: datetime | None = None
    failure_reason: str | None = None
    external_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


__all__ = ["DeliveryAttempt"]
