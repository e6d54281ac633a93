"""Domain entity representing a notification fan-out job."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from notification_engine.domain.enums import BatchStatus


@dataclass
class NotificationBatch:
    id: int | None
    name: str
    user_ids: list[int]
    description: str | None = None
    template_id: int | None = None
    template_variables: dict[str, Any] = field(default_factory=dict)
    status: BatchStatus = BatchStatus.PENDING
    total_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


__all__ = ["NotificationBatch"]
