"""Enumerations shared by the notification domain."""

from __future__ import annotations

from enum import Enum


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    REMINDER = "reminder"
    ACHIEVEMENT = "achievement"


class NotificationCategory(str, Enum):
    STUDY = "study"
    TASK = "task"
    GOAL = "goal"
    SESSION = "session"
    SYSTEM = "system"
    SOCIAL = "social"
    REMINDER = "reminder"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    READ = "read"
    ARCHIVED = "archived"


class NotificationChannel(str, Enum):
    IN_APP = "in_app"
    WEBSOCKET = "websocket"
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


class BatchStatus(str, Enum):
    """Lifecycle of a batch; transitions only move forward."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    def can_transition_to(self, target: "BatchStatus") -> bool:
        return target in _BATCH_TRANSITIONS[self]


_BATCH_TRANSITIONS: dict[BatchStatus, frozenset[BatchStatus]] = {
    BatchStatus.PENDING: frozenset({BatchStatus.PROCESSING, BatchStatus.FAILED}),
    BatchStatus.PROCESSING: frozenset({BatchStatus.COMPLETED, BatchStatus.FAILED}),
    BatchStatus.COMPLETED: frozenset(),
    BatchStatus.FAILED: frozenset(),
}


class RecurringInterval(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BulkAction(str, Enum):
    MARK_AS_READ = "markAsRead"
    MARK_AS_UNREAD = "markAsUnread"
    ARCHIVE = "archive"
    DELETE = "delete"
    UPDATE_PRIORITY = "updatePriority"


__all__ = [
    "BatchStatus",
    "BulkAction",
    "DeliveryStatus",
    "NotificationCategory",
    "NotificationChannel",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
    "RecurringInterval",
]
