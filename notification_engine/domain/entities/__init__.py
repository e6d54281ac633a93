"""Domain entities exposed by the notification engine."""

from .batch import NotificationBatch
from .delivery_attempt import DeliveryAttempt
from .notification import (
    Notification,
    NotificationDraft,
    NotificationFilter,
    NotificationStats,
)
from .preferences import CategoryPreference, NotificationPreferences
from .push_subscription import PushSubscription
from .scheduled_notification import RecurringRule, ScheduledNotification
from .template import NotificationTemplate
from .user import User

__all__ = [
    "CategoryPreference",
    "DeliveryAttempt",
    "Notification",
    "NotificationBatch",
    "NotificationDraft",
    "NotificationFilter",
    "NotificationPreferences",
    "NotificationStats",
    "NotificationTemplate",
    "PushSubscription",
    "RecurringRule",
    "ScheduledNotification",
    "User",
]
