"""Repository implementations backed by SQLAlchemy sessions."""

from .batch_repository import NotificationBatchRepository
from .delivery_attempt_repository import DeliveryAttemptRepository
from .notification_repository import NotificationRepository
from .preferences_repository import NotificationPreferencesRepository
from .push_subscription_repository import PushSubscriptionRepository
from .scheduled_notification_repository import ScheduledNotificationRepository
from .template_repository import NotificationTemplateRepository
from .user_repository import UserRepository

__all__ = [
    "DeliveryAttemptRepository",
    "NotificationBatchRepository",
    "NotificationPreferencesRepository",
    "NotificationRepository",
    "NotificationTemplateRepository",
    "PushSubscriptionRepository",
    "ScheduledNotificationRepository",
    "UserRepository",
]
