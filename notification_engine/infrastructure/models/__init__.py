"""ORM models used by the notification engine infrastructure."""

from .batch import NotificationBatchModel
from .delivery_attempt import DeliveryAttemptModel
from .notification import NotificationModel
from .preferences import NotificationPreferencesModel
from .push_subscription import PushSubscriptionModel
from .scheduled_notification import ScheduledNotificationModel
from .template import NotificationTemplateModel
from .user import UserModel

__all__ = [
    "DeliveryAttemptModel",
    "NotificationBatchModel",
    "NotificationModel",
    "NotificationPreferencesModel",
    "NotificationTemplateModel",
    "PushSubscriptionModel",
    "ScheduledNotificationModel",
    "UserModel",
]
