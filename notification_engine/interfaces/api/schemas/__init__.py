from .admin import DisconnectRequest, DisconnectResult
from .batch import BatchCreate, BatchRead
from .notification import (
    BulkOperationRequest,
    DeliveryAttemptRead,
    NotificationCreate,
    NotificationIdsRequest,
    NotificationPage,
    NotificationRead,
    NotificationStatsRead,
    OperationResult,
    TestNotificationRequest,
    UnreadCountRead,
)
from .preferences import CategoryPreferenceSchema, PreferencesRead, PreferencesUpdate
from .push import (
    PushKeys,
    PushSubscriptionCreate,
    PushSubscriptionRead,
    PushUnsubscribeRequest,
    VapidPublicKeyRead,
)
from .scheduled import (
    RecurringRuleSchema,
    ScheduledNotificationCreate,
    ScheduledNotificationRead,
    ScheduledNotificationUpdate,
)
from .template import TemplateCreate, TemplateRead, TemplateUpdate

__all__ = [
    "BatchCreate",
    "BatchRead",
    "BulkOperationRequest",
    "CategoryPreferenceSchema",
    "DeliveryAttemptRead",
    "DisconnectRequest",
    "DisconnectResult",
    "NotificationCreate",
    "NotificationIdsRequest",
    "NotificationPage",
    "NotificationRead",
    "NotificationStatsRead",
    "OperationResult",
    "PreferencesRead",
    "PreferencesUpdate",
    "PushKeys",
    "PushSubscriptionCreate",
    "PushSubscriptionRead",
    "PushUnsubscribeRequest",
    "VapidPublicKeyRead",
    "RecurringRuleSchema",
    "ScheduledNotificationCreate",
    "ScheduledNotificationRead",
    "ScheduledNotificationUpdate",
    "TemplateCreate",
    "TemplateRead",
    "TemplateUpdate",
    "TestNotificationRequest",
    "UnreadCountRead",
]
