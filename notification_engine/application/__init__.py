"""Application services: channel resolution, delivery, scheduling and batches."""

from .batches import BatchProcessor
from .channel_resolver import ChannelResolution, is_in_quiet_hours, resolve_channels
from .dispatcher import DeliveryDispatcher
from .engine import NotificationEngine
from .scheduler import NotificationScheduler
from .service import NotificationService

__all__ = [
    "BatchProcessor",
    "ChannelResolution",
    "DeliveryDispatcher",
    "NotificationEngine",
    "NotificationScheduler",
    "NotificationService",
    "is_in_quiet_hours",
    "resolve_channels",
]
