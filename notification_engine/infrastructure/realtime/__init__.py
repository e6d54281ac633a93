"""Realtime connection tracking and fan-out."""

from .gateway import NotificationGateway
from .publisher import RealtimeEventPublisher, serialize_notification
from .registry import (
    ConnectionInfo,
    ConnectionRegistry,
    RealtimeSocket,
    category_room,
    type_room,
    user_room,
)

__all__ = [
    "ConnectionInfo",
    "ConnectionRegistry",
    "NotificationGateway",
    "RealtimeEventPublisher",
    "RealtimeSocket",
    "category_room",
    "serialize_notification",
    "type_room",
    "user_room",
]
