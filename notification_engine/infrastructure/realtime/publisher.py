"""Helpers to push realtime events from synchronous code paths."""

from __future__ import annotations

import copy
from typing import Any

from notification_engine.domain.entities import Notification
from notification_engine.utils import LoopBridge

from .gateway import NotificationGateway


class RealtimeEventPublisher:
    """Schedule gateway sends on the application loop without waiting."""

    def __init__(self, gateway: NotificationGateway, bridge: LoopBridge) -> None:
        self._gateway = gateway
        self._bridge = bridge

    def publish(self, user_id: int, event: str, payload: dict[str, Any]) -> None:
        if not user_id or not self._gateway.has_connections(user_id):
            return
        self._bridge.submit(
            self._gateway.emit_event(user_id, event, copy.deepcopy(payload))
        )

    def refresh_unread_count(self, user_id: int) -> None:
        if not user_id or not self._gateway.has_connections(user_id):
            return
        self._bridge.submit(self._gateway.send_unread_count(user_id))


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    def _iso(value):
        return value.isoformat() if value else None

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type.value,
        "category": notification.category.value,
        "priority": notification.priority.value,
        "status": notification.status.value,
        "channels": [channel.value for channel in notification.channels],
        "metadata": copy.deepcopy(notification.metadata or {}),
        "is_read": notification.is_read,
        "is_archived": notification.is_archived,
        "scheduled_at": _iso(notification.scheduled_at),
        "expires_at": _iso(notification.expires_at),
        "created_at": _iso(notification.created_at),
        "read_at": _iso(notification.read_at),
    }


__all__ = ["RealtimeEventPublisher", "serialize_notification"]
