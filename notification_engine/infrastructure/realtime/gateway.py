"""Fan-out of notifications and read-state events to live connections."""

from __future__ import annotations

import logging
from typing import Any, Callable

import anyio

from notification_engine.utils import now_utc

from .registry import ConnectionRegistry, category_room, type_room, user_room

logger = logging.getLogger(__name__)

FORCE_DISCONNECT_CLOSE_CODE = 1000


class NotificationGateway:
    """Broadcast notifications to every open connection of a user.

    Besides the user's own room, each notification is mirrored to the
    ``category:{c}`` and ``type:{t}`` rooms for cross-cutting listeners.
    Sending to a user without connections is a no-op.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        unread_counter: Callable[[int], int],
    ) -> None:
        self._registry = registry
        self._unread_counter = unread_counter

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    def has_connections(self, user_id: int) -> bool:
        return self._registry.has_connections(user_id)

    async def send_to_user(self, user_id: int, notification: dict[str, Any]) -> None:
        if not self._registry.has_connections(user_id):
            logger.debug("User %s has no live connections; skipping realtime push", user_id)
            return

        await self._registry.emit_to_room(user_room(user_id), "newNotification", notification)
        category = notification.get("category")
        if category:
            await self._registry.emit_to_room(
                category_room(category), "categoryNotification", notification
            )
        notification_type = notification.get("type")
        if notification_type:
            await self._registry.emit_to_room(
                type_room(notification_type), "typeNotification", notification
            )
        await self.send_unread_count(user_id)

    async def send_unread_count(self, user_id: int) -> None:
        if not self._registry.has_connections(user_id):
            return
        try:
            count = await anyio.to_thread.run_sync(self._unread_counter, user_id)
        except Exception:
            logger.exception("Could not load unread count for user %s", user_id)
            return
        await self._registry.emit_to_user(
            user_id,
            "unreadCountUpdated",
            {
                "userId": user_id,
                "count": count,
                "hasUnread": count > 0,
                "timestamp": now_utc().isoformat(),
            },
        )

    async def emit_event(self, user_id: int, event: str, payload: dict[str, Any]) -> int:
        if not self._registry.has_connections(user_id):
            return 0
        return await self._registry.emit_to_user(user_id, event, payload)

    async def disconnect_user(self, user_id: int, reason: str = "Admin disconnect") -> int:
        """Tell every connection of ``user_id`` why, then close it."""

        await self._registry.emit_to_user(user_id, "forceDisconnect", {"reason": reason})
        closed = await self._registry.close_user(
            user_id, code=FORCE_DISCONNECT_CLOSE_CODE, reason=reason
        )
        if closed:
            logger.info("Disconnected %s connections of user %s: %s", closed, user_id, reason)
        return closed

    def connection_stats(self) -> dict[str, Any]:
        return self._registry.stats()


__all__ = ["NotificationGateway"]
