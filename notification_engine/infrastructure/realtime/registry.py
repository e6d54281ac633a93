"""In-memory registry of live realtime connections."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Protocol

from notification_engine.utils import now_utc

logger = logging.getLogger(__name__)


class RealtimeSocket(Protocol):
    """The subset of a websocket the registry needs to push events."""

    async def send_json(self, data: Any) -> None:
        ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        ...


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


def category_room(category: str) -> str:
    return f"category:{category}"


def type_room(notification_type: str) -> str:
    return f"type:{notification_type}"


@dataclass
class ConnectionInfo:
    connection_id: str
    user_id: int
    connected_at: datetime
    last_activity_at: datetime
    rooms: set[str] = field(default_factory=set)

    def as_dict(self) -> dict[str, Any]:
        return {
            "connectionId": self.connection_id,
            "userId": self.user_id,
            "connectedAt": self.connected_at.isoformat(),
            "lastActivity": self.last_activity_at.isoformat(),
            "rooms": sorted(self.rooms),
        }


class ConnectionRegistry:
    """Track which users hold which connections and which rooms they joined.

    A user may hold several connections at once. Every map is mutated under a
    single lock because connections are registered from the event loop while
    statistics are read from worker threads. Sends happen outside the lock on
    a snapshot of the room membership.
    """

    def __init__(self, clock: Callable[[], datetime] = now_utc) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._user_connections: dict[int, set[str]] = {}
        self._connections: dict[str, ConnectionInfo] = {}
        self._sockets: dict[str, RealtimeSocket] = {}
        self._rooms: dict[str, set[str]] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True
        logger.info("Connection registry started")

    def stop(self) -> None:
        with self._lock:
            dropped = len(self._connections)
            self._user_connections.clear()
            self._connections.clear()
            self._sockets.clear()
            self._rooms.clear()
        self._running = False
        logger.info("Connection registry stopped; dropped %s connections", dropped)

    def register(
        self, connection_id: str, user_id: int, socket: RealtimeSocket
    ) -> ConnectionInfo:
        """Add a connection for ``user_id`` and join its ``user:{id}`` room.

        Registering the same connection twice returns the existing entry.
        """

        with self._lock:
            existing = self._connections.get(connection_id)
            if existing is not None:
                return existing
            now = self._clock()
            info = ConnectionInfo(
                connection_id=connection_id,
                user_id=user_id,
                connected_at=now,
                last_activity_at=now,
            )
            self._connections[connection_id] = info
            self._sockets[connection_id] = socket
            self._user_connections.setdefault(user_id, set()).add(connection_id)
            self._join(info, user_room(user_id))
            total = len(self._user_connections[user_id])
        logger.info(
            "User %s connected via %s. Total connections: %s",
            user_id,
            connection_id,
            total,
        )
        return info

    def unregister(self, connection_id: str) -> int | None:
        """Remove a connection everywhere; return its user id if it was known."""

        with self._lock:
            info = self._connections.pop(connection_id, None)
            self._sockets.pop(connection_id, None)
            if info is None:
                return None
            for room in list(info.rooms):
                self._leave(info, room)
            user_connections = self._user_connections.get(info.user_id)
            remaining = 0
            if user_connections is not None:
                user_connections.discard(connection_id)
                remaining = len(user_connections)
                if not user_connections:
                    self._user_connections.pop(info.user_id, None)
        logger.info(
            "User %s disconnected from %s. Remaining connections: %s",
            info.user_id,
            connection_id,
            remaining,
        )
        return info.user_id

    def subscribe(self, connection_id: str, rooms: Iterable[str]) -> list[str]:
        with self._lock:
            info = self._connections.get(connection_id)
            if info is None:
                return []
            joined = []
            for room in rooms:
                self._join(info, room)
                joined.append(room)
            info.last_activity_at = self._clock()
        return joined

    def unsubscribe(self, connection_id: str, rooms: Iterable[str]) -> list[str]:
        with self._lock:
            info = self._connections.get(connection_id)
            if info is None:
                return []
            left = []
            for room in rooms:
                # The personal room is not optional.
                if room == user_room(info.user_id):
                    continue
                self._leave(info, room)
                left.append(room)
            info.last_activity_at = self._clock()
        return left

    def touch(self, connection_id: str) -> None:
        with self._lock:
            info = self._connections.get(connection_id)
            if info is not None:
                info.last_activity_at = self._clock()

    def get_connection(self, connection_id: str) -> ConnectionInfo | None:
        with self._lock:
            return self._connections.get(connection_id)

    def connections_for_user(self, user_id: int) -> list[str]:
        with self._lock:
            return sorted(self._user_connections.get(user_id, ()))

    def has_connections(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._user_connections.get(user_id))

    def room_members(self, room: str) -> list[str]:
        with self._lock:
            return sorted(self._rooms.get(room, ()))

    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = len(self._connections)
            per_user = [len(ids) for ids in self._user_connections.values()]
            details = [info.as_dict() for info in self._connections.values()]
        unique = len(per_user)
        return {
            "totalConnections": total,
            "uniqueUsers": unique,
            "averageConnectionsPerUser": (total / unique) if unique else 0,
            "maxConnectionsPerUser": max(per_user, default=0),
            "connectionDetails": details,
        }

    async def emit_to_connection(self, connection_id: str, event: str, data: Any) -> bool:
        with self._lock:
            socket = self._sockets.get(connection_id)
        if socket is None:
            return False
        return await self._send(connection_id, socket, {"type": event, "data": data})

    async def emit_to_room(self, room: str, event: str, data: Any) -> int:
        """Send ``event`` to every member of ``room``; return how many got it."""

        with self._lock:
            targets = [
                (connection_id, self._sockets[connection_id])
                for connection_id in self._rooms.get(room, ())
                if connection_id in self._sockets
            ]
        message = {"type": event, "data": data}
        delivered = 0
        for connection_id, socket in targets:
            if await self._send(connection_id, socket, message):
                delivered += 1
        return delivered

    async def emit_to_user(self, user_id: int, event: str, data: Any) -> int:
        return await self.emit_to_room(user_room(user_id), event, data)

    async def close_user(self, user_id: int, *, code: int = 1000, reason: str = "") -> int:
        with self._lock:
            targets = [
                (connection_id, self._sockets[connection_id])
                for connection_id in self._user_connections.get(user_id, ())
                if connection_id in self._sockets
            ]
        for connection_id, socket in targets:
            try:
                await socket.close(code=code, reason=reason)
            except Exception:
                logger.debug("Socket %s was already closed", connection_id)
            self.unregister(connection_id)
        return len(targets)

    async def _send(self, connection_id: str, socket: RealtimeSocket, message: dict[str, Any]) -> bool:
        try:
            await socket.send_json(message)
        except Exception:
            logger.warning("Dropping connection %s after a failed send", connection_id)
            self.unregister(connection_id)
            return False
        return True

    def _join(self, info: ConnectionInfo, room: str) -> None:
        info.rooms.add(room)
        self._rooms.setdefault(room, set()).add(info.connection_id)

    def _leave(self, info: ConnectionInfo, room: str) -> None:
        info.rooms.discard(room)
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(info.connection_id)
        if not members:
            self._rooms.pop(room, None)


__all__ = [
    "ConnectionInfo",
    "ConnectionRegistry",
    "RealtimeSocket",
    "category_room",
    "type_room",
    "user_room",
]
