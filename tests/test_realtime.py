"""Tests for the connection registry, the gateway and the event publisher."""

from __future__ import annotations

import pytest

from notification_engine.infrastructure.realtime import (
    ConnectionRegistry,
    NotificationGateway,
    RealtimeEventPublisher,
    category_room,
    type_room,
    user_room,
)
from notification_engine.utils import LoopBridge

from tests.conftest import FakeSocket

NOTIFICATION = {"id": 1, "title": "Quiz", "category": "study", "type": "reminder"}


@pytest.fixture
def registry() -> ConnectionRegistry:
    registry = ConnectionRegistry()
    registry.start()
    return registry


@pytest.fixture
def gateway(registry) -> NotificationGateway:
    return NotificationGateway(registry, lambda user_id: 4)


def test_register_joins_personal_room_and_is_idempotent(registry) -> None:
    socket = FakeSocket()

    first = registry.register("c1", 42, socket)
    second = registry.register("c1", 42, socket)

    assert first is second
    assert registry.room_members(user_room(42)) == ["c1"]
    assert registry.connections_for_user(42) == ["c1"]


def test_unregister_keeps_user_while_other_connections_remain(registry) -> None:
    registry.register("c1", 42, FakeSocket())
    registry.register("c2", 42, FakeSocket())

    assert registry.unregister("c1") == 42
    assert registry.has_connections(42)
    assert registry.connections_for_user(42) == ["c2"]

    registry.unregister("c2")
    assert not registry.has_connections(42)
    assert registry.room_members(user_room(42)) == []
    assert registry.unregister("c2") is None


def test_personal_room_cannot_be_left(registry) -> None:
    registry.register("c1", 42, FakeSocket())
    registry.subscribe("c1", [category_room("study")])

    left = registry.unsubscribe("c1", [user_room(42), category_room("study")])

    assert left == [category_room("study")]
    assert registry.get_connection("c1").rooms == {user_room(42)}


def test_stats_summarise_connections(registry) -> None:
    registry.register("c1", 1, FakeSocket())
    registry.register("c2", 1, FakeSocket())
    registry.register("c3", 2, FakeSocket())

    stats = registry.stats()

    assert stats["totalConnections"] == 3
    assert stats["uniqueUsers"] == 2
    assert stats["averageConnectionsPerUser"] == 1.5
    assert stats["maxConnectionsPerUser"] == 2
    assert {detail["connectionId"] for detail in stats["connectionDetails"]} == {"c1", "c2", "c3"}


@pytest.mark.anyio
async def test_every_connection_of_a_user_gets_the_notification_once(registry, gateway) -> None:
    laptop, phone, stranger = FakeSocket(), FakeSocket(), FakeSocket()
    registry.register("laptop", 42, laptop)
    registry.register("phone", 42, phone)
    registry.register("other", 7, stranger)

    await gateway.send_to_user(42, NOTIFICATION)

    assert len(laptop.events("newNotification")) == 1
    assert len(phone.events("newNotification")) == 1
    assert laptop.events("newNotification")[0]["data"] == NOTIFICATION
    assert stranger.messages == []
    unread = laptop.events("unreadCountUpdated")[0]["data"]
    assert (unread["userId"], unread["count"], unread["hasUnread"]) == (42, 4, True)


@pytest.mark.anyio
async def test_category_and_type_subscribers_receive_mirrors(registry, gateway) -> None:
    owner, watcher = FakeSocket(), FakeSocket()
    registry.register("owner", 42, owner)
    registry.register("watcher", 7, watcher)
    registry.subscribe("watcher", [category_room("study"), type_room("reminder")])

    await gateway.send_to_user(42, NOTIFICATION)

    assert len(watcher.events("categoryNotification")) == 1
    assert len(watcher.events("typeNotification")) == 1
    assert watcher.events("newNotification") == []


@pytest.mark.anyio
async def test_send_to_user_without_connections_is_a_no_op(registry, gateway) -> None:
    watcher = FakeSocket()
    registry.register("watcher", 7, watcher)
    registry.subscribe("watcher", [category_room("study")])

    await gateway.send_to_user(42, NOTIFICATION)

    assert watcher.messages == []


@pytest.mark.anyio
async def test_failed_send_drops_the_connection(registry, gateway) -> None:
    healthy, broken = FakeSocket(), FakeSocket(fail=True)
    registry.register("healthy", 42, healthy)
    registry.register("broken", 42, broken)

    await gateway.send_to_user(42, NOTIFICATION)

    assert registry.connections_for_user(42) == ["healthy"]
    assert len(healthy.events("newNotification")) == 1


@pytest.mark.anyio
async def test_disconnect_user_announces_reason_and_closes(registry, gateway) -> None:
    socket = FakeSocket()
    registry.register("c1", 42, socket)

    closed = await gateway.disconnect_user(42, "Account suspended")

    assert closed == 1
    assert socket.events("forceDisconnect")[0]["data"] == {"reason": "Account suspended"}
    assert socket.closed == (1000, "Account suspended")
    assert not registry.has_connections(42)


@pytest.mark.anyio
async def test_publisher_only_emits_for_connected_users(registry, gateway) -> None:
    bridge = LoopBridge()
    publisher = RealtimeEventPublisher(gateway, bridge)
    socket = FakeSocket()
    registry.register("c1", 42, socket)

    publisher.publish(42, "allNotificationsRead", {"userId": 42})
    publisher.publish(7, "allNotificationsRead", {"userId": 7})
    publisher.refresh_unread_count(42)
    await bridge.drain()

    assert socket.events("allNotificationsRead") == [
        {"type": "allNotificationsRead", "data": {"userId": 42}}
    ]
    assert len(socket.events("unreadCountUpdated")) == 1


def test_stop_drops_all_connections(registry) -> None:
    registry.register("c1", 42, FakeSocket())

    registry.stop()

    assert not registry.is_running
    assert registry.stats()["totalConnections"] == 0
