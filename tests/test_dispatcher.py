"""Tests for per-channel delivery and outcome tracking."""

from __future__ import annotations

import pytest

from notification_engine.application.dispatcher import (
    NO_ACTIVE_SUBSCRIPTIONS,
    RECIPIENT_NOT_FOUND,
    SMS_NOT_IMPLEMENTED,
    DeliveryDispatcher,
    build_push_payload,
)
from notification_engine.domain.entities import PushSubscription
from notification_engine.domain.enums import (
    DeliveryStatus,
    NotificationChannel,
    NotificationStatus,
)
from notification_engine.domain.exceptions import PushSubscriptionGoneError
from notification_engine.infrastructure.repositories import (
    DeliveryAttemptRepository,
    NotificationRepository,
    PushSubscriptionRepository,
)
from notification_engine.utils import LoopBridge

from tests.conftest import FakeBroadcaster, FakeEmailTransport, FakePushTransport

pytestmark = pytest.mark.anyio

IN_APP = NotificationChannel.IN_APP
WEBSOCKET = NotificationChannel.WEBSOCKET
EMAIL = NotificationChannel.EMAIL
PUSH = NotificationChannel.PUSH
SMS = NotificationChannel.SMS


@pytest.fixture
def make_dispatcher(session_factory, identity):
    def _make(
        *,
        broadcaster=None,
        email=None,
        push=None,
        timeout: float = 0.5,
    ) -> DeliveryDispatcher:
        return DeliveryDispatcher(
            session_factory,
            broadcaster=broadcaster or FakeBroadcaster(),
            email_transport=email or FakeEmailTransport(),
            push_transport=push or FakePushTransport(),
            identity=identity,
            bridge=LoopBridge(),
            timeout_seconds=timeout,
            app_name="Study Teddy",
        )

    return _make


def _by_channel(attempts):
    return {attempt.channel: attempt for attempt in attempts}


def _status(session_factory, notification_id: int) -> NotificationStatus:
    with session_factory() as session:
        return NotificationRepository(session).get(notification_id).status


def _subscribe(session_factory, user_id: int, endpoint: str) -> PushSubscription:
    with session_factory() as session:
        return PushSubscriptionRepository(session).upsert(
            PushSubscription(id=None, user_id=user_id, endpoint=endpoint, p256dh="p", auth="a")
        )


async def test_channels_fail_independently(
    make_dispatcher, create_user, create_notification, session_factory
) -> None:
    user = create_user()
    notification = create_notification(user.id, [IN_APP, WEBSOCKET, EMAIL, SMS])
    broadcaster = FakeBroadcaster()
    dispatcher = make_dispatcher(
        broadcaster=broadcaster, email=FakeEmailTransport(error="mailbox unavailable")
    )

    attempts = _by_channel(await dispatcher.deliver(notification.id))

    assert attempts[IN_APP].status is DeliveryStatus.DELIVERED
    assert attempts[WEBSOCKET].status is DeliveryStatus.DELIVERED
    assert attempts[EMAIL].status is DeliveryStatus.FAILED
    assert attempts[EMAIL].failure_reason == "mailbox unavailable"
    assert attempts[SMS].status is DeliveryStatus.FAILED
    assert attempts[SMS].failure_reason == SMS_NOT_IMPLEMENTED
    assert all(attempt.attempts == 1 for attempt in attempts.values())
    assert [user_id for user_id, _ in broadcaster.sent] == [user.id]
    assert _status(session_factory, notification.id) is NotificationStatus.DELIVERED


async def test_notification_fails_when_every_channel_fails(
    make_dispatcher, create_user, create_notification, session_factory
) -> None:
    user = create_user()
    notification = create_notification(user.id, [SMS])

    await make_dispatcher().deliver(notification.id)

    assert _status(session_factory, notification.id) is NotificationStatus.FAILED


async def test_email_records_provider_message_id(
    make_dispatcher, create_user, create_notification
) -> None:
    user = create_user(email="ada@example.com")
    notification = create_notification(
        user.id, [EMAIL], metadata={"actionUrl": "/tasks/1", "actionText": "Open"}
    )
    email = FakeEmailTransport(external_id="sg-123")

    attempts = _by_channel(await make_dispatcher(email=email).deliver(notification.id))

    assert attempts[EMAIL].status is DeliveryStatus.DELIVERED
    assert attempts[EMAIL].external_id == "sg-123"
    assert attempts[EMAIL].delivered_at is not None
    to, subject, html_content = email.sent[0]
    assert (to, subject) == ("ada@example.com", "Reminder")
    assert 'href="/tasks/1"' in html_content and "Open" in html_content


async def test_email_without_recipient_address(
    make_dispatcher, create_user, create_notification
) -> None:
    user = create_user(email=None)
    notification = create_notification(user.id, [EMAIL])
    email = FakeEmailTransport()

    attempts = _by_channel(await make_dispatcher(email=email).deliver(notification.id))

    assert attempts[EMAIL].failure_reason == RECIPIENT_NOT_FOUND
    assert email.sent == []


async def test_push_gone_subscription_is_deactivated_and_others_still_count(
    make_dispatcher, create_user, create_notification, session_factory
) -> None:
    user = create_user()
    gone = _subscribe(session_factory, user.id, "https://push.example/gone")
    alive = _subscribe(session_factory, user.id, "https://push.example/alive")
    notification = create_notification(user.id, [PUSH])
    push = FakePushTransport({gone.endpoint: PushSubscriptionGoneError(gone.endpoint)})

    attempts = _by_channel(await make_dispatcher(push=push).deliver(notification.id))

    assert attempts[PUSH].status is DeliveryStatus.DELIVERED
    assert attempts[PUSH].metadata == {"subscriptions": 2, "sent": 1, "failed": 1}
    with session_factory() as session:
        active = PushSubscriptionRepository(session).list_for_user(user.id)
    assert [subscription.id for subscription in active] == [alive.id]


async def test_push_without_subscriptions(
    make_dispatcher, create_user, create_notification
) -> None:
    user = create_user()
    notification = create_notification(user.id, [PUSH])

    attempts = _by_channel(await make_dispatcher().deliver(notification.id))

    assert attempts[PUSH].status is DeliveryStatus.FAILED
    assert attempts[PUSH].failure_reason == NO_ACTIVE_SUBSCRIPTIONS


async def test_slow_channel_times_out_without_blocking_others(
    make_dispatcher, create_user, create_notification, session_factory
) -> None:
    user = create_user()
    notification = create_notification(user.id, [IN_APP, WEBSOCKET])
    dispatcher = make_dispatcher(broadcaster=FakeBroadcaster(delay=5), timeout=0.1)

    attempts = _by_channel(await dispatcher.deliver(notification.id))

    assert attempts[IN_APP].status is DeliveryStatus.DELIVERED
    assert attempts[WEBSOCKET].status is DeliveryStatus.FAILED
    assert "timed out" in attempts[WEBSOCKET].failure_reason
    assert _status(session_factory, notification.id) is NotificationStatus.DELIVERED


async def test_redelivery_reuses_attempt_rows(
    make_dispatcher, create_user, create_notification, session_factory
) -> None:
    user = create_user()
    notification = create_notification(user.id, [IN_APP, SMS])
    dispatcher = make_dispatcher()

    await dispatcher.deliver(notification.id)
    await dispatcher.deliver(notification.id)

    with session_factory() as session:
        attempts = DeliveryAttemptRepository(session).list_for_notification(notification.id)
    assert [attempt.channel for attempt in attempts] == [IN_APP, SMS]
    assert [attempt.attempts for attempt in attempts] == [2, 2]


async def test_dispatch_runs_in_background_on_the_current_loop(
    session_factory, identity, create_user, create_notification
) -> None:
    user = create_user()
    notification = create_notification(user.id, [IN_APP])
    bridge = LoopBridge()
    dispatcher = DeliveryDispatcher(
        session_factory,
        broadcaster=FakeBroadcaster(),
        email_transport=FakeEmailTransport(),
        push_transport=FakePushTransport(),
        identity=identity,
        bridge=bridge,
    )

    dispatcher.dispatch(notification.id)
    await bridge.drain()

    assert _status(session_factory, notification.id) is NotificationStatus.DELIVERED


def test_push_payload_defaults(create_user, create_notification) -> None:
    user = create_user()
    notification = create_notification(
        user.id, [PUSH], metadata={"actionUrl": "/goals/3", "data": {"goalId": 3}}
    )

    payload = build_push_payload(notification)

    assert payload["title"] == "Reminder"
    assert payload["body"] == "Review chapter 3"
    assert payload["icon"] == "/icon-192x192.png"
    assert payload["badge"] == "/badge-72x72.png"
    assert payload["data"] == {"notificationId": notification.id, "url": "/goals/3", "goalId": 3}
