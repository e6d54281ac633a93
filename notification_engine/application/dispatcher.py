"""Deliver persisted notifications on each of their channels."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, TypeVar

import anyio
from sqlalchemy.orm import Session

from notification_engine.domain.entities import (
    DeliveryAttempt,
    Notification,
    PushSubscription,
)
from notification_engine.domain.enums import (
    DeliveryStatus,
    NotificationChannel,
    NotificationStatus,
)
from notification_engine.domain.exceptions import (
    PushDeliveryError,
    PushSubscriptionGoneError,
)
from notification_engine.domain.ports import (
    Broadcaster,
    EmailTransport,
    IdentityProvider,
    PushTransport,
)
from notification_engine.infrastructure.email import render_notification_email
from notification_engine.infrastructure.realtime import serialize_notification
from notification_engine.infrastructure.repositories import (
    DeliveryAttemptRepository,
    NotificationRepository,
    PushSubscriptionRepository,
)
from notification_engine.utils import LoopBridge, now_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PUSH_ICON = "/icon-192x192.png"
DEFAULT_PUSH_BADGE = "/badge-72x72.png"

RECIPIENT_NOT_FOUND = "recipient address not found"
NO_ACTIVE_SUBSCRIPTIONS = "no active subscriptions"
SMS_NOT_IMPLEMENTED = "not implemented"


@dataclass(frozen=True)
class ChannelOutcome:
    status: DeliveryStatus
    failure_reason: str | None = None
    external_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def delivered(cls, **kwargs: Any) -> "ChannelOutcome":
        return cls(status=DeliveryStatus.DELIVERED, **kwargs)

    @classmethod
    def failed(cls, reason: str, **kwargs: Any) -> "ChannelOutcome":
        return cls(status=DeliveryStatus.FAILED, failure_reason=reason, **kwargs)


def build_push_payload(notification: Notification) -> dict[str, Any]:
    """Return the JSON body shown by the browser's push notification."""

    metadata = notification.metadata or {}
    extra = metadata.get("data")
    return {
        "title": notification.title,
        "body": notification.message,
        "icon": metadata.get("icon") or DEFAULT_PUSH_ICON,
        "badge": metadata.get("badge") or DEFAULT_PUSH_BADGE,
        "data": {
            "notificationId": notification.id,
            "url": metadata.get("actionUrl"),
            **(extra if isinstance(extra, dict) else {}),
        },
    }


class DeliveryDispatcher:
    """Fan a notification out to its channels and record every outcome.

    Channels run concurrently and never affect one another. Database work
    and blocking provider calls run in worker threads; provider calls are
    bounded by ``timeout_seconds``. The notification ends ``delivered`` when
    at least one channel succeeded and ``failed`` otherwise.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        broadcaster: Broadcaster,
        email_transport: EmailTransport,
        push_transport: PushTransport,
        identity: IdentityProvider,
        bridge: LoopBridge,
        timeout_seconds: float = 10.0,
        app_name: str = "Study Teddy",
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._session_factory = session_factory
        self._broadcaster = broadcaster
        self._email_transport = email_transport
        self._push_transport = push_transport
        self._identity = identity
        self._bridge = bridge
        self._timeout = timeout_seconds
        self._app_name = app_name
        self._clock = clock
        self._senders = {
            NotificationChannel.IN_APP: self._send_in_app,
            NotificationChannel.WEBSOCKET: self._send_websocket,
            NotificationChannel.EMAIL: self._send_email,
            NotificationChannel.PUSH: self._send_push,
            NotificationChannel.SMS: self._send_sms,
        }

    def dispatch(self, notification_id: int) -> None:
        """Start delivery in the background and return immediately."""

        if not self._bridge.submit(self.deliver(notification_id)):
            logger.warning(
                "Delivery of notification %s was not started: no event loop available",
                notification_id,
            )

    async def deliver(self, notification_id: int) -> list[DeliveryAttempt]:
        notification = await self._db(self._begin, notification_id)
        if notification is None:
            logger.warning("Notification %s disappeared before delivery", notification_id)
            return []

        attempts = await self._db(self._prepare_attempts, notification)
        results = await asyncio.gather(
            *(self._run_channel(notification, attempt) for attempt in attempts),
            return_exceptions=True,
        )

        recorded: list[DeliveryAttempt] = []
        for attempt, result in zip(attempts, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Recording %s delivery of notification %s failed",
                    attempt.channel.value,
                    notification_id,
                    exc_info=result,
                )
                recorded.append(attempt)
            else:
                recorded.append(result)

        delivered = any(item.status is DeliveryStatus.DELIVERED for item in recorded)
        final_status = NotificationStatus.DELIVERED if delivered else NotificationStatus.FAILED
        await self._db(self._finish, notification_id, final_status)
        logger.info(
            "Notification %s %s on %s",
            notification_id,
            final_status.value,
            ", ".join(f"{item.channel.value}={item.status.value}" for item in recorded) or "no channels",
        )
        return recorded

    async def _run_channel(
        self, notification: Notification, attempt: DeliveryAttempt
    ) -> DeliveryAttempt:
        sender = self._senders[attempt.channel]
        try:
            outcome = await sender(notification)
        except TimeoutError:
            outcome = ChannelOutcome.failed(f"timed out after {self._timeout:g}s")
        except Exception as exc:
            logger.exception(
                "%s delivery of notification %s raised",
                attempt.channel.value,
                notification.id,
            )
            outcome = ChannelOutcome.failed(str(exc) or exc.__class__.__name__)
        return await self._db(self._record, attempt.id, outcome)

    async def _send_in_app(self, notification: Notification) -> ChannelOutcome:
        return ChannelOutcome.delivered()

    async def _send_websocket(self, notification: Notification) -> ChannelOutcome:
        with anyio.fail_after(self._timeout):
            await self._broadcaster.send_to_user(
                notification.user_id, serialize_notification(notification)
            )
        return ChannelOutcome.delivered()

    async def _send_email(self, notification: Notification) -> ChannelOutcome:
        address = await self._blocking(self._identity.get_email, notification.user_id)
        if not address:
            return ChannelOutcome.failed(RECIPIENT_NOT_FOUND)
        html_content = render_notification_email(
            notification.title,
            notification.message,
            notification.metadata,
            app_name=self._app_name,
        )
        external_id, error = await self._blocking(
            self._email_transport.send, address, notification.title, html_content
        )
        if error:
            return ChannelOutcome.failed(error)
        return ChannelOutcome.delivered(external_id=external_id)

    async def _send_push(self, notification: Notification) -> ChannelOutcome:
        subscriptions = await self._db(self._active_subscriptions, notification.user_id)
        if not subscriptions:
            return ChannelOutcome.failed(NO_ACTIVE_SUBSCRIPTIONS)

        payload = json.dumps(build_push_payload(notification))
        errors = await asyncio.gather(
            *(self._push_one(subscription, payload) for subscription in subscriptions)
        )
        failures = [error for error in errors if error is not None]
        sent = len(subscriptions) - len(failures)
        metadata = {
            "subscriptions": len(subscriptions),
            "sent": sent,
            "failed": len(failures),
        }
        if sent:
            return ChannelOutcome.delivered(metadata=metadata)
        return ChannelOutcome.failed("; ".join(failures), metadata=metadata)

    async def _push_one(self, subscription: PushSubscription, payload: str) -> str | None:
        """Send to one subscription; return an error description or ``None``."""

        try:
            await self._blocking(
                self._push_transport.send, subscription.endpoint, subscription.keys, payload
            )
        except PushSubscriptionGoneError:
            logger.info(
                "Push subscription %s is gone; deactivating it", subscription.id
            )
            await self._db(self._deactivate_subscription, subscription.id)
            return "subscription gone"
        except TimeoutError:
            return f"timed out after {self._timeout:g}s"
        except PushDeliveryError as exc:
            logger.warning("Push to subscription %s failed: %s", subscription.id, exc)
            return str(exc)
        except Exception as exc:
            logger.exception("Push to subscription %s raised", subscription.id)
            return str(exc) or exc.__class__.__name__
        return None

    async def _send_sms(self, notification: Notification) -> ChannelOutcome:
        return ChannelOutcome.failed(SMS_NOT_IMPLEMENTED)

    async def _blocking(self, func: Callable[..., T], *args: Any) -> T:
        with anyio.fail_after(self._timeout):
            return await anyio.to_thread.run_sync(
                functools.partial(func, *args), abandon_on_cancel=True
            )

    async def _db(self, func: Callable[..., T], *args: Any) -> T:
        return await anyio.to_thread.run_sync(functools.partial(func, *args))

    def _begin(self, notification_id: int) -> Notification | None:
        with self._session_factory() as session:
            repository = NotificationRepository(session)
            notification = repository.get(notification_id)
            if notification is None:
                return None
            repository.set_status(
                notification_id,
                NotificationStatus.SENT,
                expected=NotificationStatus.PENDING,
            )
            return notification

    def _prepare_attempts(self, notification: Notification) -> list[DeliveryAttempt]:
        with self._session_factory() as session:
            repository = DeliveryAttemptRepository(session)
            return [
                repository.get_or_create(notification.id, channel)
                for channel in notification.channels
            ]

    def _record(self, attempt_id: int, outcome: ChannelOutcome) -> DeliveryAttempt:
        with self._session_factory() as session:
            return DeliveryAttemptRepository(session).record_outcome(
                attempt_id,
                outcome.status,
                attempted_at=self._clock(),
                failure_reason=outcome.failure_reason,
                external_id=outcome.external_id,
                metadata=outcome.metadata,
            )

    def _finish(self, notification_id: int, status: NotificationStatus) -> None:
        with self._session_factory() as session:
            NotificationRepository(session).set_status(
                notification_id, status, expected=NotificationStatus.SENT
            )

    def _active_subscriptions(self, user_id: int) -> list[PushSubscription]:
        with self._session_factory() as session:
            return list(PushSubscriptionRepository(session).list_for_user(user_id))

    def _deactivate_subscription(self, subscription_id: int) -> None:
        with self._session_factory() as session:
            PushSubscriptionRepository(session).deactivate_by_id(subscription_id)


__all__ = ["ChannelOutcome", "DeliveryDispatcher", "build_push_payload"]
