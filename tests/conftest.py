"""Shared fixtures and test doubles for the notification engine tests."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

import anyio
import pytest

from notification_engine.application import NotificationService
from notification_engine.config import Settings
from notification_engine.domain.entities import Notification, User
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from notification_engine.infrastructure.database import (
    build_engine,
    build_session_factory,
    initialize_database,
)
from notification_engine.infrastructure.identity import UserDirectory
from notification_engine.infrastructure.repositories import (
    NotificationRepository,
    UserRepository,
)

FROZEN_NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class RecordingDeliveryQueue:
    def __init__(self) -> None:
        self.dispatched: list[int] = []

    def dispatch(self, notification_id: int) -> None:
        self.dispatched.append(notification_id)


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[tuple[int, str, dict[str, Any]]] = []
        self.refreshed: list[int] = []

    def publish(self, user_id: int, event: str, payload: dict[str, Any]) -> None:
        self.events.append((user_id, event, payload))

    def refresh_unread_count(self, user_id: int) -> None:
        self.refreshed.append(user_id)

    def names(self) -> list[str]:
        return [event for _, event, _ in self.events]


class FakeEmailTransport:
    def __init__(
        self, *, error: str | None = None, external_id: str = "msg-1", delay: float = 0
    ) -> None:
        self.error = error
        self.external_id = external_id
        self.delay = delay
        self.sent: list[tuple[str, str, str]] = []

    def send(self, to: str, subject: str, html_content: str) -> tuple[str | None, str | None]:
        if self.delay:
            time.sleep(self.delay)
        self.sent.append((to, subject, html_content))
        if self.error:
            return None, self.error
        return self.external_id, None


class FakePushTransport:
    """Raises the exception registered for an endpoint, succeeds otherwise."""

    def __init__(self, failures: dict[str, Exception] | None = None) -> None:
        self.failures = failures or {}
        self.sent: list[tuple[str, dict[str, str], str]] = []

    def send(self, endpoint: str, keys, payload: str) -> None:
        self.sent.append((endpoint, dict(keys), payload))
        failure = self.failures.get(endpoint)
        if failure is not None:
            raise failure


class FakeBroadcaster:
    def __init__(self, *, delay: float = 0, error: Exception | None = None) -> None:
        self.delay = delay
        self.error = error
        self.sent: list[tuple[int, dict[str, Any]]] = []

    async def send_to_user(self, user_id: int, notification: dict[str, Any]) -> None:
        if self.delay:
            await anyio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append((user_id, notification))


class FakeSocket:
    """Minimal websocket double recording every JSON message it is sent."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[dict[str, Any]] = []
        self.closed: tuple[int, str | None] | None = None

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.messages.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = (code, reason)

    def events(self, name: str) -> list[dict[str, Any]]:
        return [message for message in self.messages if message["type"] == name]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        secret_key="test-secret",
        scheduler_enabled=False,
        delivery_timeout_seconds=0.5,
        batch_concurrency=3,
    )


@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def create_user(session_factory):
    """Return a helper that inserts a user and returns the entity."""

    def _create(
        name: str = "Ada", email: str | None = "ada@example.com", *, is_admin: bool = False
    ) -> User:
        with session_factory() as session:
            return UserRepository(session).create(
                User(id=None, name=name, email=email, is_admin=is_admin)
            )

    return _create


@pytest.fixture
def create_notification(session_factory):
    """Insert a pending notification directly, bypassing channel resolution."""

    def _create(user_id: int, channels: list[NotificationChannel], **values: Any) -> Notification:
        values.setdefault("title", "Reminder")
        values.setdefault("message", "Review chapter 3")
        with session_factory() as session:
            return NotificationRepository(session).create(
                Notification(
                    id=None,
                    user_id=user_id,
                    type=values.pop("type", NotificationType.INFO),
                    category=values.pop("category", NotificationCategory.STUDY),
                    priority=values.pop("priority", NotificationPriority.MEDIUM),
                    channels=list(channels),
                    **values,
                )
            )

    return _create


@pytest.fixture
def identity(session_factory, settings) -> UserDirectory:
    return UserDirectory(session_factory, settings)


@pytest.fixture
def delivery_queue() -> RecordingDeliveryQueue:
    return RecordingDeliveryQueue()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def service(session, delivery_queue, publisher, identity) -> NotificationService:
    return NotificationService(
        session,
        delivery=delivery_queue,
        events=publisher,
        identity=identity,
        clock=lambda: FROZEN_NOW,
    )
