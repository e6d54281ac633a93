"""Wire the notification components together for one process."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from notification_engine.application.batches import BatchProcessor
from notification_engine.application.dispatcher import DeliveryDispatcher
from notification_engine.application.scheduler import NotificationScheduler
from notification_engine.application.service import NotificationService
from notification_engine.config import Settings, get_settings
from notification_engine.domain.ports import (
    EmailTransport,
    IdentityProvider,
    PushTransport,
)
from notification_engine.infrastructure.email import build_email_transport
from notification_engine.infrastructure.identity import UserDirectory
from notification_engine.infrastructure.push import build_push_transport
from notification_engine.infrastructure.realtime import (
    ConnectionRegistry,
    NotificationGateway,
    RealtimeEventPublisher,
)
from notification_engine.infrastructure.repositories import NotificationRepository
from notification_engine.utils import LoopBridge, now_utc

logger = logging.getLogger(__name__)


class NotificationEngine:
    """Own the long-lived collaborators and their start/stop lifecycle.

    Services are short-lived: :meth:`build_service` binds one to a session.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        settings: Settings | None = None,
        email_transport: EmailTransport | None = None,
        push_transport: PushTransport | None = None,
        identity: IdentityProvider | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.clock = clock
        self.bridge = LoopBridge()
        self.identity = identity or UserDirectory(session_factory, self.settings)
        self.registry = ConnectionRegistry(clock)
        self.gateway = NotificationGateway(self.registry, self.count_unread)
        self.publisher = RealtimeEventPublisher(self.gateway, self.bridge)
        self.dispatcher = DeliveryDispatcher(
            session_factory,
            broadcaster=self.gateway,
            email_transport=email_transport or build_email_transport(self.settings),
            push_transport=push_transport or build_push_transport(self.settings),
            identity=self.identity,
            bridge=self.bridge,
            timeout_seconds=self.settings.delivery_timeout_seconds,
            app_name=self.settings.app_name,
            clock=clock,
        )
        self.scheduler = NotificationScheduler(
            session_factory,
            self.build_service,
            self.dispatcher,
            interval_seconds=self.settings.scheduler_interval_seconds,
            batch_size=self.settings.scheduler_batch_size,
            clock=clock,
        )
        self.batches = BatchProcessor(
            session_factory,
            self.build_service,
            self.bridge,
            concurrency=self.settings.batch_concurrency,
            clock=clock,
        )

    def build_service(self, session: Session) -> NotificationService:
        return NotificationService(
            session,
            delivery=self.dispatcher,
            events=self.publisher,
            identity=self.identity,
            clock=self.clock,
        )

    def count_unread(self, user_id: int) -> int:
        with self.session_factory() as session:
            return NotificationRepository(session).count_unread(user_id)

    async def start(self) -> None:
        """Bind to the running loop and start the registry and scheduler."""

        self.bridge.bind()
        self.registry.start()
        if self.settings.scheduler_enabled:
            self.scheduler.start()
        logger.info("Notification engine started")

    async def stop(self) -> None:
        self.scheduler.stop()
        await self.bridge.drain()
        self.registry.stop()
        self.bridge.unbind()
        logger.info("Notification engine stopped")


__all__ = ["NotificationEngine"]
