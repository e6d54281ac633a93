"""Persistence helpers for per-channel delivery records."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notification_engine.domain.entities import DeliveryAttempt
from notification_engine.domain.enums import DeliveryStatus, NotificationChannel
from notification_engine.infrastructure.models import (
    DeliveryAttemptModel,
    NotificationModel,
)
from notification_engine.utils import ensure_utc, to_naive_utc


class DeliveryAttemptRepository:
    """Keep exactly one :class:`DeliveryAttempt` per notification and channel."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_or_create(
        self, notification_id: int, channel: NotificationChannel
    ) -> DeliveryAttempt:
        model = self._find(notification_id, channel)
        if model is None:
            model = DeliveryAttemptModel(
                notification_id=notification_id,
                channel=channel.value,
                status=DeliveryStatus.PENDING.value,
                attempts=0,
                metadata_json={},
            )
            self.session.add(model)
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                model = self._find(notification_id, channel)
                if model is None:
                    raise
            else:
                self.session.refresh(model)
        return self._to_entity(model)

    def record_outcome(
        self,
        attempt_id: int,
        status: DeliveryStatus,
        *,
        attempted_at: datetime,
        failure_reason: str | None = None,
        external_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DeliveryAttempt:
        """Store the result of one send; ``attempts`` always grows by one."""

        model = self.session.get(DeliveryAttemptModel, attempt_id)
        if model is None:
            msg = f"Delivery attempt with id {attempt_id} not found"
            raise ValueError(msg)
        model.status = status.value
        model.attempts = (model.attempts or 0) + 1
        model.last_attempt_at = to_naive_utc(attempted_at)
        if status is DeliveryStatus.DELIVERED:
            model.delivered_at = to_naive_utc(attempted_at)
            model.failure_reason = None
        else:
            model.failure_reason = failure_reason
        if external_id is not None:
            model.external_id = external_id
        if metadata:
            model.metadata_json = {**(model.metadata_json or {}), **metadata}
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_for_notification(self, notification_id: int) -> Sequence[DeliveryAttempt]:
        query = (
            self.session.query(DeliveryAttemptModel)
            .filter(DeliveryAttemptModel.notification_id == notification_id)
            .order_by(DeliveryAttemptModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def delivery_summary(self, user_id: int) -> tuple[int, int, float]:
        """Return ``(total, delivered, average_seconds)`` for a user's attempts."""

        rows = (
            self.session.query(
                DeliveryAttemptModel.status,
                DeliveryAttemptModel.created_at,
                DeliveryAttemptModel.delivered_at,
            )
            .join(
                NotificationModel,
                NotificationModel.id == DeliveryAttemptModel.notification_id,
            )
            .filter(NotificationModel.user_id == user_id)
            .all()
        )
        delivered = 0
        durations: list[float] = []
        for status, created_at, delivered_at in rows:
            if status != DeliveryStatus.DELIVERED.value:
                continue
            delivered += 1
            if created_at is not None and delivered_at is not None:
                durations.append((delivered_at - created_at).total_seconds())
        average = sum(durations) / len(durations) if durations else 0.0
        return len(rows), delivered, average

    def _find(
        self, notification_id: int, channel: NotificationChannel
    ) -> DeliveryAttemptModel | None:
        return (
            self.session.query(DeliveryAttemptModel)
            .filter(DeliveryAttemptModel.notification_id == notification_id)
            .filter(DeliveryAttemptModel.channel == channel.value)
            .first()
        )

    @staticmethod
    def _to_entity(model: DeliveryAttemptModel) -> DeliveryAttempt:
        return DeliveryAttempt(
            id=model.id,
            notification_id=model.notification_id,
            channel=NotificationChannel(model.channel),
            status=DeliveryStatus(model.status),
            attempts=model.attempts or 0,
            last_attempt_at=ensure_utc(model.last_attempt_at),
            delivered_at=ensure_utc(model.delivered_at),
            failure_reason=model.failure_reason,
            external_id=model.external_id,
            metadata=dict(model.metadata_json or {}),
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


__all__ = ["DeliveryAttemptRepository"]
