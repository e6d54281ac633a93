"""Persistence helpers for scheduled notifications."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from notification_engine.domain.entities import RecurringRule, ScheduledNotification
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    RecurringInterval,
)
from notification_engine.infrastructure.models import ScheduledNotificationModel
from notification_engine.utils import ensure_utc, to_naive_utc


class ScheduledNotificationRepository:
    """Provide CRUD operations and due-item lookups for schedules."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, scheduled: ScheduledNotification) -> ScheduledNotification:
        model = ScheduledNotificationModel()
        self._apply_entity_to_model(model, scheduled)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, scheduled_id: int) -> ScheduledNotification | None:
        model = self.session.get(ScheduledNotificationModel, scheduled_id)
        return self._to_entity(model) if model else None

    def update(self, scheduled: ScheduledNotification) -> ScheduledNotification:
        model = self.session.get(ScheduledNotificationModel, scheduled.id)
        if model is None:
            msg = f"Scheduled notification with id {scheduled.id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, scheduled)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def record_execution(
        self, previous: ScheduledNotification, advanced: ScheduledNotification
    ) -> bool:
        """Store execution progress unless the row changed since ``previous`` was read.

        A schedule cancelled or rescheduled in the meantime keeps its newer
        state and ``False`` is returned.
        """

        updated = (
            self.session.query(ScheduledNotificationModel)
            .filter(ScheduledNotificationModel.id == previous.id)
            .filter(ScheduledNotificationModel.is_active.is_(True))
            .filter(ScheduledNotificationModel.execution_count == previous.execution_count)
            .filter(
                ScheduledNotificationModel.scheduled_at == to_naive_utc(previous.scheduled_at)
            )
            .update(
                {
                    ScheduledNotificationModel.scheduled_at: to_naive_utc(advanced.scheduled_at),
                    ScheduledNotificationModel.is_active: advanced.is_active,
                    ScheduledNotificationModel.last_executed_at: to_naive_utc(
                        advanced.last_executed_at
                    ),
                    ScheduledNotificationModel.execution_count: advanced.execution_count,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return bool(updated)

    def list_for_user(
        self, user_id: int, *, active_only: bool = True
    ) -> Sequence[ScheduledNotification]:
        query = self.session.query(ScheduledNotificationModel).filter(
            ScheduledNotificationModel.user_id == user_id
        )
        if active_only:
            query = query.filter(ScheduledNotificationModel.is_active.is_(True))
        query = query.order_by(
            ScheduledNotificationModel.scheduled_at.asc(),
            ScheduledNotificationModel.id.asc(),
        )
        return [self._to_entity(model) for model in query.all()]

    def list_due(self, now: datetime, *, limit: int) -> Sequence[ScheduledNotification]:
        query = (
            self.session.query(ScheduledNotificationModel)
            .filter(ScheduledNotificationModel.is_active.is_(True))
            .filter(ScheduledNotificationModel.scheduled_at <= to_naive_utc(now))
            .order_by(
                ScheduledNotificationModel.scheduled_at.asc(),
                ScheduledNotificationModel.id.asc(),
            )
            .limit(limit)
        )
        return [self._to_entity(model) for model in query.all()]

    @staticmethod
    def _serialize_rule(rule: RecurringRule | None) -> dict[str, Any] | None:
        if rule is None:
            return None
        end_date = to_naive_utc(rule.end_date)
        return {
            "interval": rule.interval.value,
            "days_of_week": list(rule.days_of_week) if rule.days_of_week else None,
            "day_of_month": rule.day_of_month,
            "end_date": end_date.isoformat() if end_date else None,
            "max_occurrences": rule.max_occurrences,
        }

    @staticmethod
    def _deserialize_rule(raw: dict[str, Any] | None) -> RecurringRule | None:
        if not raw:
            return None
        end_date = raw.get("end_date")
        return RecurringRule(
            interval=RecurringInterval(raw["interval"]),
            days_of_week=raw.get("days_of_week"),
            day_of_month=raw.get("day_of_month"),
            end_date=ensure_utc(datetime.fromisoformat(end_date)) if end_date else None,
            max_occurrences=raw.get("max_occurrences"),
        )

    @classmethod
    def _apply_entity_to_model(
        cls, model: ScheduledNotificationModel, scheduled: ScheduledNotification
    ) -> None:
        model.user_id = scheduled.user_id
        model.title = scheduled.title
        model.message = scheduled.message
        model.type = scheduled.type.value
        model.category = scheduled.category.value
        model.priority = scheduled.priority.value
        model.channels = [channel.value for channel in scheduled.channels]
        model.metadata_json = dict(scheduled.metadata or {})
        model.template_id = scheduled.template_id
        model.template_variables = dict(scheduled.template_variables or {})
        model.scheduled_at = to_naive_utc(scheduled.scheduled_at)
        model.timezone = scheduled.timezone
        model.recurring = cls._serialize_rule(scheduled.recurring)
        model.is_active = scheduled.is_active
        model.last_executed_at = to_naive_utc(scheduled.last_executed_at)
        model.execution_count = scheduled.execution_count

    @classmethod
    def _to_entity(cls, model: ScheduledNotificationModel) -> ScheduledNotification:
        return ScheduledNotification(
            id=model.id,
            user_id=model.user_id,
            scheduled_at=ensure_utc(model.scheduled_at),
            title=model.title,
            message=model.message,
            type=NotificationType(model.type),
            category=NotificationCategory(model.category),
            priority=NotificationPriority(model.priority),
            channels=[NotificationChannel(value) for value in model.channels or []],
            metadata=dict(model.metadata_json or {}),
            template_id=model.template_id,
            template_variables=dict(model.template_variables or {}),
            timezone=model.timezone,
            recurring=cls._deserialize_rule(model.recurring),
            is_active=bool(model.is_active),
            last_executed_at=ensure_utc(model.last_executed_at),
            execution_count=model.execution_count or 0,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


__all__ = ["ScheduledNotificationRepository"]
