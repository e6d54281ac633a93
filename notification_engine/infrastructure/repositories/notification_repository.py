"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session

from notification_engine.domain.entities import Notification, NotificationFilter
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from notification_engine.infrastructure.models import (
    DeliveryAttemptModel,
    NotificationModel,
)
from notification_engine.utils import ensure_utc, now_naive_utc, to_naive_utc

_PRIORITY_RANK = {
    NotificationPriority.LOW.value: 0,
    NotificationPriority.MEDIUM.value: 1,
    NotificationPriority.HIGH.value: 2,
    NotificationPriority.URGENT.value: 3,
}


def _read_status():
    # Deferred rows stay pending so the scheduler still releases them.
    return case(
        (
            NotificationModel.status == NotificationStatus.PENDING.value,
            NotificationModel.status,
        ),
        else_=NotificationStatus.READ.value,
    )


def _unread_status():
    return case(
        (
            NotificationModel.status == NotificationStatus.READ.value,
            NotificationStatus.SENT.value,
        ),
        else_=NotificationModel.status,
    )


_SORTABLE_COLUMNS = {
    "created_at": NotificationModel.created_at,
    "updated_at": NotificationModel.updated_at,
    "scheduled_at": NotificationModel.scheduled_at,
    "read_at": NotificationModel.read_at,
    "title": NotificationModel.title,
    "type": NotificationModel.type,
    "category": NotificationModel.category,
    "status": NotificationModel.status,
    "priority": case(_PRIORITY_RANK, value=NotificationModel.priority, else_=0),
}


class NotificationRepository:
    """Provide CRUD and bulk operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def get_for_user(self, notification_id: int, user_id: int) -> Notification | None:
        model = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .filter(NotificationModel.user_id == user_id)
            .first()
        )
        return self._to_entity(model) if model else None

    def update(self, notification: Notification) -> Notification:
        if notification.id is None:
            raise ValueError("Notification id is required for updates")
        model = self.session.get(NotificationModel, notification.id)
        if model is None:
            msg = f"Notification with id {notification.id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def set_status(
        self,
        notification_id: int,
        status: NotificationStatus,
        *,
        expected: NotificationStatus | None = None,
    ) -> bool:
        """Set ``status``; when ``expected`` is given only rows in that state change."""

        query = self.session.query(NotificationModel).filter(
            NotificationModel.id == notification_id
        )
        if expected is not None:
            query = query.filter(NotificationModel.status == expected.value)
        updated = query.update(
            {
                NotificationModel.status: status.value,
                NotificationModel.updated_at: now_naive_utc(),
            },
            synchronize_session=False,
        )
        self.session.commit()
        return bool(updated)

    def list_for_user(
        self, user_id: int, filters: NotificationFilter
    ) -> tuple[Sequence[Notification], int]:
        """Return one page of the user's notifications and the unpaged total."""

        query = self._filtered_query(user_id, filters)
        total = query.count()
        column = _SORTABLE_COLUMNS.get(filters.sort_by, NotificationModel.created_at)
        if filters.sort_order == "asc":
            query = query.order_by(column.asc(), NotificationModel.id.asc())
        else:
            query = query.order_by(column.desc(), NotificationModel.id.desc())
        if filters.offset:
            query = query.offset(filters.offset)
        if filters.limit is not None:
            query = query.limit(filters.limit)
        return [self._to_entity(model) for model in query.all()], total

    def mark_read(
        self, user_id: int, notification_ids: Iterable[int], *, read_at: datetime
    ) -> int:
        ids = self._clean_ids(notification_ids)
        if not ids:
            return 0
        return self._bulk_update(
            self._owned(user_id, ids),
            {
                NotificationModel.is_read: True,
                NotificationModel.read_at: to_naive_utc(read_at),
                NotificationModel.status: _read_status(),
            },
        )

    def mark_all_read(self, user_id: int, *, read_at: datetime) -> int:
        """Mark every unread notification as read; return how many changed."""

        query = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
        )
        return self._bulk_update(
            query,
            {
                NotificationModel.is_read: True,
                NotificationModel.read_at: to_naive_utc(read_at),
                NotificationModel.status: _read_status(),
            },
        )

    def mark_unread(self, user_id: int, notification_ids: Iterable[int]) -> int:
        ids = self._clean_ids(notification_ids)
        if not ids:
            return 0
        return self._bulk_update(
            self._owned(user_id, ids),
            {
                NotificationModel.is_read: False,
                NotificationModel.read_at: None,
                NotificationModel.status: _unread_status(),
            },
        )

    def archive(
        self, user_id: int, notification_ids: Iterable[int], *, archived_at: datetime
    ) -> int:
        ids = self._clean_ids(notification_ids)
        if not ids:
            return 0
        return self._bulk_update(
            self._owned(user_id, ids),
            {
                NotificationModel.is_archived: True,
                NotificationModel.archived_at: to_naive_utc(archived_at),
            },
        )

    def update_priority(
        self,
        user_id: int,
        notification_ids: Iterable[int],
        priority: NotificationPriority,
    ) -> int:
        ids = self._clean_ids(notification_ids)
        if not ids:
            return 0
        return self._bulk_update(
            self._owned(user_id, ids),
            {NotificationModel.priority: priority.value},
        )

    def delete(self, user_id: int, notification_ids: Iterable[int]) -> int:
        ids = self._clean_ids(notification_ids)
        if not ids:
            return 0
        owned_ids = [row.id for row in self._owned(user_id, ids).with_entities(NotificationModel.id)]
        return self._delete_ids(owned_ids)

    def clear_all(self, user_id: int) -> int:
        ids = [
            row.id
            for row in self.session.query(NotificationModel.id).filter(
                NotificationModel.user_id == user_id
            )
        ]
        return self._delete_ids(ids)

    def count_unread(self, user_id: int) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .filter(NotificationModel.is_archived.is_(False))
            .scalar()
            or 0
        )

    def count_for_user(self, user_id: int, *, unread_only: bool = False) -> int:
        query = self.session.query(func.count(NotificationModel.id)).filter(
            NotificationModel.user_id == user_id
        )
        if unread_only:
            query = query.filter(NotificationModel.is_read.is_(False))
        return query.scalar() or 0

    def count_grouped(self, user_id: int, field_name: str) -> dict[str, int]:
        column = getattr(NotificationModel, field_name)
        rows = (
            self.session.query(column, func.count(NotificationModel.id))
            .filter(NotificationModel.user_id == user_id)
            .group_by(column)
            .all()
        )
        return {str(key): int(count) for key, count in rows}

    def claim_due_pending(self, now: datetime, *, limit: int) -> list[int]:
        """Move due deferred notifications from ``pending`` to ``sent``.

        Each row is claimed with a conditional update so that concurrent
        ticks never dispatch the same notification twice.
        """

        cutoff = to_naive_utc(now)
        candidates = [
            row.id
            for row in self.session.query(NotificationModel.id)
            .filter(NotificationModel.status == NotificationStatus.PENDING.value)
            .filter(NotificationModel.scheduled_at.is_not(None))
            .filter(NotificationModel.scheduled_at <= cutoff)
            .order_by(NotificationModel.scheduled_at.asc(), NotificationModel.id.asc())
            .limit(limit)
        ]
        claimed: list[int] = []
        for notification_id in candidates:
            updated = (
                self.session.query(NotificationModel)
                .filter(NotificationModel.id == notification_id)
                .filter(NotificationModel.status == NotificationStatus.PENDING.value)
                .update(
                    {
                        NotificationModel.status: NotificationStatus.SENT.value,
                        NotificationModel.updated_at: now_naive_utc(),
                    },
                    synchronize_session=False,
                )
            )
            if updated:
                claimed.append(notification_id)
        self.session.commit()
        return claimed

    def _filtered_query(self, user_id: int, filters: NotificationFilter) -> Query:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.user_id == user_id
        )
        if filters.type is not None:
            query = query.filter(NotificationModel.type == filters.type.value)
        if filters.category is not None:
            query = query.filter(NotificationModel.category == filters.category.value)
        if filters.priority is not None:
            query = query.filter(NotificationModel.priority == filters.priority.value)
        if filters.status is not None:
            query = query.filter(NotificationModel.status == filters.status.value)
        if filters.is_read is not None:
            query = query.filter(NotificationModel.is_read.is_(filters.is_read))
        if filters.is_archived is not None:
            query = query.filter(NotificationModel.is_archived.is_(filters.is_archived))
        if filters.date_from is not None:
            query = query.filter(NotificationModel.created_at >= to_naive_utc(filters.date_from))
        if filters.date_to is not None:
            query = query.filter(NotificationModel.created_at <= to_naive_utc(filters.date_to))
        return query

    def _owned(self, user_id: int, ids: list[int]) -> Query:
        return (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id.in_(ids))
            .filter(NotificationModel.user_id == user_id)
        )

    def _bulk_update(self, query: Query, values: dict[Any, Any]) -> int:
        values = {**values, NotificationModel.updated_at: now_naive_utc()}
        updated = query.update(values, synchronize_session=False)
        self.session.commit()
        return int(updated or 0)

    def _delete_ids(self, ids: list[int]) -> int:
        if not ids:
            return 0
        self.session.query(DeliveryAttemptModel).filter(
            DeliveryAttemptModel.notification_id.in_(ids)
        ).delete(synchronize_session=False)
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id.in_(ids))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return int(deleted or 0)

    @staticmethod
    def _clean_ids(notification_ids: Iterable[int]) -> list[int]:
        return sorted({int(value) for value in notification_ids if value is not None})

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationModel, notification: Notification
    ) -> None:
        model.user_id = notification.user_id
        model.title = notification.title
        model.message = notification.message
        model.type = notification.type.value
        model.category = notification.category.value
        model.priority = notification.priority.value
        model.status = notification.status.value
        model.channels = [channel.value for channel in notification.channels]
        model.metadata_json = dict(notification.metadata or {})
        model.scheduled_at = to_naive_utc(notification.scheduled_at)
        model.expires_at = to_naive_utc(notification.expires_at)
        model.template_id = notification.template_id
        model.template_variables = dict(notification.template_variables or {})
        model.is_read = notification.is_read
        model.is_archived = notification.is_archived
        model.read_at = to_naive_utc(notification.read_at)
        model.archived_at = to_naive_utc(notification.archived_at)
        model.batch_id = notification.batch_id
        if notification.created_at is not None:
            model.created_at = to_naive_utc(notification.created_at)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            title=model.title,
            message=model.message,
            type=NotificationType(model.type),
            category=NotificationCategory(model.category),
            priority=NotificationPriority(model.priority),
            status=NotificationStatus(model.status),
            channels=[NotificationChannel(value) for value in model.channels or []],
            metadata=dict(model.metadata_json or {}),
            scheduled_at=ensure_utc(model.scheduled_at),
            expires_at=ensure_utc(model.expires_at),
            template_id=model.template_id,
            template_variables=dict(model.template_variables or {}),
            is_read=bool(model.is_read),
            is_archived=bool(model.is_archived),
            read_at=ensure_utc(model.read_at),
            archived_at=ensure_utc(model.archived_at),
            batch_id=model.batch_id,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


__all__ = ["NotificationRepository"]
