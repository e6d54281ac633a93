"""Persistence helpers for notification batches."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from notification_engine.domain.entities import NotificationBatch
from notification_engine.domain.enums import BatchStatus
from notification_engine.infrastructure.models import NotificationBatchModel
from notification_engine.utils import ensure_utc, to_naive_utc


class NotificationBatchRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, batch: NotificationBatch) -> NotificationBatch:
        model = NotificationBatchModel()
        self._apply_entity_to_model(model, batch)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, batch_id: int) -> NotificationBatch | None:
        model = self.session.get(NotificationBatchModel, batch_id)
        return self._to_entity(model) if model else None

    def list(self, *, created_by: int | None = None, limit: int = 50) -> Sequence[NotificationBatch]:
        query = self.session.query(NotificationBatchModel)
        if created_by is not None:
            query = query.filter(NotificationBatchModel.created_by == created_by)
        query = query.order_by(
            NotificationBatchModel.created_at.desc(), NotificationBatchModel.id.desc()
        ).limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def update(self, batch: NotificationBatch) -> NotificationBatch:
        model = self.session.get(NotificationBatchModel, batch.id)
        if model is None:
            msg = f"Batch with id {batch.id} not found"
            raise ValueError(msg)
        current = BatchStatus(model.status)
        if batch.status is not current and not current.can_transition_to(batch.status):
            msg = f"Batch {batch.id} cannot move from {current.value} to {batch.status.value}"
            raise ValueError(msg)
        self._apply_entity_to_model(model, batch)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationBatchModel, batch: NotificationBatch
    ) -> None:
        model.name = batch.name
        model.description = batch.description
        model.template_id = batch.template_id
        model.template_variables = dict(batch.template_variables or {})
        model.user_ids = list(batch.user_ids)
        model.status = batch.status.value
        model.total_count = batch.total_count
        model.success_count = batch.success_count
        model.failure_count = batch.failure_count
        model.started_at = to_naive_utc(batch.started_at)
        model.completed_at = to_naive_utc(batch.completed_at)
        model.created_by = batch.created_by

    @staticmethod
    def _to_entity(model: NotificationBatchModel) -> NotificationBatch:
        return NotificationBatch(
            id=model.id,
            name=model.name,
            user_ids=list(model.user_ids or []),
            description=model.description,
            template_id=model.template_id,
            template_variables=dict(model.template_variables or {}),
            status=BatchStatus(model.status),
            total_count=model.total_count or 0,
            success_count=model.success_count or 0,
            failure_count=model.failure_count or 0,
            started_at=ensure_utc(model.started_at),
            completed_at=ensure_utc(model.completed_at),
            created_by=model.created_by,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


__all__ = ["NotificationBatchRepository"]
