"""Persistence layer for notification templates."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from notification_engine.domain.entities import NotificationTemplate
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from notification_engine.infrastructure.models import NotificationTemplateModel
from notification_engine.utils import ensure_utc


class NotificationTemplateRepository:
    """Provide CRUD operations for templates; deletion is a soft delete."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self, *, include_inactive: bool = False) -> Sequence[NotificationTemplate]:
        query = self.session.query(NotificationTemplateModel)
        if not include_inactive:
            query = query.filter(NotificationTemplateModel.is_active.is_(True))
        query = query.order_by(NotificationTemplateModel.name.asc())
        return [self._to_entity(model) for model in query.all()]

    def get(self, template_id: int) -> NotificationTemplate | None:
        model = self.session.get(NotificationTemplateModel, template_id)
        return self._to_entity(model) if model else None

    def get_by_name(self, name: str) -> NotificationTemplate | None:
        normalized_name = name.strip().lower()
        model = (
            self.session.query(NotificationTemplateModel)
            .filter(func.lower(NotificationTemplateModel.name) == normalized_name)
            .first()
        )
        return self._to_entity(model) if model else None

    def create(self, template: NotificationTemplate) -> NotificationTemplate:
        model = NotificationTemplateModel()
        self._apply_entity_to_model(model, template)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, template: NotificationTemplate) -> NotificationTemplate:
        model = self.session.get(NotificationTemplateModel, template.id)
        if not model:
            msg = f"Template with id {template.id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, template)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def deactivate(self, template_id: int) -> bool:
        model = self.session.get(NotificationTemplateModel, template_id)
        if not model or not model.is_active:
            return False
        model.is_active = False
        self.session.add(model)
        self.session.commit()
        return True

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationTemplateModel, template: NotificationTemplate
    ) -> None:
        model.name = template.name.strip()
        model.description = template.description
        model.title = template.title
        model.message = template.message
        model.type = template.type.value
        model.category = template.category.value
        model.priority = template.priority.value
        model.channels = [channel.value for channel in template.channels]
        model.variables = list(template.variables or [])
        model.metadata_json = dict(template.metadata or {})
        model.is_active = template.is_active

    @staticmethod
    def _to_entity(model: NotificationTemplateModel) -> NotificationTemplate:
        return NotificationTemplate(
            id=model.id,
            name=model.name,
            title=model.title,
            message=model.message,
            type=NotificationType(model.type),
            category=NotificationCategory(model.category),
            priority=NotificationPriority(model.priority),
            channels=[NotificationChannel(value) for value in model.channels or []],
            variables=list(model.variables or []),
            metadata=dict(model.metadata_json or {}),
            description=model.description,
            is_active=bool(model.is_active),
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


__all__ = ["NotificationTemplateRepository"]
