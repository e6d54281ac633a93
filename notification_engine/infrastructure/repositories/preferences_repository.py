"""Persistence helpers for notification preferences."""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notification_engine.domain.entities import (
    CategoryPreference,
    NotificationPreferences,
)
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
)
from notification_engine.infrastructure.models import NotificationPreferencesModel
from notification_engine.utils import ensure_utc


class NotificationPreferencesRepository:
    """Store one preferences row per user."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_for_user(self, user_id: int) -> NotificationPreferences | None:
        model = self._find(user_id)
        return self._to_entity(model) if model else None

    def upsert(self, preferences: NotificationPreferences) -> NotificationPreferences:
        """Insert the row, or update it when one already exists for the user.

        A concurrent insert for the same user surfaces as an
        ``IntegrityError``; it is retried as an update.
        """

        model = self._find(preferences.user_id)
        if model is None:
            model = NotificationPreferencesModel(user_id=preferences.user_id)
            self._apply_entity_to_model(model, preferences)
            self.session.add(model)
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                model = self._find(preferences.user_id)
                if model is None:
                    raise
            else:
                self.session.refresh(model)
                return self._to_entity(model)
        self._apply_entity_to_model(model, preferences)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def _find(self, user_id: int) -> NotificationPreferencesModel | None:
        return (
            self.session.query(NotificationPreferencesModel)
            .filter(NotificationPreferencesModel.user_id == user_id)
            .first()
        )

    @staticmethod
    def _serialize_categories(
        categories: dict[NotificationCategory, CategoryPreference],
    ) -> dict[str, Any]:
        return {
            category.value: {
                "enabled": preference.enabled,
                "channels": [channel.value for channel in preference.channels],
                "priority": preference.priority.value,
            }
            for category, preference in categories.items()
        }

    @staticmethod
    def _deserialize_categories(
        raw: dict[str, Any] | None,
    ) -> dict[NotificationCategory, CategoryPreference]:
        categories: dict[NotificationCategory, CategoryPreference] = {}
        for key, value in (raw or {}).items():
            try:
                category = NotificationCategory(key)
            except ValueError:
                continue
            value = value or {}
            categories[category] = CategoryPreference(
                enabled=bool(value.get("enabled", True)),
                channels=[
                    NotificationChannel(channel)
                    for channel in value.get("channels", [])
                    if channel in NotificationChannel._value2member_map_
                ],
                priority=NotificationPriority(
                    value.get("priority", NotificationPriority.MEDIUM.value)
                ),
            )
        return categories

    @classmethod
    def _apply_entity_to_model(
        cls, model: NotificationPreferencesModel, preferences: NotificationPreferences
    ) -> None:
        model.email_enabled = preferences.email_enabled
        model.push_enabled = preferences.push_enabled
        model.in_app_enabled = preferences.in_app_enabled
        model.sms_enabled = preferences.sms_enabled
        model.quiet_hours_enabled = preferences.quiet_hours_enabled
        model.quiet_hours_start = preferences.quiet_hours_start
        model.quiet_hours_end = preferences.quiet_hours_end
        model.timezone = preferences.timezone
        model.categories = cls._serialize_categories(preferences.categories)

    @classmethod
    def _to_entity(cls, model: NotificationPreferencesModel) -> NotificationPreferences:
        return NotificationPreferences(
            id=model.id,
            user_id=model.user_id,
            email_enabled=bool(model.email_enabled),
            push_enabled=bool(model.push_enabled),
            in_app_enabled=bool(model.in_app_enabled),
            sms_enabled=bool(model.sms_enabled),
            quiet_hours_enabled=bool(model.quiet_hours_enabled),
            quiet_hours_start=model.quiet_hours_start,
            quiet_hours_end=model.quiet_hours_end,
            timezone=model.timezone,
            categories=cls._deserialize_categories(model.categories),
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


__all__ = ["NotificationPreferencesRepository"]
