"""Notification use cases exposed to the API, scheduler and batch processor."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping

from sqlalchemy.orm import Session

from notification_engine.application.channel_resolver import resolve_channels
from notification_engine.application.preferences import default_preferences
from notification_engine.application.templating import apply_template, extract_variables
from notification_engine.domain.entities import (
    DeliveryAttempt,
    Notification,
    NotificationBatch,
    NotificationDraft,
    NotificationFilter,
    NotificationPreferences,
    NotificationStats,
    NotificationTemplate,
    PushSubscription,
    RecurringRule,
    ScheduledNotification,
)
from notification_engine.domain.enums import (
    BulkAction,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from notification_engine.domain.exceptions import (
    NotFoundError,
    NotificationValidationError,
)
from notification_engine.domain.ports import (
    DeliveryQueue,
    EventPublisher,
    IdentityProvider,
)
from notification_engine.infrastructure.repositories import (
    DeliveryAttemptRepository,
    NotificationBatchRepository,
    NotificationPreferencesRepository,
    NotificationRepository,
    NotificationTemplateRepository,
    PushSubscriptionRepository,
    ScheduledNotificationRepository,
)
from notification_engine.utils import (
    ensure_utc,
    is_known_timezone,
    now_utc,
    parse_time_of_day,
)

logger = logging.getLogger(__name__)

_PREFERENCE_FIELDS = frozenset(
    {
        "email_enabled",
        "push_enabled",
        "in_app_enabled",
        "sms_enabled",
        "quiet_hours_enabled",
        "quiet_hours_start",
        "quiet_hours_end",
        "timezone",
        "categories",
    }
)
_TEMPLATE_FIELDS = frozenset(
    {
        "name",
        "description",
        "title",
        "message",
        "type",
        "category",
        "priority",
        "channels",
        "variables",
        "metadata",
        "is_active",
    }
)
_SCHEDULE_FIELDS = frozenset(
    {
        "title",
        "message",
        "type",
        "category",
        "priority",
        "channels",
        "metadata",
        "template_id",
        "template_variables",
        "scheduled_at",
        "timezone",
        "recurring",
    }
)


def _reject_unknown(changes: Mapping[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise NotificationValidationError(f"Unknown fields: {', '.join(unknown)}")


class NotificationService:
    """Orchestrate notification creation and the user-facing operations.

    Creation resolves channels against the user's preferences, renders a
    template when one is referenced, persists the notification and hands it
    to the delivery queue unless it is scheduled for later.
    """

    def __init__(
        self,
        session: Session,
        *,
        delivery: DeliveryQueue,
        events: EventPublisher,
        identity: IdentityProvider,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.session = session
        self._delivery = delivery
        self._events = events
        self._identity = identity
        self._clock = clock
        self._notifications = NotificationRepository(session)
        self._attempts = DeliveryAttemptRepository(session)
        self._templates = NotificationTemplateRepository(session)
        self._preferences = NotificationPreferencesRepository(session)
        self._subscriptions = PushSubscriptionRepository(session)
        self._schedules = ScheduledNotificationRepository(session)
        self._batches = NotificationBatchRepository(session)

    # Notifications

    def create_notification(self, user_id: int, draft: NotificationDraft) -> Notification:
        now = self._clock()
        expires_at = ensure_utc(draft.expires_at)
        if expires_at is not None and expires_at <= now:
            raise NotificationValidationError("Expiration date must be in the future")
        if not self._identity.user_exists(user_id):
            raise NotFoundError(f"User {user_id} not found")

        preferences = self.get_preferences(user_id)
        if draft.is_templated:
            template = self._templates.get(draft.template_id)
            if template is None or not template.is_active:
                raise NotFoundError(f"Template {draft.template_id} not found")
            draft = apply_template(template, draft.template_variables, draft)
        elif not (draft.title or "").strip() or not (draft.message or "").strip():
            raise NotificationValidationError(
                "A title and message are required when no template is given"
            )

        resolution = resolve_channels(
            draft.channels, draft.category, draft.priority, preferences, now
        )
        scheduled_at = ensure_utc(draft.scheduled_at)
        if resolution.deferred:
            scheduled_at = (
                max(scheduled_at, resolution.defer_until)
                if scheduled_at is not None
                else resolution.defer_until
            )

        notification = self._notifications.create(
            Notification(
                id=None,
                user_id=user_id,
                title=draft.title,
                message=draft.message,
                type=draft.type,
                category=draft.category,
                priority=draft.priority,
                status=NotificationStatus.PENDING,
                channels=resolution.channels,
                metadata=dict(draft.metadata or {}),
                scheduled_at=scheduled_at,
                expires_at=expires_at,
                template_id=draft.template_id,
                template_variables=dict(draft.template_variables or {}),
                batch_id=draft.batch_id,
            )
        )

        if scheduled_at is None or scheduled_at <= now:
            self._delivery.dispatch(notification.id)
            logger.info("Created notification %s for user %s", notification.id, user_id)
        else:
            logger.info(
                "Created notification %s for user %s, deferred until %s",
                notification.id,
                user_id,
                scheduled_at.isoformat(),
            )
        return notification

    def send_test(
        self,
        user_id: int,
        *,
        notification_type: NotificationType = NotificationType.INFO,
        channel: NotificationChannel | None = None,
    ) -> Notification:
        draft = NotificationDraft(
            title="Test Notification",
            message=(
                f"This is a test {notification_type.value} notification"
                " to verify your settings."
            ),
            type=notification_type,
            category=NotificationCategory.SYSTEM,
            priority=NotificationPriority.LOW,
            channels=[channel or NotificationChannel.IN_APP],
        )
        return self.create_notification(user_id, draft)

    def list_notifications(
        self, user_id: int, filters: NotificationFilter | None = None
    ) -> tuple[Sequence[Notification], int]:
        return self._notifications.list_for_user(user_id, filters or NotificationFilter())

    def get_notification(self, user_id: int, notification_id: int) -> Notification:
        notification = self._notifications.get_for_user(notification_id, user_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        return notification

    def list_deliveries(self, user_id: int, notification_id: int) -> Sequence[DeliveryAttempt]:
        notification = self.get_notification(user_id, notification_id)
        return self._attempts.list_for_notification(notification.id)

    def mark_read(self, user_id: int, notification_ids: Iterable[int]) -> int:
        ids = list(notification_ids)
        updated = self._notifications.mark_read(user_id, ids, read_at=self._clock())
        self._events.publish(
            user_id, "notificationsMarkedRead", {"notificationIds": ids, "userId": user_id}
        )
        self._events.refresh_unread_count(user_id)
        return updated

    def mark_all_read(self, user_id: int) -> int:
        """Mark everything read; return how many notifications changed."""

        updated = self._notifications.mark_all_read(user_id, read_at=self._clock())
        self._events.publish(user_id, "allNotificationsRead", {"userId": user_id})
        self._events.refresh_unread_count(user_id)
        return updated

    def archive(self, user_id: int, notification_ids: Iterable[int]) -> int:
        ids = list(notification_ids)
        updated = self._notifications.archive(user_id, ids, archived_at=self._clock())
        self._events.publish(
            user_id, "notificationsArchived", {"notificationIds": ids, "userId": user_id}
        )
        self._events.refresh_unread_count(user_id)
        return updated

    def delete_notification(self, user_id: int, notification_id: int) -> None:
        notification = self.get_notification(user_id, notification_id)
        self._notifications.delete(user_id, [notification.id])
        self._events.publish(
            user_id,
            "notificationDeleted",
            {"notificationId": notification.id, "userId": user_id},
        )
        self._events.refresh_unread_count(user_id)

    def clear_all(self, user_id: int) -> int:
        deleted = self._notifications.clear_all(user_id)
        self._events.publish(user_id, "notificationsCleared", {"userId": user_id})
        self._events.refresh_unread_count(user_id)
        return deleted

    def bulk_operation(
        self,
        user_id: int,
        action: BulkAction,
        notification_ids: Iterable[int],
        data: Mapping[str, Any] | None = None,
    ) -> int:
        ids = list(notification_ids)
        if not ids:
            raise NotificationValidationError("At least one notification id is required")
        now = self._clock()
        if action is BulkAction.MARK_AS_READ:
            affected = self._notifications.mark_read(user_id, ids, read_at=now)
        elif action is BulkAction.MARK_AS_UNREAD:
            affected = self._notifications.mark_unread(user_id, ids)
        elif action is BulkAction.ARCHIVE:
            affected = self._notifications.archive(user_id, ids, archived_at=now)
        elif action is BulkAction.DELETE:
            affected = self._notifications.delete(user_id, ids)
        elif action is BulkAction.UPDATE_PRIORITY:
            raw_priority = (data or {}).get("priority")
            try:
                priority = NotificationPriority(raw_priority)
            except ValueError as exc:
                raise NotificationValidationError(
                    "updatePriority requires a valid data.priority"
                ) from exc
            affected = self._notifications.update_priority(user_id, ids, priority)
        else:
            raise NotificationValidationError(f"Unsupported bulk action {action}")

        self._events.publish(
            user_id,
            "bulkOperationCompleted",
            {"action": action.value, "notificationIds": ids, "userId": user_id},
        )
        self._events.refresh_unread_count(user_id)
        logger.info(
            "Bulk %s affected %s notifications of user %s", action.value, affected, user_id
        )
        return affected

    def unread_count(self, user_id: int) -> dict[str, Any]:
        count = self._notifications.count_unread(user_id)
        return {"count": count, "hasUnread": count > 0}

    def stats(self, user_id: int) -> NotificationStats:
        attempts, delivered, average = self._attempts.delivery_summary(user_id)
        return NotificationStats(
            total=self._notifications.count_for_user(user_id),
            unread=self._notifications.count_for_user(user_id, unread_only=True),
            by_type=self._notifications.count_grouped(user_id, "type"),
            by_category=self._notifications.count_grouped(user_id, "category"),
            by_priority=self._notifications.count_grouped(user_id, "priority"),
            by_status=self._notifications.count_grouped(user_id, "status"),
            delivery_rate=(delivered / attempts * 100) if attempts else 0.0,
            average_delivery_time=average,
        )

    # Preferences

    def get_preferences(self, user_id: int) -> NotificationPreferences:
        preferences = self._preferences.get_for_user(user_id)
        if preferences is None:
            preferences = self._preferences.upsert(default_preferences(user_id))
        return preferences

    def update_preferences(
        self, user_id: int, changes: Mapping[str, Any]
    ) -> NotificationPreferences:
        _reject_unknown(changes, _PREFERENCE_FIELDS)
        for key in ("quiet_hours_start", "quiet_hours_end"):
            if key in changes:
                try:
                    parse_time_of_day(changes[key])
                except ValueError as exc:
                    raise NotificationValidationError(str(exc)) from exc
        if "timezone" in changes and not is_known_timezone(changes["timezone"]):
            raise NotificationValidationError(f"Unknown timezone '{changes['timezone']}'")

        current = self.get_preferences(user_id)
        values = dict(changes)
        if "categories" in values:
            values["categories"] = {**current.categories, **values["categories"]}
        updated = self._preferences.upsert(replace(current, **values))
        logger.info("Updated notification preferences for user %s", user_id)
        return updated

    # Templates

    def list_templates(self) -> Sequence[NotificationTemplate]:
        return self._templates.list()

    def get_template(self, template_id: int) -> NotificationTemplate:
        template = self._templates.get(template_id)
        if template is None or not template.is_active:
            raise NotFoundError("Template not found")
        return template

    def create_template(self, template: NotificationTemplate) -> NotificationTemplate:
        name = (template.name or "").strip()
        if not name:
            raise NotificationValidationError("Template name is required")
        if self._templates.get_by_name(name) is not None:
            raise NotificationValidationError(f"Template '{name}' already exists")
        if not template.variables:
            template = replace(
                template, variables=extract_variables(template.title, template.message)
            )
        created = self._templates.create(replace(template, name=name, is_active=True))
        logger.info("Created notification template %s (%s)", created.id, created.name)
        return created

    def update_template(
        self, template_id: int, changes: Mapping[str, Any]
    ) -> NotificationTemplate:
        _reject_unknown(changes, _TEMPLATE_FIELDS)
        current = self.get_template(template_id)
        if "name" in changes:
            name = (changes["name"] or "").strip()
            existing = self._templates.get_by_name(name) if name else None
            if not name or (existing is not None and existing.id != template_id):
                raise NotificationValidationError(f"Template '{name}' already exists")
        updated = replace(current, **changes)
        if ("title" in changes or "message" in changes) and "variables" not in changes:
            updated = replace(
                updated, variables=extract_variables(updated.title, updated.message)
            )
        return self._templates.update(updated)

    def delete_template(self, template_id: int) -> None:
        """Soft-delete: existing notifications keep their template reference."""

        self.get_template(template_id)
        self._templates.deactivate(template_id)
        logger.info("Deactivated notification template %s", template_id)

    # Push subscriptions

    def subscribe_push(
        self,
        user_id: int,
        *,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: str | None = None,
    ) -> PushSubscription:
        if not endpoint or not p256dh or not auth:
            raise NotificationValidationError("endpoint, p256dh and auth are required")
        subscription = self._subscriptions.upsert(
            PushSubscription(
                id=None,
                user_id=user_id,
                endpoint=endpoint,
                p256dh=p256dh,
                auth=auth,
                user_agent=user_agent,
            )
        )
        logger.info("Stored push subscription %s for user %s", subscription.id, user_id)
        return subscription

    def unsubscribe_push(self, user_id: int, endpoint: str | None = None) -> int:
        return self._subscriptions.deactivate(user_id, endpoint)

    def list_push_subscriptions(self, user_id: int) -> Sequence[PushSubscription]:
        return self._subscriptions.list_for_user(user_id)

    # Scheduled notifications

    def schedule_notification(self, scheduled: ScheduledNotification) -> ScheduledNotification:
        if not self._identity.user_exists(scheduled.user_id):
            raise NotFoundError(f"User {scheduled.user_id} not found")
        self._validate_schedule(scheduled)
        created = self._schedules.create(
            replace(scheduled, is_active=True, execution_count=0, last_executed_at=None)
        )
        logger.info(
            "Scheduled notification %s for user %s at %s",
            created.id,
            created.user_id,
            created.scheduled_at.isoformat(),
        )
        return created

    def list_scheduled(
        self, user_id: int, *, include_inactive: bool = False
    ) -> Sequence[ScheduledNotification]:
        return self._schedules.list_for_user(user_id, active_only=not include_inactive)

    def get_scheduled(self, user_id: int, scheduled_id: int) -> ScheduledNotification:
        scheduled = self._schedules.get(scheduled_id)
        if scheduled is None or scheduled.user_id != user_id:
            raise NotFoundError("Scheduled notification not found")
        return scheduled

    def update_scheduled(
        self, user_id: int, scheduled_id: int, changes: Mapping[str, Any]
    ) -> ScheduledNotification:
        _reject_unknown(changes, _SCHEDULE_FIELDS)
        current = self.get_scheduled(user_id, scheduled_id)
        if not current.is_active:
            raise NotificationValidationError("Cancelled schedules cannot be changed")
        updated = replace(current, **changes)
        self._validate_schedule(updated)
        return self._schedules.update(updated)

    def cancel_scheduled(self, user_id: int, scheduled_id: int) -> ScheduledNotification:
        current = self.get_scheduled(user_id, scheduled_id)
        if not current.is_active:
            return current
        cancelled = self._schedules.update(replace(current, is_active=False))
        logger.info("Cancelled scheduled notification %s", scheduled_id)
        return cancelled

    def _validate_schedule(self, scheduled: ScheduledNotification) -> None:
        if scheduled.template_id is not None:
            self.get_template(scheduled.template_id)
        elif not (scheduled.title or "").strip() or not (scheduled.message or "").strip():
            raise NotificationValidationError(
                "A title and message are required when no template is given"
            )
        if not is_known_timezone(scheduled.timezone):
            raise NotificationValidationError(f"Unknown timezone '{scheduled.timezone}'")
        if scheduled.recurring is not None:
            self._validate_rule(scheduled.recurring)

    @staticmethod
    def _validate_rule(rule: RecurringRule) -> None:
        if rule.days_of_week is not None and any(
            day not in range(7) for day in rule.days_of_week
        ):
            raise NotificationValidationError("days_of_week values must be between 0 and 6")
        if rule.day_of_month is not None and not 1 <= rule.day_of_month <= 31:
            raise NotificationValidationError("day_of_month must be between 1 and 31")
        if rule.max_occurrences is not None and rule.max_occurrences < 1:
            raise NotificationValidationError("max_occurrences must be at least 1")

    # Batches

    def get_batch(self, batch_id: int) -> NotificationBatch:
        batch = self._batches.get(batch_id)
        if batch is None:
            raise NotFoundError("Batch not found")
        return batch


__all__ = ["NotificationService"]
