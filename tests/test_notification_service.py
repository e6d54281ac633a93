"""Tests for the notification service use cases."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from notification_engine.domain.entities import (
    NotificationDraft,
    NotificationTemplate,
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
    RecurringInterval,
)
from notification_engine.domain.exceptions import NotFoundError, NotificationValidationError
from notification_engine.infrastructure.repositories import NotificationRepository

from tests.conftest import FROZEN_NOW


def _draft(**values) -> NotificationDraft:
    values.setdefault("title", "Quiz tomorrow")
    values.setdefault("message", "Chapter 4 quiz at 9am")
    values.setdefault("category", NotificationCategory.STUDY)
    return NotificationDraft(**values)


def _template(service, **values) -> NotificationTemplate:
    base = dict(
        id=None,
        name="task_due",
        title="Task Due: {{taskName}}",
        message="{{taskName}} is due soon",
        type=NotificationType.REMINDER,
        category=NotificationCategory.TASK,
        priority=NotificationPriority.HIGH,
        channels=[NotificationChannel.IN_APP],
    )
    base.update(values)
    return service.create_template(NotificationTemplate(**base))


def test_create_notification_persists_resolved_channels_and_dispatches(
    service, create_user, delivery_queue
) -> None:
    user = create_user()

    notification = service.create_notification(
        user.id,
        _draft(
            channels=[
                NotificationChannel.IN_APP,
                NotificationChannel.WEBSOCKET,
                NotificationChannel.EMAIL,
                NotificationChannel.SMS,
            ]
        ),
    )

    assert notification.id is not None
    assert notification.status is NotificationStatus.PENDING
    assert notification.channels == [
        NotificationChannel.IN_APP,
        NotificationChannel.WEBSOCKET,
        NotificationChannel.EMAIL,
    ]
    assert delivery_queue.dispatched == [notification.id]


def test_create_notification_for_unknown_user(service, delivery_queue) -> None:
    with pytest.raises(NotFoundError):
        service.create_notification(999, _draft())

    assert delivery_queue.dispatched == []


def test_create_notification_rejects_past_expiration(service, create_user) -> None:
    user = create_user()

    with pytest.raises(NotificationValidationError):
        service.create_notification(
            user.id, _draft(expires_at=FROZEN_NOW - timedelta(minutes=1))
        )


def test_create_notification_requires_content_without_template(service, create_user) -> None:
    user = create_user()

    with pytest.raises(NotificationValidationError):
        service.create_notification(user.id, NotificationDraft(title="Only a title"))


def test_create_notification_from_template(service, create_user) -> None:
    user = create_user()
    template = _template(service)

    notification = service.create_notification(
        user.id,
        NotificationDraft(template_id=template.id, template_variables={"taskName": "Essay"}),
    )

    assert notification.title == "Task Due: Essay"
    assert notification.message == "Essay is due soon"
    assert notification.category is NotificationCategory.TASK
    assert notification.priority is NotificationPriority.HIGH
    assert notification.template_id == template.id
    assert notification.template_variables == {"taskName": "Essay"}


def test_create_notification_with_unknown_template(service, create_user) -> None:
    user = create_user()

    with pytest.raises(NotFoundError):
        service.create_notification(user.id, NotificationDraft(template_id=12345))


def test_future_scheduled_notification_is_not_dispatched(
    service, create_user, delivery_queue
) -> None:
    user = create_user()
    later = FROZEN_NOW + timedelta(hours=2)

    notification = service.create_notification(user.id, _draft(scheduled_at=later))

    assert notification.scheduled_at == later
    assert notification.status is NotificationStatus.PENDING
    assert delivery_queue.dispatched == []


def test_quiet_hours_defer_non_urgent_notifications(
    service, create_user, delivery_queue
) -> None:
    user = create_user()
    service.update_preferences(
        user.id,
        {
            "quiet_hours_enabled": True,
            "quiet_hours_start": "00:00",
            "quiet_hours_end": "23:59",
            "timezone": "UTC",
        },
    )

    notification = service.create_notification(user.id, _draft())

    assert notification.scheduled_at == datetime(2026, 3, 10, 23, 59, tzinfo=timezone.utc)
    assert notification.status is NotificationStatus.PENDING
    assert delivery_queue.dispatched == []


def test_quiet_hours_urgent_notifications_deliver_now_with_email(
    service, create_user, delivery_queue
) -> None:
    user = create_user()
    service.update_preferences(
        user.id,
        {"quiet_hours_enabled": True, "quiet_hours_start": "00:00", "quiet_hours_end": "23:59"},
    )

    notification = service.create_notification(
        user.id,
        _draft(
            category=NotificationCategory.SESSION,
            priority=NotificationPriority.URGENT,
            channels=[NotificationChannel.IN_APP],
        ),
    )

    assert NotificationChannel.EMAIL in notification.channels
    assert notification.scheduled_at is None
    assert delivery_queue.dispatched == [notification.id]


def test_reading_deferred_notifications_keeps_them_pending(
    service, session, create_user, delivery_queue
) -> None:
    user = create_user()
    deferred = service.create_notification(
        user.id, _draft(scheduled_at=FROZEN_NOW + timedelta(hours=1))
    )
    sent = service.create_notification(user.id, _draft())
    repository = NotificationRepository(session)
    repository.set_status(sent.id, NotificationStatus.SENT)

    assert service.mark_all_read(user.id) == 2
    assert service.bulk_operation(user.id, BulkAction.MARK_AS_UNREAD, [deferred.id]) == 1
    assert service.mark_read(user.id, [deferred.id]) == 1

    session.expire_all()
    assert repository.get(deferred.id).status is NotificationStatus.PENDING
    assert repository.get(deferred.id).is_read
    assert repository.get(sent.id).status is NotificationStatus.READ
    assert repository.claim_due_pending(FROZEN_NOW + timedelta(hours=2), limit=10) == [
        deferred.id
    ]


def test_mark_all_read_is_idempotent(service, create_user, publisher) -> None:
    user = create_user()
    for _ in range(3):
        service.create_notification(user.id, _draft())

    assert service.mark_all_read(user.id) == 3
    assert service.mark_all_read(user.id) == 0
    assert service.unread_count(user.id) == {"count": 0, "hasUnread": False}
    assert publisher.names().count("allNotificationsRead") == 2
    assert publisher.refreshed == [user.id, user.id]


def test_mark_read_only_touches_own_notifications(service, create_user) -> None:
    owner = create_user()
    other = create_user(name="Grace", email="grace@example.com")
    mine = service.create_notification(owner.id, _draft())

    assert service.mark_read(other.id, [mine.id]) == 0
    assert service.mark_read(owner.id, [mine.id]) == 1
    assert service.get_notification(owner.id, mine.id).is_read


def test_get_notification_of_another_user(service, create_user) -> None:
    owner = create_user()
    other = create_user(name="Grace", email="grace@example.com")
    notification = service.create_notification(owner.id, _draft())

    with pytest.raises(NotFoundError):
        service.get_notification(other.id, notification.id)
    with pytest.raises(NotFoundError):
        service.delete_notification(other.id, notification.id)


def test_archived_notifications_leave_unread_count(service, create_user, publisher) -> None:
    user = create_user()
    first = service.create_notification(user.id, _draft())
    service.create_notification(user.id, _draft())

    service.archive(user.id, [first.id])

    assert service.unread_count(user.id)["count"] == 1
    assert "notificationsArchived" in publisher.names()


def test_bulk_update_priority(service, create_user, publisher) -> None:
    user = create_user()
    notification = service.create_notification(user.id, _draft())

    affected = service.bulk_operation(
        user.id, BulkAction.UPDATE_PRIORITY, [notification.id], {"priority": "urgent"}
    )

    assert affected == 1
    assert service.get_notification(user.id, notification.id).priority is NotificationPriority.URGENT
    user_id, event, payload = publisher.events[-1]
    assert event == "bulkOperationCompleted"
    assert payload == {
        "action": "updatePriority",
        "notificationIds": [notification.id],
        "userId": user.id,
    }


def test_bulk_update_priority_requires_priority(service, create_user) -> None:
    user = create_user()
    notification = service.create_notification(user.id, _draft())

    with pytest.raises(NotificationValidationError):
        service.bulk_operation(user.id, BulkAction.UPDATE_PRIORITY, [notification.id], {})


def test_bulk_mark_unread_and_delete(service, create_user) -> None:
    user = create_user()
    first = service.create_notification(user.id, _draft())
    second = service.create_notification(user.id, _draft())
    service.mark_all_read(user.id)

    assert service.bulk_operation(user.id, BulkAction.MARK_AS_UNREAD, [first.id]) == 1
    assert service.unread_count(user.id)["count"] == 1

    assert service.bulk_operation(user.id, BulkAction.DELETE, [first.id, second.id]) == 2
    items, total = service.list_notifications(user.id)
    assert total == 0 and list(items) == []


def test_clear_all_removes_everything(service, create_user, publisher) -> None:
    user = create_user()
    service.create_notification(user.id, _draft())
    service.create_notification(user.id, _draft())

    assert service.clear_all(user.id) == 2
    assert "notificationsCleared" in publisher.names()


def test_stats_breakdowns(service, create_user) -> None:
    user = create_user()
    service.create_notification(user.id, _draft(type=NotificationType.SUCCESS))
    service.create_notification(user.id, _draft(type=NotificationType.SUCCESS))
    service.create_notification(user.id, _draft(type=NotificationType.WARNING))

    stats = service.stats(user.id)

    assert stats.total == 3
    assert stats.unread == 3
    assert stats.by_type == {"success": 2, "warning": 1}
    assert stats.by_category == {"study": 3}
    assert stats.delivery_rate == 0.0


def test_preferences_are_created_with_defaults(service, create_user) -> None:
    user = create_user()

    preferences = service.get_preferences(user.id)

    assert preferences.email_enabled and preferences.push_enabled and preferences.in_app_enabled
    assert not preferences.sms_enabled
    assert not preferences.quiet_hours_enabled
    assert (preferences.quiet_hours_start, preferences.quiet_hours_end) == ("22:00", "08:00")
    assert NotificationChannel.PUSH in preferences.categories[NotificationCategory.REMINDER].channels


@pytest.mark.parametrize(
    "changes",
    [
        {"quiet_hours_start": "25:00"},
        {"quiet_hours_end": "8am"},
        {"timezone": "Mars/Olympus_Mons"},
        {"favourite_colour": "blue"},
    ],
)
def test_update_preferences_rejects_invalid_values(service, create_user, changes) -> None:
    user = create_user()

    with pytest.raises(NotificationValidationError):
        service.update_preferences(user.id, changes)


def test_template_names_are_unique_and_variables_extracted(service) -> None:
    template = _template(service)

    assert template.variables == ["taskName"]
    with pytest.raises(NotificationValidationError):
        _template(service, name="TASK_DUE")


def test_deleted_template_is_hidden(service) -> None:
    template = _template(service)

    service.delete_template(template.id)

    with pytest.raises(NotFoundError):
        service.get_template(template.id)
    assert list(service.list_templates()) == []


def test_push_subscribe_reactivates_existing_endpoint(service, create_user) -> None:
    user = create_user()
    first = service.subscribe_push(
        user.id, endpoint="https://push.example/a", p256dh="key", auth="secret"
    )
    service.unsubscribe_push(user.id)
    assert list(service.list_push_subscriptions(user.id)) == []

    again = service.subscribe_push(
        user.id, endpoint="https://push.example/a", p256dh="key2", auth="secret2"
    )

    assert again.id == first.id
    assert again.is_active
    assert again.p256dh == "key2"


def test_schedule_validates_recurring_rule(service, create_user) -> None:
    user = create_user()
    scheduled = ScheduledNotification(
        id=None,
        user_id=user.id,
        scheduled_at=FROZEN_NOW + timedelta(days=1),
        title="Weekly review",
        message="Plan your week",
        recurring=RecurringRule(interval=RecurringInterval.WEEKLY, days_of_week=[7]),
    )

    with pytest.raises(NotificationValidationError):
        service.schedule_notification(scheduled)


def test_cancel_scheduled_notification(service, create_user) -> None:
    user = create_user()
    scheduled = service.schedule_notification(
        ScheduledNotification(
            id=None,
            user_id=user.id,
            scheduled_at=FROZEN_NOW + timedelta(days=1),
            title="Weekly review",
            message="Plan your week",
        )
    )

    cancelled = service.cancel_scheduled(user.id, scheduled.id)

    assert not cancelled.is_active
    assert list(service.list_scheduled(user.id)) == []
    with pytest.raises(NotificationValidationError):
        service.update_scheduled(user.id, scheduled.id, {"title": "Changed"})
