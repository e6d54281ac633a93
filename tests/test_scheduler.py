"""Tests for recurrence arithmetic and scheduler ticks."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from notification_engine.application import NotificationScheduler, NotificationService
from notification_engine.application.scheduler import (
    TickResult,
    advance_schedule,
    next_occurrence,
)
from notification_engine.domain.entities import (
    NotificationDraft,
    NotificationFilter,
    NotificationTemplate,
    RecurringRule,
    ScheduledNotification,
)
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    RecurringInterval,
)
from notification_engine.infrastructure.repositories import (
    NotificationRepository,
    ScheduledNotificationRepository,
)

from tests.conftest import FROZEN_NOW


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _scheduled(**values) -> ScheduledNotification:
    values.setdefault("id", 1)
    values.setdefault("user_id", 1)
    values.setdefault("scheduled_at", _utc(2026, 3, 2, 9, 0))
    values.setdefault("title", "Weekly review")
    values.setdefault("message", "Plan the week ahead")
    return ScheduledNotification(**values)


@pytest.fixture
def build_scheduler(session_factory, delivery_queue, publisher, identity):
    def service_factory(session) -> NotificationService:
        return NotificationService(
            session,
            delivery=delivery_queue,
            events=publisher,
            identity=identity,
            clock=lambda: FROZEN_NOW,
        )

    def _build(batch_size: int = 10) -> NotificationScheduler:
        return NotificationScheduler(
            session_factory,
            service_factory,
            delivery_queue,
            interval_seconds=60,
            batch_size=batch_size,
        )

    return _build


@pytest.fixture
def scheduler(build_scheduler) -> NotificationScheduler:
    return build_scheduler()


def test_daily_recurrence_keeps_local_wall_clock_across_dst() -> None:
    rule = RecurringRule(interval=RecurringInterval.DAILY)

    # 09:00 CET on the day before the 2026 switch to summer time.
    following = next_occurrence(_utc(2026, 3, 28, 8, 0), rule, "Europe/Berlin")

    assert following == _utc(2026, 3, 29, 7, 0)


def test_weekly_recurrence_on_listed_days() -> None:
    rule = RecurringRule(interval=RecurringInterval.WEEKLY, days_of_week=[1, 3])

    monday = _utc(2026, 3, 2, 9, 0)
    wednesday = next_occurrence(monday, rule, "UTC")
    next_monday = next_occurrence(wednesday, rule, "UTC")

    assert wednesday == _utc(2026, 3, 4, 9, 0)
    assert next_monday == _utc(2026, 3, 9, 9, 0)


def test_weekly_recurrence_without_days_adds_a_week() -> None:
    rule = RecurringRule(interval=RecurringInterval.WEEKLY)

    assert next_occurrence(_utc(2026, 3, 2, 9, 0), rule, "UTC") == _utc(2026, 3, 9, 9, 0)


def test_monthly_day_of_month_is_clamped_to_short_months() -> None:
    rule = RecurringRule(interval=RecurringInterval.MONTHLY, day_of_month=31)

    february = next_occurrence(_utc(2026, 1, 31, 9, 0), rule, "UTC")
    march = next_occurrence(february, rule, "UTC")

    assert february == _utc(2026, 2, 28, 9, 0)
    assert march == _utc(2026, 3, 31, 9, 0)


def test_yearly_recurrence_is_a_calendar_year() -> None:
    rule = RecurringRule(interval=RecurringInterval.YEARLY)

    assert next_occurrence(_utc(2028, 2, 29, 9, 0), rule, "UTC") == _utc(2029, 2, 28, 9, 0)


def test_one_off_schedule_deactivates_after_running() -> None:
    advanced = advance_schedule(_scheduled(), _utc(2026, 3, 2, 9, 0))

    assert not advanced.is_active
    assert advanced.execution_count == 1
    assert advanced.last_executed_at == _utc(2026, 3, 2, 9, 0)


def test_recurring_schedule_stops_after_end_date() -> None:
    rule = RecurringRule(
        interval=RecurringInterval.DAILY, end_date=_utc(2026, 3, 2, 23, 0)
    )

    advanced = advance_schedule(_scheduled(recurring=rule), _utc(2026, 3, 2, 9, 0))

    assert not advanced.is_active


def test_weekly_schedule_with_three_occurrences_fires_three_times(
    scheduler, service, create_user, session_factory, delivery_queue
) -> None:
    user = create_user()
    scheduled = service.schedule_notification(
        _scheduled(
            id=None,
            user_id=user.id,
            recurring=RecurringRule(interval=RecurringInterval.WEEKLY, max_occurrences=3),
        )
    )

    fired_at = []
    now = _utc(2026, 3, 2, 9, 0)
    for _ in range(5):
        result = scheduler.run_once(now)
        if result.executed:
            fired_at.append(now)
        now += timedelta(days=7)

    assert fired_at == [
        _utc(2026, 3, 2, 9, 0),
        _utc(2026, 3, 9, 9, 0),
        _utc(2026, 3, 16, 9, 0),
    ]
    with session_factory() as session:
        stored = ScheduledNotificationRepository(session).get(scheduled.id)
        _, total = NotificationRepository(session).list_for_user(
            user.id, NotificationFilter(limit=100)
        )
    assert not stored.is_active
    assert stored.execution_count == 3
    assert total == 3
    assert len(delivery_queue.dispatched) == 3


def _streak_template(service) -> NotificationTemplate:
    return service.create_template(
        NotificationTemplate(
            id=None,
            name="streak",
            title="Keep your {{days}}-day streak",
            message="Study today to keep it going",
            type=NotificationType.ACHIEVEMENT,
            category=NotificationCategory.REMINDER,
            priority=NotificationPriority.MEDIUM,
        )
    )


def test_item_that_can_no_longer_be_created_is_deactivated(
    scheduler, service, create_user, session_factory
) -> None:
    user = create_user()
    template = _streak_template(service)
    scheduled = service.schedule_notification(
        _scheduled(id=None, user_id=user.id, template_id=template.id, title=None, message=None)
    )
    service.delete_template(template.id)

    result = scheduler.run_once(_utc(2026, 3, 2, 9, 0))

    assert (result.executed, result.failed) == (0, 1)
    with session_factory() as session:
        stored = ScheduledNotificationRepository(session).get(scheduled.id)
    assert not stored.is_active
    assert stored.execution_count == 0
    assert scheduler.run_once(_utc(2026, 3, 2, 9, 5)) == TickResult()


def test_broken_items_do_not_hold_up_later_ones(
    build_scheduler, service, create_user, session_factory
) -> None:
    scheduler = build_scheduler(batch_size=2)
    user = create_user()
    template = _streak_template(service)
    for hour in (1, 2):
        service.schedule_notification(
            _scheduled(
                id=None,
                user_id=user.id,
                scheduled_at=_utc(2026, 3, 2, hour, 0),
                template_id=template.id,
                title=None,
                message=None,
            )
        )
    service.delete_template(template.id)
    healthy = service.schedule_notification(
        _scheduled(id=None, user_id=user.id, scheduled_at=_utc(2026, 3, 2, 5, 0))
    )

    ticks = [scheduler.run_once(_utc(2026, 3, 2, 9, minute)) for minute in range(3)]

    assert [(tick.executed, tick.failed) for tick in ticks] == [(0, 2), (1, 0), (0, 0)]
    with session_factory() as session:
        stored = ScheduledNotificationRepository(session).get(healthy.id)
    assert stored.execution_count == 1
    assert not stored.is_active


def test_cancelled_item_is_not_revived_by_a_stale_tick(
    scheduler, service, create_user, session_factory, delivery_queue
) -> None:
    user = create_user()
    scheduled = service.schedule_notification(
        _scheduled(
            id=None,
            user_id=user.id,
            recurring=RecurringRule(interval=RecurringInterval.DAILY),
        )
    )
    service.cancel_scheduled(user.id, scheduled.id)

    assert scheduler.execute(scheduled, _utc(2026, 3, 2, 9, 0)) is None

    with session_factory() as session:
        stored = ScheduledNotificationRepository(session).get(scheduled.id)
    assert not stored.is_active
    assert stored.execution_count == 0
    assert delivery_queue.dispatched == []


def test_progress_is_not_written_over_a_concurrent_cancel(
    service, create_user, session_factory
) -> None:
    user = create_user()
    scheduled = service.schedule_notification(
        _scheduled(
            id=None,
            user_id=user.id,
            recurring=RecurringRule(interval=RecurringInterval.DAILY),
        )
    )
    service.cancel_scheduled(user.id, scheduled.id)

    with session_factory() as session:
        recorded = ScheduledNotificationRepository(session).record_execution(
            scheduled, advance_schedule(scheduled, _utc(2026, 3, 2, 9, 0))
        )
        stored = ScheduledNotificationRepository(session).get(scheduled.id)

    assert not recorded
    assert not stored.is_active
    assert stored.scheduled_at == _utc(2026, 3, 2, 9, 0)


def test_tick_releases_deferred_notifications(
    scheduler, service, create_user, session_factory, delivery_queue
) -> None:
    user = create_user()
    notification = service.create_notification(
        user.id,
        NotificationDraft(
            title="Later",
            message="Deferred delivery",
            scheduled_at=FROZEN_NOW + timedelta(hours=1),
        ),
    )
    assert delivery_queue.dispatched == []

    assert scheduler.run_once(FROZEN_NOW + timedelta(minutes=30)).released == 0
    result = scheduler.run_once(FROZEN_NOW + timedelta(hours=2))

    assert result.released == 1
    assert delivery_queue.dispatched == [notification.id]
    with session_factory() as session:
        assert NotificationRepository(session).get(notification.id).status is NotificationStatus.SENT
    assert scheduler.run_once(FROZEN_NOW + timedelta(hours=3)).released == 0


@pytest.mark.anyio
async def test_start_and_stop(scheduler) -> None:
    scheduler.start()
    try:
        assert scheduler.running
    finally:
        scheduler.stop()

    assert not scheduler.running

