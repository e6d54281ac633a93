"""Periodic execution of scheduled and deferred notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable

import anyio
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from notification_engine.application.service import NotificationService
from notification_engine.domain.entities import (
    Notification,
    NotificationDraft,
    RecurringRule,
    ScheduledNotification,
)
from notification_engine.domain.enums import RecurringInterval
from notification_engine.domain.exceptions import NotFoundError, NotificationValidationError
from notification_engine.domain.ports import DeliveryQueue
from notification_engine.infrastructure.repositories import (
    NotificationRepository,
    ScheduledNotificationRepository,
)
from notification_engine.utils import ensure_utc, now_utc, resolve_timezone

logger = logging.getLogger(__name__)

JOB_ID = "process_scheduled_notifications"


def _next_weekday(local: datetime, days_of_week: list[int]) -> datetime:
    # days_of_week counts from Sunday = 0; datetime.weekday() from Monday = 0.
    current = (local.weekday() + 1) % 7
    days = sorted(set(days_of_week))
    later = [day for day in days if day > current]
    delta = later[0] - current if later else 7 - current + days[0]
    return local + timedelta(days=delta)


def next_occurrence(previous: datetime, rule: RecurringRule, tz_name: str) -> datetime:
    """Return the occurrence following ``previous`` in wall-clock time.

    The interval is added to the previous fire time in the schedule's own
    timezone, so a 09:00 reminder stays at 09:00 across DST changes. Month
    and year steps are calendar steps.
    """

    tz = resolve_timezone(tz_name)
    local = ensure_utc(previous).astimezone(tz).replace(tzinfo=None)

    if rule.interval is RecurringInterval.DAILY:
        following = local + relativedelta(days=1)
    elif rule.interval is RecurringInterval.WEEKLY:
        if rule.days_of_week:
            following = _next_weekday(local, rule.days_of_week)
        else:
            following = local + relativedelta(weeks=1)
    elif rule.interval is RecurringInterval.MONTHLY:
        if rule.day_of_month:
            # relativedelta clamps ``day`` to the last day of shorter months.
            following = local + relativedelta(months=1, day=rule.day_of_month)
        else:
            following = local + relativedelta(months=1)
    else:
        following = local + relativedelta(years=1)

    return following.replace(tzinfo=tz).astimezone(timezone.utc)


def advance_schedule(scheduled: ScheduledNotification, now: datetime) -> ScheduledNotification:
    """Record one execution and either reschedule or deactivate the item."""

    count = scheduled.execution_count + 1
    executed = replace(scheduled, execution_count=count, last_executed_at=now)
    rule = scheduled.recurring
    if rule is None:
        return replace(executed, is_active=False)
    if rule.max_occurrences is not None and count >= rule.max_occurrences:
        return replace(executed, is_active=False)
    following = next_occurrence(scheduled.scheduled_at, rule, scheduled.timezone)
    end_date = ensure_utc(rule.end_date)
    if end_date is not None and following > end_date:
        return replace(executed, is_active=False)
    return replace(executed, scheduled_at=following)


def draft_from_schedule(scheduled: ScheduledNotification) -> NotificationDraft:
    return NotificationDraft(
        title=scheduled.title,
        message=scheduled.message,
        type=scheduled.type,
        category=scheduled.category,
        priority=scheduled.priority,
        channels=list(scheduled.channels),
        metadata=dict(scheduled.metadata or {}),
        template_id=scheduled.template_id,
        template_variables=dict(scheduled.template_variables or {}),
    )


@dataclass(frozen=True)
class TickResult:
    executed: int = 0
    failed: int = 0
    released: int = 0


class NotificationScheduler:
    """Poll for due work on a fixed interval.

    Each tick executes due :class:`ScheduledNotification` rows (oldest
    first, at most ``batch_size``) and releases deferred notifications whose
    ``scheduled_at`` has passed. A failing item is logged and skipped.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        service_factory: Callable[[Session], NotificationService],
        delivery: DeliveryQueue,
        *,
        interval_seconds: int = 60,
        batch_size: int = 100,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._session_factory = session_factory
        self._service_factory = service_factory
        self._delivery = delivery
        self._interval_seconds = interval_seconds
        self._batch_size = batch_size
        self._clock = clock
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            return
        logger.info(
            "Starting notification scheduler (every %ss, %s items per tick)",
            self._interval_seconds,
            self._batch_size,
        )
        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        scheduler.add_job(
            self._tick,
            IntervalTrigger(seconds=self._interval_seconds),
            id=JOB_ID,
            name="Process scheduled notifications",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler

    def stop(self) -> None:
        if self._scheduler is None:
            return
        logger.info("Stopping notification scheduler...")
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

    async def _tick(self) -> None:
        try:
            result = await anyio.to_thread.run_sync(self.run_once)
        except Exception:
            logger.exception("Scheduler tick failed")
            return
        if result.executed or result.failed or result.released:
            logger.info(
                "Scheduler tick: %s executed, %s failed, %s deferred released",
                result.executed,
                result.failed,
                result.released,
            )

    def run_once(self, now: datetime | None = None) -> TickResult:
        now = now or self._clock()
        with self._session_factory() as session:
            due = ScheduledNotificationRepository(session).list_due(
                now, limit=self._batch_size
            )

        executed = failed = 0
        for scheduled in due:
            try:
                notification = self.execute(scheduled, now)
            except Exception:
                failed += 1
                logger.exception(
                    "Failed to execute scheduled notification %s", scheduled.id
                )
            else:
                if notification is not None:
                    executed += 1

        released = self.release_deferred(now)
        return TickResult(executed=executed, failed=failed, released=released)

    def execute(self, scheduled: ScheduledNotification, now: datetime) -> Notification | None:
        """Fire ``scheduled`` once; return ``None`` if it was cancelled meanwhile.

        Items that can never be created again (missing user or template,
        invalid content) are deactivated before the error is raised so they
        do not hold up later items.
        """

        with self._session_factory() as session:
            repository = ScheduledNotificationRepository(session)
            current = repository.get(scheduled.id)
            if current is None or not current.is_active:
                logger.info(
                    "Scheduled notification %s is no longer active; skipping", scheduled.id
                )
                return None

            service = self._service_factory(session)
            try:
                notification = service.create_notification(
                    current.user_id, draft_from_schedule(current)
                )
            except (NotFoundError, NotificationValidationError) as exc:
                repository.record_execution(current, replace(current, is_active=False))
                logger.warning(
                    "Deactivated scheduled notification %s: %s", current.id, exc
                )
                raise

            advanced = advance_schedule(current, now)
            if not repository.record_execution(current, advanced):
                logger.info(
                    "Scheduled notification %s changed while firing; keeping its new state",
                    current.id,
                )
                return notification

        if advanced.is_active:
            logger.info(
                "Scheduled notification %s fired (%s); next at %s",
                scheduled.id,
                advanced.execution_count,
                advanced.scheduled_at.isoformat(),
            )
        else:
            logger.info(
                "Scheduled notification %s fired (%s) and is now complete",
                scheduled.id,
                advanced.execution_count,
            )
        return notification

    def release_deferred(self, now: datetime) -> int:
        with self._session_factory() as session:
            claimed = NotificationRepository(session).claim_due_pending(
                now, limit=self._batch_size
            )
        for notification_id in claimed:
            self._delivery.dispatch(notification_id)
        return len(claimed)


__all__ = [
    "NotificationScheduler",
    "TickResult",
    "advance_schedule",
    "draft_from_schedule",
    "next_occurrence",
]
