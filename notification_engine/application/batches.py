"""Fan a single notification definition out to many recipients."""

from __future__ import annotations

import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Iterable

import anyio
from sqlalchemy.orm import Session

from notification_engine.application.service import NotificationService
from notification_engine.domain.entities import NotificationBatch, NotificationDraft
from notification_engine.domain.enums import (
    BatchStatus,
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from notification_engine.domain.exceptions import (
    NotFoundError,
    NotificationValidationError,
)
from notification_engine.infrastructure.repositories import NotificationBatchRepository
from notification_engine.utils import LoopBridge, now_utc

logger = logging.getLogger(__name__)


class BatchProcessor:
    """Create a batch row, then create one notification per recipient.

    Recipients are processed in worker threads, ``concurrency`` at a time,
    each with its own session. A failing recipient is counted, never fatal.
    The batch only ends ``failed`` when it cannot be set up at all.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        service_factory: Callable[[Session], NotificationService],
        bridge: LoopBridge,
        *,
        concurrency: int = 4,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._session_factory = session_factory
        self._service_factory = service_factory
        self._bridge = bridge
        self._concurrency = max(1, concurrency)
        self._clock = clock

    def create_batch(
        self,
        *,
        name: str,
        user_ids: Iterable[int],
        description: str | None = None,
        template_id: int | None = None,
        template_variables: dict[str, Any] | None = None,
        created_by: int | None = None,
    ) -> NotificationBatch:
        recipients = list(user_ids)
        if not (name or "").strip():
            raise NotificationValidationError("Batch name is required")
        if not recipients:
            raise NotificationValidationError("At least one recipient is required")

        with self._session_factory() as session:
            batch = NotificationBatchRepository(session).create(
                NotificationBatch(
                    id=None,
                    name=name.strip(),
                    user_ids=recipients,
                    description=description,
                    template_id=template_id,
                    template_variables=dict(template_variables or {}),
                    status=BatchStatus.PENDING,
                    total_count=len(recipients),
                    created_by=created_by,
                )
            )
        logger.info("Created batch %s with %s recipients", batch.id, batch.total_count)
        self.start(batch.id)
        return batch

    def start(self, batch_id: int) -> None:
        if not self._bridge.submit(self.run(batch_id)):
            logger.warning("Batch %s was not started: no event loop available", batch_id)

    async def run(self, batch_id: int) -> NotificationBatch | None:
        return await anyio.to_thread.run_sync(self.process, batch_id)

    def process(self, batch_id: int) -> NotificationBatch | None:
        with self._session_factory() as session:
            repository = NotificationBatchRepository(session)
            batch = repository.get(batch_id)
            if batch is None:
                logger.warning("Batch %s not found", batch_id)
                return None
            if batch.status is not BatchStatus.PENDING:
                logger.info("Batch %s is already %s", batch_id, batch.status.value)
                return batch

            batch = repository.update(
                replace(batch, status=BatchStatus.PROCESSING, started_at=self._clock())
            )
            try:
                draft = self._build_draft(session, batch)
            except Exception:
                logger.exception("Batch %s could not be set up", batch_id)
                return repository.update(
                    replace(batch, status=BatchStatus.FAILED, completed_at=self._clock())
                )

        deliver = functools.partial(self._create_for_recipient, draft, batch.id)
        with ThreadPoolExecutor(
            max_workers=self._concurrency, thread_name_prefix=f"batch-{batch.id}"
        ) as pool:
            outcomes = list(pool.map(deliver, batch.user_ids))

        success_count = sum(1 for ok in outcomes if ok)
        failure_count = len(outcomes) - success_count
        with self._session_factory() as session:
            repository = NotificationBatchRepository(session)
            completed = repository.update(
                replace(
                    repository.get(batch.id),
                    status=BatchStatus.COMPLETED,
                    success_count=success_count,
                    failure_count=failure_count,
                    completed_at=self._clock(),
                )
            )
        logger.info(
            "Batch %s completed: %s succeeded, %s failed",
            batch.id,
            success_count,
            failure_count,
        )
        return completed

    def _build_draft(self, session: Session, batch: NotificationBatch) -> NotificationDraft:
        if batch.template_id is not None:
            template = self._service_factory(session).get_template(batch.template_id)
            return NotificationDraft(
                template_id=template.id,
                template_variables=dict(batch.template_variables or {}),
            )
        return NotificationDraft(
            title=batch.name,
            message=batch.description or batch.name,
            type=NotificationType.INFO,
            category=NotificationCategory.SYSTEM,
            priority=NotificationPriority.MEDIUM,
            channels=[NotificationChannel.IN_APP],
        )

    def _create_for_recipient(
        self, draft: NotificationDraft, batch_id: int, user_id: int
    ) -> bool:
        try:
            with self._session_factory() as session:
                self._service_factory(session).create_notification(
                    user_id, replace(draft, batch_id=batch_id)
                )
        except (NotFoundError, NotificationValidationError) as exc:
            logger.warning("Batch %s skipped user %s: %s", batch_id, user_id, exc)
            return False
        except Exception:
            logger.exception("Batch %s failed for user %s", batch_id, user_id)
            return False
        return True


__all__ = ["BatchProcessor"]
