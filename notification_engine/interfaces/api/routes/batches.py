"""Endpoints for sending one notification to many users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from notification_engine.application import NotificationEngine, NotificationService
from notification_engine.interfaces.api.dependencies import (
    get_engine,
    get_service,
    require_admin,
)
from notification_engine.interfaces.api.routes_helpers import to_http_exception
from notification_engine.interfaces.api.schemas import BatchCreate, BatchRead

router = APIRouter(prefix="/notifications/batches", tags=["notification batches"])


@router.post("", response_model=BatchRead, status_code=status.HTTP_202_ACCEPTED)
def create_batch(
    payload: BatchCreate,
    admin_id: int = Depends(require_admin),
    engine: NotificationEngine = Depends(get_engine),
) -> BatchRead:
    """Persist the batch and start processing it in the background."""

    try:
        batch = engine.batches.create_batch(
            name=payload.name,
            user_ids=payload.user_ids,
            description=payload.description,
            template_id=payload.template_id,
            template_variables=payload.template_variables,
            created_by=admin_id,
        )
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return BatchRead.model_validate(batch)


@router.get("/{batch_id}", response_model=BatchRead)
def get_batch(
    batch_id: int,
    _: int = Depends(require_admin),
    service: NotificationService = Depends(get_service),
) -> BatchRead:
    try:
        batch = service.get_batch(batch_id)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return BatchRead.model_validate(batch)
