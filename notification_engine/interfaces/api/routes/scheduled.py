"""Endpoints for scheduled and recurring notifications."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from notification_engine.application import NotificationService
from notification_engine.infrastructure.repositories import UserRepository
from notification_engine.interfaces.api.dependencies import (
    get_current_user_id,
    get_service,
    get_session,
)
from notification_engine.interfaces.api.routes_helpers import to_http_exception
from notification_engine.interfaces.api.schemas import (
    ScheduledNotificationCreate,
    ScheduledNotificationRead,
    ScheduledNotificationUpdate,
)

router = APIRouter(prefix="/notifications/scheduled", tags=["scheduled notifications"])


@router.get("", response_model=list[ScheduledNotificationRead])
def list_scheduled(
    include_inactive: bool = Query(default=False),
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> list[ScheduledNotificationRead]:
    return [
        ScheduledNotificationRead.model_validate(item)
        for item in service.list_scheduled(user_id, include_inactive=include_inactive)
    ]


@router.post("", response_model=ScheduledNotificationRead, status_code=status.HTTP_201_CREATED)
def schedule_notification(
    payload: ScheduledNotificationCreate,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    service: NotificationService = Depends(get_service),
) -> ScheduledNotificationRead:
    recipient = payload.user_id or user_id
    if recipient != user_id:
        caller = UserRepository(session).get(user_id)
        if caller is None or not caller.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    try:
        scheduled = service.schedule_notification(payload.to_entity(recipient))
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return ScheduledNotificationRead.model_validate(scheduled)


@router.get("/{scheduled_id}", response_model=ScheduledNotificationRead)
def get_scheduled(
    scheduled_id: int,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> ScheduledNotificationRead:
    try:
        scheduled = service.get_scheduled(user_id, scheduled_id)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return ScheduledNotificationRead.model_validate(scheduled)


@router.put("/{scheduled_id}", response_model=ScheduledNotificationRead)
def update_scheduled(
    scheduled_id: int,
    payload: ScheduledNotificationUpdate,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> ScheduledNotificationRead:
    try:
        scheduled = service.update_scheduled(user_id, scheduled_id, payload.to_changes())
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return ScheduledNotificationRead.model_validate(scheduled)


@router.delete("/{scheduled_id}", response_model=ScheduledNotificationRead)
def cancel_scheduled(
    scheduled_id: int,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> ScheduledNotificationRead:
    """Deactivate the schedule; it will not fire again."""

    try:
        scheduled = service.cancel_scheduled(user_id, scheduled_id)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return ScheduledNotificationRead.model_validate(scheduled)
