"""Endpoints for reading and managing a user's notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from notification_engine.application import NotificationService
from notification_engine.domain.entities import NotificationFilter
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from notification_engine.infrastructure.repositories import UserRepository
from notification_engine.interfaces.api.dependencies import (
    get_current_user_id,
    get_service,
    get_session,
)
from notification_engine.interfaces.api.routes_helpers import to_http_exception
from notification_engine.interfaces.api.schemas import (
    BulkOperationRequest,
    DeliveryAttemptRead,
    NotificationCreate,
    NotificationIdsRequest,
    NotificationPage,
    NotificationRead,
    NotificationStatsRead,
    OperationResult,
    TestNotificationRequest,
    UnreadCountRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationPage)
def list_notifications(
    type: NotificationType | None = None,
    category: NotificationCategory | None = None,
    priority: NotificationPriority | None = None,
    status_filter: NotificationStatus | None = Query(default=None, alias="status"),
    is_read: bool | None = None,
    is_archived: bool | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    sort_by: Literal[
        "created_at",
        "updated_at",
        "scheduled_at",
        "read_at",
        "title",
        "type",
        "category",
        "status",
        "priority",
    ] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> NotificationPage:
    """Return a filtered page of the authenticated user's notifications."""

    filters = NotificationFilter(
        type=type,
        category=category,
        priority=priority,
        status=status_filter,
        is_read=is_read,
        is_archived=is_archived,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items, total = service.list_notifications(user_id, filters)
    return NotificationPage(
        items=[NotificationRead.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def create_notification(
    payload: NotificationCreate,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    service: NotificationService = Depends(get_service),
) -> NotificationRead:
    """Create a notification for the caller, or for any user when called by an admin."""

    recipient = payload.user_id or user_id
    if recipient != user_id:
        caller = UserRepository(session).get(user_id)
        if caller is None or not caller.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    try:
        notification = service.create_notification(recipient, payload.to_draft())
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return NotificationRead.model_validate(notification)


@router.get("/unread-count", response_model=UnreadCountRead)
def unread_count(
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> UnreadCountRead:
    return UnreadCountRead(**service.unread_count(user_id))


@router.get("/stats", response_model=NotificationStatsRead)
def notification_stats(
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> NotificationStatsRead:
    return NotificationStatsRead.model_validate(service.stats(user_id))


@router.post("/read", response_model=OperationResult)
def mark_notifications_read(
    payload: NotificationIdsRequest,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> OperationResult:
    return OperationResult(affected=service.mark_read(user_id, payload.unique_ids()))


@router.post("/read-all", response_model=OperationResult)
def mark_all_notifications_read(
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> OperationResult:
    return OperationResult(affected=service.mark_all_read(user_id))


@router.post("/archive", response_model=OperationResult)
def archive_notifications(
    payload: NotificationIdsRequest,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> OperationResult:
    return OperationResult(affected=service.archive(user_id, payload.unique_ids()))


@router.post("/bulk", response_model=OperationResult)
def bulk_operation(
    payload: BulkOperationRequest,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> OperationResult:
    try:
        affected = service.bulk_operation(
            user_id, payload.action, payload.unique_ids(), payload.data
        )
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return OperationResult(affected=affected)


@router.delete("/", response_model=OperationResult)
def clear_notifications(
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> OperationResult:
    return OperationResult(affected=service.clear_all(user_id))


@router.post("/test", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def send_test_notification(
    payload: TestNotificationRequest | None = None,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> NotificationRead:
    payload = payload or TestNotificationRequest()
    try:
        notification = service.send_test(
            user_id, notification_type=payload.type, channel=payload.channel
        )
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return NotificationRead.model_validate(notification)


@router.get("/{notification_id}", response_model=NotificationRead)
def get_notification(
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> NotificationRead:
    try:
        notification = service.get_notification(user_id, notification_id)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return NotificationRead.model_validate(notification)


@router.get("/{notification_id}/deliveries", response_model=list[DeliveryAttemptRead])
def list_deliveries(
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> list[DeliveryAttemptRead]:
    try:
        attempts = service.list_deliveries(user_id, notification_id)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return [DeliveryAttemptRead.model_validate(attempt) for attempt in attempts]


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> Response:
    try:
        service.delete_notification(user_id, notification_id)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
