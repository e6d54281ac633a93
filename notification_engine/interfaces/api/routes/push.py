"""Endpoints for Web Push subscriptions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from notification_engine.application import NotificationEngine, NotificationService
from notification_engine.interfaces.api.dependencies import (
    get_current_user_id,
    get_engine,
    get_service,
)
from notification_engine.interfaces.api.routes_helpers import to_http_exception
from notification_engine.interfaces.api.schemas import (
    OperationResult,
    PushSubscriptionCreate,
    PushSubscriptionRead,
    PushUnsubscribeRequest,
    VapidPublicKeyRead,
)

router = APIRouter(prefix="/notifications/subscription", tags=["push subscriptions"])


@router.get("", response_model=list[PushSubscriptionRead])
def list_subscriptions(
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> list[PushSubscriptionRead]:
    return [
        PushSubscriptionRead.model_validate(subscription)
        for subscription in service.list_push_subscriptions(user_id)
    ]


@router.post("", response_model=PushSubscriptionRead, status_code=status.HTTP_201_CREATED)
def subscribe(
    payload: PushSubscriptionCreate,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> PushSubscriptionRead:
    """Store the subscription, reactivating it if the endpoint is already known."""

    try:
        subscription = service.subscribe_push(
            user_id,
            endpoint=payload.endpoint,
            p256dh=payload.keys.p256dh,
            auth=payload.keys.auth,
            user_agent=payload.user_agent,
        )
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return PushSubscriptionRead.model_validate(subscription)


@router.delete("", response_model=OperationResult)
def unsubscribe(
    payload: PushUnsubscribeRequest | None = None,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> OperationResult:
    """Deactivate one endpoint, or every subscription when none is given."""

    endpoint = payload.endpoint if payload else None
    return OperationResult(affected=service.unsubscribe_push(user_id, endpoint))


@router.get(
    "/vapid-public-key",
    response_model=VapidPublicKeyRead,
    dependencies=[Depends(get_current_user_id)],
)
def vapid_public_key(
    engine: NotificationEngine = Depends(get_engine),
) -> VapidPublicKeyRead:
    """Return the VAPID public key; 404 when push is not configured."""

    public_key = engine.settings.vapid_public_key
    if not public_key:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Push notifications are not configured"
        )
    return VapidPublicKeyRead(public_key=public_key)
