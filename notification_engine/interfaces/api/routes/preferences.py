"""Endpoints for per-user notification preferences."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from notification_engine.application import NotificationService
from notification_engine.interfaces.api.dependencies import get_current_user_id, get_service
from notification_engine.interfaces.api.routes_helpers import to_http_exception
from notification_engine.interfaces.api.schemas import PreferencesRead, PreferencesUpdate

router = APIRouter(prefix="/notifications/preferences", tags=["notification preferences"])


@router.get("", response_model=PreferencesRead)
def get_preferences(
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> PreferencesRead:
    """Return the caller's preferences, creating the defaults on first access."""

    return PreferencesRead.model_validate(service.get_preferences(user_id))


@router.put("", response_model=PreferencesRead)
def update_preferences(
    payload: PreferencesUpdate,
    user_id: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> PreferencesRead:
    try:
        preferences = service.update_preferences(user_id, payload.to_changes())
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return PreferencesRead.model_validate(preferences)
