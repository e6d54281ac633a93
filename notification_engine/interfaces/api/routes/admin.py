"""Administrative endpoints for live realtime connections."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from notification_engine.application import NotificationEngine
from notification_engine.interfaces.api.dependencies import get_engine, require_admin
from notification_engine.interfaces.api.schemas import DisconnectRequest, DisconnectResult

router = APIRouter(prefix="/notifications/admin", tags=["notification admin"])


@router.get("/connections")
def connection_stats(
    _: int = Depends(require_admin),
    engine: NotificationEngine = Depends(get_engine),
) -> dict[str, Any]:
    return engine.gateway.connection_stats()


@router.post("/connections/{user_id}/disconnect", response_model=DisconnectResult)
async def disconnect_user(
    user_id: int,
    payload: DisconnectRequest | None = None,
    _: int = Depends(require_admin),
    engine: NotificationEngine = Depends(get_engine),
) -> DisconnectResult:
    reason = payload.reason if payload else DisconnectRequest().reason
    closed = await engine.gateway.disconnect_user(user_id, reason)
    return DisconnectResult(user_id=user_id, closed=closed)
