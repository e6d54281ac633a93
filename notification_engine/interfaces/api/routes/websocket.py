"""Websocket endpoint that streams notifications to the authenticated user."""

from __future__ import annotations

import logging
import uuid
from typing import Any

import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from notification_engine.application import NotificationEngine
from notification_engine.domain.enums import NotificationCategory, NotificationType
from notification_engine.infrastructure.realtime import category_room, type_room
from notification_engine.utils import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

AUTH_TIMEOUT_SECONDS = 10


def _token_from_handshake(websocket: WebSocket) -> str | None:
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return websocket.query_params.get("token") or None


async def _token_from_first_message(websocket: WebSocket) -> str | None:
    """Wait briefly for ``{"type": "auth", "token": ...}`` from the client."""

    with anyio.move_on_after(AUTH_TIMEOUT_SECONDS):
        try:
            message = await websocket.receive_json()
        except ValueError:
            return None
        if isinstance(message, dict) and message.get("type") == "auth":
            data = message.get("data") if isinstance(message.get("data"), dict) else message
            token = data.get("token")
            return token if isinstance(token, str) and token else None
    return None


def _message_data(message: dict[str, Any]) -> dict[str, Any]:
    data = message.get("data")
    return data if isinstance(data, dict) else message


def _rooms_from(data: dict[str, Any]) -> tuple[list[str], list[str], list[str]]:
    categories = [NotificationCategory(value).value for value in data.get("categories") or []]
    types = [NotificationType(value).value for value in data.get("types") or []]
    rooms = [category_room(value) for value in categories] + [
        type_room(value) for value in types
    ]
    return categories, types, rooms


def _mark_read(engine: NotificationEngine, user_id: int, notification_id: int) -> int:
    with engine.session_factory() as session:
        return engine.build_service(session).mark_read(user_id, [notification_id])


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Authenticate, register the connection and answer client messages."""

    engine: NotificationEngine = websocket.app.state.engine
    await websocket.accept()

    token = _token_from_handshake(websocket)
    if token is None:
        try:
            token = await _token_from_first_message(websocket)
        except WebSocketDisconnect:
            return
    user_id = (
        await anyio.to_thread.run_sync(engine.identity.resolve_token, token) if token else None
    )
    if user_id is None:
        logger.info("Rejected websocket connection without valid credentials")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    registry = engine.registry
    connection_id = uuid.uuid4().hex
    registry.register(connection_id, user_id, websocket)
    try:
        await registry.emit_to_connection(
            connection_id,
            "connected",
            {
                "userId": user_id,
                "connectionId": connection_id,
                "timestamp": now_utc().isoformat(),
            },
        )
        await engine.gateway.send_unread_count(user_id)

        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await registry.emit_to_connection(
                    connection_id, "error", {"message": "Messages must be JSON objects"}
                )
                continue
            registry.touch(connection_id)
            if not isinstance(message, dict):
                await registry.emit_to_connection(
                    connection_id, "error", {"message": "Messages must be JSON objects"}
                )
                continue
            await _handle_message(engine, connection_id, user_id, message)
    except WebSocketDisconnect:
        pass
    finally:
        registry.unregister(connection_id)
        logger.info("User %s disconnected from %s", user_id, connection_id)


async def _handle_message(
    engine: NotificationEngine, connection_id: str, user_id: int, message: dict[str, Any]
) -> None:
    registry = engine.registry
    message_type = message.get("type")
    data = _message_data(message)

    if message_type in ("subscribe", "unsubscribe"):
        try:
            categories, types, rooms = _rooms_from(data)
        except (TypeError, ValueError) as exc:
            await registry.emit_to_connection(connection_id, "error", {"message": str(exc)})
            return
        if message_type == "subscribe":
            registry.subscribe(connection_id, rooms)
            event = "subscriptionConfirmed"
        else:
            registry.unsubscribe(connection_id, rooms)
            event = "unsubscriptionConfirmed"
        await registry.emit_to_connection(
            connection_id, event, {"categories": categories, "types": types}
        )
    elif message_type == "markRead":
        notification_id = data.get("notificationId")
        if not isinstance(notification_id, int):
            await registry.emit_to_connection(
                connection_id, "error", {"message": "notificationId must be an integer"}
            )
            return
        await anyio.to_thread.run_sync(_mark_read, engine, user_id, notification_id)
    elif message_type == "getConnectionInfo":
        info = registry.get_connection(connection_id)
        await registry.emit_to_connection(
            connection_id, "connectionInfo", info.as_dict() if info else {}
        )
    elif message_type == "ping":
        await registry.emit_to_connection(
            connection_id, "pong", {"timestamp": now_utc().isoformat()}
        )
    else:
        await registry.emit_to_connection(
            connection_id, "error", {"message": f"Unknown message type '{message_type}'"}
        )
