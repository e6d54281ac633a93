"""Interfaces the engine expects from its collaborators."""

from __future__ import annotations

from typing import Any, Mapping, Protocol


class Broadcaster(Protocol):
    """Live fan-out of a new notification to a user's open connections."""

    async def send_to_user(self, user_id: int, notification: dict[str, Any]) -> None:
        ...


class EventPublisher(Protocol):
    """Fire-and-forget realtime events raised by synchronous use cases."""

    def publish(self, user_id: int, event: str, payload: dict[str, Any]) -> None:
        ...

    def refresh_unread_count(self, user_id: int) -> None:
        ...


class DeliveryQueue(Protocol):
    """Starts delivery of a persisted notification without waiting for it."""

    def dispatch(self, notification_id: int) -> None:
        ...


class EmailTransport(Protocol):
    def send(
        self, to: str, subject: str, html_content: str
    ) -> tuple[str | None, str | None]:
        """Return ``(external_id, error)``; ``error`` is ``None`` on success."""
        ...


class PushTransport(Protocol):
    def send(self, endpoint: str, keys: Mapping[str, str], payload: str) -> None:
        """Raise ``PushSubscriptionGoneError`` when the endpoint has expired."""
        ...


class IdentityProvider(Protocol):
    def resolve_token(self, token: str) -> int | None:
        ...

    def get_email(self, user_id: int) -> str | None:
        ...

    def user_exists(self, user_id: int) -> bool:
        ...


__all__ = [
    "Broadcaster",
    "DeliveryQueue",
    "EmailTransport",
    "EventPublisher",
    "IdentityProvider",
    "PushTransport",
]
