"""Errors raised by the notification use cases.

They subclass ``ValueError`` so callers that only care about "bad input"
can keep catching that, while the API layer can tell a missing resource
apart from a malformed request.
"""


class NotificationError(ValueError):
    """Base class for notification engine errors."""


class NotificationValidationError(NotificationError):
    """Input was rejected before anything was persisted."""


class NotFoundError(NotificationError):
    """The requested resource does not exist or belongs to another user."""


class PushDeliveryError(Exception):
    """A push provider rejected or failed to accept a message."""


class PushSubscriptionGoneError(PushDeliveryError):
    """The push provider reported the subscription as expired (HTTP 404/410)."""

    def __init__(self, endpoint: str) -> None:
        super().__init__(f"Push subscription is gone: {endpoint}")
        self.endpoint = endpoint


__all__ = [
    "NotificationError",
    "NotificationValidationError",
    "NotFoundError",
    "PushDeliveryError",
    "PushSubscriptionGoneError",
]
