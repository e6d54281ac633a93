"""Web-push transport backed by pywebpush."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pywebpush import WebPushException, webpush

from notification_engine.config import Settings
from notification_engine.domain.exceptions import (
    PushDeliveryError,
    PushSubscriptionGoneError,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 86400
_GONE_STATUS_CODES = frozenset({404, 410})


class WebPushTransport:
    """Send VAPID-signed payloads to browser push endpoints."""

    def __init__(
        self,
        vapid_private_key: str,
        vapid_subject: str,
        *,
        ttl: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._vapid_private_key = vapid_private_key
        self._vapid_claims = {"sub": vapid_subject}
        self._ttl = ttl

    def send(self, endpoint: str, keys: Mapping[str, str], payload: str) -> None:
        subscription_info = {"endpoint": endpoint, "keys": dict(keys)}
        try:
            webpush(
                subscription_info=subscription_info,
                data=payload,
                vapid_private_key=self._vapid_private_key,
                vapid_claims=dict(self._vapid_claims),
                ttl=self._ttl,
            )
        except WebPushException as exc:
            response: Any = getattr(exc, "response", None)
            status_code = getattr(response, "status_code", None)
            if status_code in _GONE_STATUS_CODES:
                raise PushSubscriptionGoneError(endpoint) from exc
            raise PushDeliveryError(str(exc)) from exc


class DisabledPushTransport:
    """Used when no VAPID key pair is configured."""

    def send(self, endpoint: str, keys: Mapping[str, str], payload: str) -> None:
        raise PushDeliveryError("push transport not configured")


def build_push_transport(settings: Settings) -> WebPushTransport | DisabledPushTransport:
    if settings.vapid_private_key:
        return WebPushTransport(settings.vapid_private_key, settings.vapid_subject)
    logger.info("VAPID keys not configured; push notifications are disabled")
    return DisabledPushTransport()


__all__ = ["DisabledPushTransport", "WebPushTransport", "build_push_transport"]
