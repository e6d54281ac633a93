"""User directory backed by the ``users`` table and signed bearer tokens."""

from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.orm import Session

from notification_engine.config import Settings, get_settings
from notification_engine.infrastructure.repositories import UserRepository
from notification_engine.infrastructure.security import decode_access_token

logger = logging.getLogger(__name__)


class UserDirectory:
    """Resolve tokens to user ids and user ids to delivery addresses.

    Lookups report a missing user as ``None`` instead of raising.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        settings: Settings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    def resolve_token(self, token: str) -> int | None:
        if not token:
            return None
        try:
            payload = decode_access_token(token, settings=self._settings)
        except ValueError:
            logger.info("Rejected bearer token")
            return None
        subject = payload.get("sub")
        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            return None
        return user_id if self.user_exists(user_id) else None

    def get_email(self, user_id: int) -> str | None:
        with self._session_factory() as session:
            user = UserRepository(session).get(user_id)
        if user is None or not user.is_active:
            return None
        return user.email or None

    def user_exists(self, user_id: int) -> bool:
        with self._session_factory() as session:
            return UserRepository(session).exists(user_id)


__all__ = ["UserDirectory"]
