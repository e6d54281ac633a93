"""Domain entity representing a web-push device registration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class PushSubscription:
    id: int | None
    user_id: int
    endpoint: str
    p256dh: str
    auth: str
    user_agent: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def keys(self) -> dict[str, str]:
        return {"p256dh": self.p256dh, "auth": self.auth}


__all__ = ["PushSubscription"]
