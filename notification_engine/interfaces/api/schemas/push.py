"""Schemas for Web Push subscription endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscriptionCreate(BaseModel):
    """The browser's ``PushSubscription.toJSON()`` plus an optional user agent."""

    endpoint: str = Field(..., min_length=1)
    keys: PushKeys
    user_agent: str | None = None


class PushUnsubscribeRequest(BaseModel):
    endpoint: str | None = None


class PushSubscriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    endpoint: str
    user_agent: str | None = None
    is_active: bool
    created_at: datetime | None = None


class VapidPublicKeyRead(BaseModel):
    """Application server key browsers need to create a subscription."""

    public_key: str


__all__ = [
    "PushKeys",
    "PushSubscriptionCreate",
    "PushSubscriptionRead",
    "PushUnsubscribeRequest",
    "VapidPublicKeyRead",
]
