"""Schemas for realtime administration endpoints."""

from pydantic import BaseModel


class DisconnectRequest(BaseModel):
    reason: str = "Admin disconnect"


class DisconnectResult(BaseModel):
    user_id: int
    closed: int


__all__ = ["DisconnectRequest", "DisconnectResult"]
