"""Schemas for batch notification endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notification_engine.domain.enums import BatchStatus


class BatchCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=255)
    user_ids: list[int] = Field(..., min_length=1)
    description: str | None = None
    template_id: int | None = None
    template_variables: dict[str, Any] = Field(default_factory=dict)


class BatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    template_id: int | None = None
    status: BatchStatus
    total_count: int
    success_count: int
    failure_count: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_by: int | None = None
    created_at: datetime | None = None


__all__ = ["BatchCreate", "BatchRead"]
