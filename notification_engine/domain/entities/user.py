"""Domain entity representing a notification recipient."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """Identity attributes the engine needs to address a recipient."""

    id: int | None
    name: str
    email: str | None
    is_active: bool = True
    is_admin: bool = False
    created_at: datetime | None = None


__all__ = ["User"]
