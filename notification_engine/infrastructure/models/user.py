"""SQLAlchemy model for notification recipients."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from notification_engine.infrastructure.database import Base
from notification_engine.utils import now_naive_utc


class UserModel(Base):
    """Database representation of a user that can receive notifications."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)


__all__ = ["UserModel"]
