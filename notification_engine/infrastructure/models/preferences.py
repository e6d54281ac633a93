"""SQLAlchemy model for per-user notification preferences."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String

from notification_engine.infrastructure.database import Base
from notification_engine.utils import now_naive_utc


class NotificationPreferencesModel(Base):
    """Channel toggles, quiet hours and category rules for one user."""

    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    email_enabled = Column(Boolean, nullable=False, default=True)
    push_enabled = Column(Boolean, nullable=False, default=True)
    in_app_enabled = Column(Boolean, nullable=False, default=True)
    sms_enabled = Column(Boolean, nullable=False, default=False)
    quiet_hours_enabled = Column(Boolean, nullable=False, default=False)
    quiet_hours_start = Column(String(5), nullable=False, default="22:00")
    quiet_hours_end = Column(String(5), nullable=False, default="08:00")
    timezone = Column(String(64), nullable=False, default="UTC")
    categories = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    updated_at = Column(
        DateTime(), nullable=False, default=now_naive_utc, onupdate=now_naive_utc
    )


__all__ = ["NotificationPreferencesModel"]
