"""SQLAlchemy model for deferred and recurring notifications."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)

from notification_engine.infrastructure.database import Base
from notification_engine.utils import now_naive_utc


class ScheduledNotificationModel(Base):
    """A notification request waiting for its ``scheduled_at`` time."""

    __tablename__ = "scheduled_notifications"
    __table_args__ = (
        Index("ix_scheduled_active_due", "is_active", "scheduled_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, default="info")
    category = Column(String(20), nullable=False, default="reminder")
    priority = Column(String(20), nullable=False, default="medium")
    channels = Column(JSON, nullable=False, default=list)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    template_id = Column(
        Integer,
        ForeignKey("notification_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    template_variables = Column(JSON, nullable=False, default=dict)
    scheduled_at = Column(DateTime(), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")
    recurring = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_executed_at = Column(DateTime(), nullable=True)
    execution_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    updated_at = Column(
        DateTime(), nullable=False, default=now_naive_utc, onupdate=now_naive_utc
    )


__all__ = ["ScheduledNotificationModel"]
