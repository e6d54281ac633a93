"""SQLAlchemy model for persisted notifications."""

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
from sqlalchemy.orm import relationship

from notification_engine.infrastructure.database import Base
from notification_engine.utils import now_naive_utc


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
        Index("ix_notifications_status_scheduled", "status", "scheduled_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False)
    category = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    channels = Column(JSON, nullable=False, default=list)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    scheduled_at = Column(DateTime(), nullable=True)
    expires_at = Column(DateTime(), nullable=True)
    template_id = Column(
        Integer,
        ForeignKey("notification_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    template_variables = Column(JSON, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)
    is_archived = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(), nullable=True)
    archived_at = Column(DateTime(), nullable=True)
    batch_id = Column(
        Integer,
        ForeignKey("notification_batches.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    updated_at = Column(
        DateTime(), nullable=False, default=now_naive_utc, onupdate=now_naive_utc
    )

    delivery_attempts = relationship(
        "DeliveryAttemptModel",
        back_populates="notification",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


__all__ = ["NotificationModel"]
