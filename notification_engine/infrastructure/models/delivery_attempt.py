"""SQLAlchemy model for per-channel delivery records."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from notification_engine.infrastructure.database import Base
from notification_engine.utils import now_naive_utc


class DeliveryAttemptModel(Base):
    """One row per (notification, channel) pair."""

    __tablename__ = "delivery_attempts"
    __table_args__ = (
        UniqueConstraint(
            "notification_id", "channel", name="uq_delivery_attempt_channel"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(
        Integer,
        ForeignKey("notifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    channel = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    attempts = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime(), nullable=True)
    delivered_at = Column(DateTime(), nullable=True)
    failure_reason = Column(Text, nullable=True)
    external_id = Column(String(255), nullable=True)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    updated_at = Column(
        DateTime(), nullable=False, default=now_naive_utc, onupdate=now_naive_utc
    )

    notification = relationship("NotificationModel", back_populates="delivery_attempts")


__all__ = ["DeliveryAttemptModel"]
