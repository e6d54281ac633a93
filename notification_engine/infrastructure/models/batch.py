"""SQLAlchemy model for bulk notification jobs."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String

from notification_engine.infrastructure.database import Base
from notification_engine.utils import now_naive_utc


class NotificationBatchModel(Base):
    """Database representation of a batch fan-out job."""

    __tablename__ = "notification_batches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(500), nullable=True)
    template_id = Column(
        Integer,
        ForeignKey("notification_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    template_variables = Column(JSON, nullable=False, default=dict)
    user_ids = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="pending", index=True)
    total_count = Column(Integer, nullable=False, default=0)
    success_count = Column(Integer, nullable=False, default=0)
    failure_count = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(), nullable=True)
    completed_at = Column(DateTime(), nullable=True)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    updated_at = Column(
        DateTime(), nullable=False, default=now_naive_utc, onupdate=now_naive_utc
    )


__all__ = ["NotificationBatchModel"]
