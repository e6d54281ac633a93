"""SQLAlchemy model for notification templates."""

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text

from notification_engine.infrastructure.database import Base
from notification_engine.utils import now_naive_utc


class NotificationTemplateModel(Base):
    """Database representation of a reusable notification template."""

    __tablename__ = "notification_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(255), nullable=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False)
    category = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False)
    channels = Column(JSON, nullable=False, default=list)
    variables = Column(JSON, nullable=False, default=list)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    updated_at = Column(
        DateTime(), nullable=False, default=now_naive_utc, onupdate=now_naive_utc
    )


__all__ = ["NotificationTemplateModel"]
