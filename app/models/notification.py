"""Notification model for in-app notifications."""

from sqlalchemy import Column, String, DateTime, Text, Integer, Boolean, ForeignKey, JSON
from sqlalchemy.sql import func

from app.database import Base


class Notification(Base):
    """In-app notification for users."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)

    # Target user
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Notification content
    type = Column(String(50), nullable=False, index=True)  # schedule, reminder, inspection, repair, system
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Status
    read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    # Front-end route to open
    link = Column(String(500), nullable=True)

    # entity_id, entity_type, etc. ("metadata" is reserved on declarative classes)
    extra_data = Column("metadata", JSON, nullable=True)

    source = Column(String(50), nullable=True)  # system, user, scheduler

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<Notification {self.type}: {self.title[:30]}>"
