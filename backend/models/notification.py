"""Notification and activity log model definitions."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func
from backend.database import Base


class Notification(Base):
    """An in-app message for a user."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    notification_type = Column(String, nullable=False)
    message = Column(String, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class ActivityLog(Base):
    """Audit trail entry for a user action."""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    activity_type = Column(String, nullable=False)
    device_info = Column(String)
    ip_address = Column(String)
    logged_at = Column(DateTime, nullable=False)
