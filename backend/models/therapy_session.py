"""Therapy session (booking) model definitions."""

from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Time, func, text
from backend.database import Base


class SessionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_STATUSES = (SessionStatus.PENDING.value, SessionStatus.ACCEPTED.value)

SESSION_TYPE_VIDEO_CALL = "video_call"

_ACTIVE_STATUS_CLAUSE = text("status IN ('pending', 'accepted')")


class TherapySession(Base):
    """A booked session between a patient and a therapist."""
    __tablename__ = "sessions"
    __table_args__ = (
        # At most one active session may claim a therapist's slot.
        Index(
            "uq_sessions_active_slot",
            "therapist_id",
            "scheduled_date",
            "start_time",
            unique=True,
            postgresql_where=_ACTIVE_STATUS_CLAUSE,
            sqlite_where=_ACTIVE_STATUS_CLAUSE,
        ),
        Index("idx_sessions_therapist_date", "therapist_id", "scheduled_date"),
        Index("idx_sessions_status", "status"),
    )

    id = Column(Integer, primary_key=True)
    therapist_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    scheduled_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String, nullable=False, default=SessionStatus.PENDING.value)
    session_type = Column(String, nullable=False, default=SESSION_TYPE_VIDEO_CALL)
    issue_description = Column(String)
    meeting_room_id = Column(String)
    completed_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
