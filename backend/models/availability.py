"""Availability model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String, Time, UniqueConstraint
from backend.database import Base


class TherapistAvailability(Base):
    """A therapist's recurring weekly window, one per weekday."""
    __tablename__ = "therapist_availability"
    __table_args__ = (
        UniqueConstraint("therapist_id", "day_of_week", name="uq_availability_therapist_day"),
    )

    id = Column(Integer, primary_key=True)
    therapist_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    day_of_week = Column(String, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
