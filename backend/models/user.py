"""User model definitions."""

from sqlalchemy import Column, Integer, String
from backend.database import Base

ROLE_PATIENT = "patient"
ROLE_THERAPIST = "therapist"
ROLE_ADMIN = "admin"


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String)
    hashed_password = Column(String)
    role = Column(String, nullable=False)  # patient/therapist/admin
