from backend.models.user import User
from backend.models.availability import TherapistAvailability
from backend.models.therapy_session import TherapySession
from backend.models.notification import ActivityLog, Notification

__all__ = [
    "ActivityLog",
    "Notification",
    "TherapistAvailability",
    "TherapySession",
    "User",
]
