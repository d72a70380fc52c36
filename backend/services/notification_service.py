import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.notification import Notification

logger = logging.getLogger(__name__)

NOTIFICATION_SESSION_BOOKED = "session_booked"
NOTIFICATION_SESSION_ACCEPTED = "session_accepted"
NOTIFICATION_GENERAL = "general"


def create_notification(db: Session, user_id: int, notification_type: str, message: str) -> Notification | None:
    """Store a notification for ``user_id``.

    Notifications accompany an already committed change, so a failure here is
    logged and reported as ``None`` instead of being raised.
    """
    try:
        notification = Notification(
            user_id=user_id,
            notification_type=notification_type,
            message=message,
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Failed to create %s notification for user %s', notification_type, user_id)
        return None
