import logging
from collections.abc import Mapping
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.notification import ActivityLog

logger = logging.getLogger(__name__)

ACTIVITY_SESSION_BOOKED = "SESSION_BOOKED"
ACTIVITY_SESSION_CANCELLED = "SESSION_CANCELLED"

DEFAULT_IP_ADDRESS = "127.0.0.1"
DEFAULT_DEVICE_INFO = "Unknown"


def extract_request_meta(headers: Mapping[str, str] | None) -> tuple[str, str]:
    headers = headers or {}
    forwarded = headers.get("x-forwarded-for") or ""
    ip_address = forwarded.split(",")[0].strip() or DEFAULT_IP_ADDRESS
    device_info = headers.get("user-agent") or DEFAULT_DEVICE_INFO
    return ip_address, device_info


def log_activity(
    db: Session,
    user_id: int | None,
    activity_type: str,
    headers: Mapping[str, str] | None = None,
) -> ActivityLog | None:
    """Record an audit entry. Never raises."""
    ip_address, device_info = extract_request_meta(headers)
    try:
        entry = ActivityLog(
            user_id=user_id,
            activity_type=activity_type,
            device_info=device_info,
            ip_address=ip_address,
            logged_at=datetime.now(),
        )
        db.add(entry)
        db.commit()
        return entry
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Failed to log %s activity for user %s', activity_type, user_id)
        return None
