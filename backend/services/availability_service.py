import logging
from datetime import time

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.errors import ConflictError, InternalError, NotFoundError, ValidationError
from backend.models.availability import TherapistAvailability
from backend.models.therapy_session import ACTIVE_STATUSES, TherapySession
from backend.utils.time_utils import (
    normalize_day_name,
    parse_time_of_day,
    to_minutes,
    weekday_name,
    weekday_sort_key,
)

logger = logging.getLogger(__name__)


def upsert_window(
    db: Session,
    therapist_id: int,
    day_of_week: str,
    start_time: str | time,
    end_time: str | time,
) -> TherapistAvailability:
    """Create or replace the therapist's window for ``day_of_week``."""
    day_name = normalize_day_name(day_of_week)
    start = parse_time_of_day(start_time, 'startTime')
    end = parse_time_of_day(end_time, 'endTime')

    if to_minutes(start) >= to_minutes(end):
        raise ValidationError('End time must be after start time')

    try:
        window = db.query(TherapistAvailability).filter(
            TherapistAvailability.therapist_id == therapist_id,
            func.lower(TherapistAvailability.day_of_week) == day_name.lower(),
        ).first()

        if window:
            window.day_of_week = day_name
            window.start_time = start
            window.end_time = end
        else:
            window = TherapistAvailability(
                therapist_id=therapist_id,
                day_of_week=day_name,
                start_time=start,
                end_time=end,
            )
            db.add(window)

        db.commit()
        db.refresh(window)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to save availability for therapist %s', therapist_id)
        raise InternalError('Failed to save availability') from exc

    logger.info('Therapist %s availability on %s set to %s-%s', therapist_id, day_name, start, end)
    return window


def count_active_sessions_on_weekday(db: Session, therapist_id: int, day_name: str) -> int:
    scheduled_dates = db.query(TherapySession.scheduled_date).filter(
        TherapySession.therapist_id == therapist_id,
        TherapySession.status.in_(ACTIVE_STATUSES),
    ).all()

    return sum(1 for (scheduled_date,) in scheduled_dates if weekday_name(scheduled_date) == day_name)


def delete_window(db: Session, therapist_id: int, window_id: int) -> None:
    """Delete a window unless live sessions still fall on its weekday.

    The session scan and the delete are not atomic; a booking created in
    between can be left without a matching window.
    """
    try:
        window = db.query(TherapistAvailability).filter(
            TherapistAvailability.id == window_id,
        ).first()

        if not window or window.therapist_id != therapist_id:
            raise NotFoundError('Availability not found or unauthorized')

        day_name = normalize_day_name(window.day_of_week)
        conflicting = count_active_sessions_on_weekday(db, therapist_id, day_name)
        if conflicting > 0:
            logger.warning(
                'Refusing to delete availability %s: %s active session(s) on %s',
                window_id, conflicting, day_name,
            )
            raise ConflictError(
                f'Cannot delete: you have {conflicting} active session(s) on {window.day_of_week}. '
                'Please cancel or complete them first.',
                count=conflicting,
            )

        db.delete(window)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete availability %s', window_id)
        raise InternalError('Failed to delete availability') from exc

    logger.info('Therapist %s deleted availability %s', therapist_id, window_id)


def list_windows(db: Session, therapist_id: int) -> list[TherapistAvailability]:
    try:
        windows = db.query(TherapistAvailability).filter(
            TherapistAvailability.therapist_id == therapist_id,
        ).all()
    except SQLAlchemyError as exc:
        logger.exception('Failed to fetch availability for therapist %s', therapist_id)
        raise InternalError('Failed to fetch availability') from exc

    return sorted(windows, key=lambda window: (weekday_sort_key(window.day_of_week), window.start_time))


def find_windows_for_day(db: Session, therapist_id: int, day_name: str) -> list[TherapistAvailability]:
    return db.query(TherapistAvailability).filter(
        TherapistAvailability.therapist_id == therapist_id,
        func.lower(TherapistAvailability.day_of_week) == day_name.lower(),
    ).order_by(TherapistAvailability.start_time.asc()).all()
