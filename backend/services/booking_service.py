"""Session booking.

Two requests for the same (therapist, date, start) slot can both pass the
lookup below before either inserts. The partial unique index
``uq_sessions_active_slot`` settles that race: whichever insert loses raises
``IntegrityError``, which is reported as the same conflict as the lookup.
"""

import logging
from collections.abc import Mapping
from datetime import date, time
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.errors import ConflictError, InternalError, NotFoundError, ValidationError
from backend.models.therapy_session import (
    ACTIVE_STATUSES,
    SESSION_TYPE_VIDEO_CALL,
    SessionStatus,
    TherapySession,
)
from backend.models.user import ROLE_PATIENT, ROLE_THERAPIST, User
from backend.services.activity_service import ACTIVITY_SESSION_BOOKED, log_activity
from backend.services.notification_service import NOTIFICATION_SESSION_BOOKED, create_notification
from backend.utils.time_utils import format_hhmm, parse_calendar_date, parse_time_of_day, to_minutes

logger = logging.getLogger(__name__)

SLOT_ALREADY_BOOKED = 'Slot already booked'
MAX_ISSUE_DESCRIPTION_LENGTH = 2000


def parse_positive_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError('Invalid therapist or patient ID')
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise ValidationError('Invalid therapist or patient ID')

    if parsed <= 0:
        raise ValidationError('Invalid therapist or patient ID')
    return parsed


def _normalize_issue_description(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if len(normalized) > MAX_ISSUE_DESCRIPTION_LENGTH:
        raise ValidationError(f'Issue description must be {MAX_ISSUE_DESCRIPTION_LENGTH} characters or fewer.')
    return normalized


def find_active_session(db: Session, therapist_id: int, scheduled_date: date, start_time: time) -> TherapySession | None:
    return db.query(TherapySession).filter(
        TherapySession.therapist_id == therapist_id,
        TherapySession.scheduled_date == scheduled_date,
        TherapySession.start_time == start_time,
        TherapySession.status.in_(ACTIVE_STATUSES),
    ).first()


def _require_user_with_role(db: Session, user_id: int, role: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or user.role != role:
        raise NotFoundError(f'{role.capitalize()} not found')
    return user


def book_session(
    db: Session,
    therapist_id: Any,
    patient_id: Any,
    scheduled_date: str | date | None,
    start_time: str | time | None,
    end_time: str | time | None,
    issue_description: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> TherapySession:
    if not therapist_id or not patient_id or not scheduled_date or not start_time or not end_time:
        raise ValidationError('Missing required fields')

    therapist_id = parse_positive_id(therapist_id)
    patient_id = parse_positive_id(patient_id)
    session_date = parse_calendar_date(scheduled_date, 'date')
    start = parse_time_of_day(start_time, 'startTime')
    end = parse_time_of_day(end_time, 'endTime')
    description = _normalize_issue_description(issue_description)

    if to_minutes(start) >= to_minutes(end):
        raise ValidationError('End time must be after start time')

    try:
        _require_user_with_role(db, therapist_id, ROLE_THERAPIST)
        _require_user_with_role(db, patient_id, ROLE_PATIENT)

        if find_active_session(db, therapist_id, session_date, start):
            raise ConflictError(SLOT_ALREADY_BOOKED)

        session = TherapySession(
            therapist_id=therapist_id,
            patient_id=patient_id,
            scheduled_date=session_date,
            start_time=start,
            end_time=end,
            status=SessionStatus.PENDING.value,
            session_type=SESSION_TYPE_VIDEO_CALL,
            issue_description=description,
        )
        db.add(session)
        db.commit()
        db.refresh(session)
    except ConflictError:
        logger.warning(
            'Slot %s %s for therapist %s is already booked',
            session_date, format_hhmm(start), therapist_id,
        )
        raise
    except IntegrityError as exc:
        db.rollback()
        if find_active_session(db, therapist_id, session_date, start):
            logger.warning(
                'Concurrent booking lost the race for therapist %s at %s %s',
                therapist_id, session_date, format_hhmm(start),
            )
            raise ConflictError(SLOT_ALREADY_BOOKED) from exc
        logger.exception('Booking insert failed for therapist %s', therapist_id)
        raise InternalError(str(exc.orig) if exc.orig else str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Booking failed for therapist %s', therapist_id)
        raise InternalError(str(exc)) from exc

    logger.info(
        'Session %s booked: therapist %s, patient %s, %s %s-%s',
        session.id, therapist_id, patient_id, session_date, format_hhmm(start), format_hhmm(end),
    )

    create_notification(
        db,
        therapist_id,
        NOTIFICATION_SESSION_BOOKED,
        f'New session request for {session_date.isoformat()} at {format_hhmm(start)}.',
    )
    log_activity(db, patient_id, ACTIVITY_SESSION_BOOKED, headers)

    db.refresh(session)
    return session
