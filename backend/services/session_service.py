"""Session status transitions and the auto-complete sweep.

    pending  -> accepted | declined | cancelled
    accepted -> completed | cancelled

declined, cancelled and completed are terminal. Any other transition is
rejected with a ConflictError.
"""

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.errors import ConflictError, ForbiddenError, InternalError, NotFoundError
from backend.models.therapy_session import SessionStatus, TherapySession
from backend.models.user import ROLE_ADMIN, User
from backend.services.activity_service import ACTIVITY_SESSION_CANCELLED, log_activity
from backend.services.notification_service import (
    NOTIFICATION_GENERAL,
    NOTIFICATION_SESSION_ACCEPTED,
    create_notification,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    SessionStatus.PENDING.value: frozenset({
        SessionStatus.ACCEPTED.value,
        SessionStatus.DECLINED.value,
        SessionStatus.CANCELLED.value,
    }),
    SessionStatus.ACCEPTED.value: frozenset({
        SessionStatus.COMPLETED.value,
        SessionStatus.CANCELLED.value,
    }),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def get_session(db: Session, session_id: int, actor: User | None = None) -> TherapySession:
    session = db.query(TherapySession).filter(TherapySession.id == session_id).first()
    if session is None:
        raise NotFoundError('Session not found')

    if actor is not None and actor.role != ROLE_ADMIN and actor.id not in (session.patient_id, session.therapist_id):
        raise ForbiddenError('You are not a participant in this session.')

    return session


def _require_therapist_owner(session: TherapySession, actor: User) -> None:
    if actor.role != ROLE_ADMIN and actor.id != session.therapist_id:
        raise ForbiddenError('Only the session therapist can perform this action.')


def _transition(db: Session, session: TherapySession, target: SessionStatus, **changes) -> TherapySession:
    """Move ``session`` to ``target`` only if its stored status is still the one checked.

    The update is conditional on the status read here, so a concurrent writer
    that got there first leaves zero matched rows and the move is rejected.
    """
    previous = session.status
    if not can_transition(previous, target.value):
        raise ConflictError(f'Cannot move session from {previous} to {target.value}.')

    values = {'status': target.value, **changes}
    try:
        updated = db.query(TherapySession).filter(
            TherapySession.id == session.id,
            TherapySession.status == previous,
        ).update(values, synchronize_session=False)

        if not updated:
            db.rollback()
            db.refresh(session)
            raise ConflictError(f'Cannot move session from {session.status} to {target.value}.')

        db.commit()
        db.refresh(session)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to move session %s to %s', session.id, target.value)
        raise InternalError(str(exc)) from exc

    logger.info('Session %s moved from %s to %s', session.id, previous, target.value)
    return session


def accept_session(db: Session, session_id: int, actor: User) -> TherapySession:
    session = get_session(db, session_id)
    _require_therapist_owner(session, actor)

    room_id = f'therapy-{session.id}-{uuid.uuid4()}'
    session = _transition(db, session, SessionStatus.ACCEPTED, meeting_room_id=room_id)

    create_notification(
        db,
        session.patient_id,
        NOTIFICATION_SESSION_ACCEPTED,
        'Your therapy session has been accepted.',
    )
    return session


def decline_session(db: Session, session_id: int, actor: User) -> TherapySession:
    session = get_session(db, session_id)
    _require_therapist_owner(session, actor)

    session = _transition(db, session, SessionStatus.DECLINED)

    create_notification(
        db,
        session.patient_id,
        NOTIFICATION_GENERAL,
        'Your therapy session request has been declined.',
    )
    return session


def cancel_session(
    db: Session,
    session_id: int,
    actor: User,
    headers: Mapping[str, str] | None = None,
) -> TherapySession:
    session = get_session(db, session_id, actor)

    session = _transition(db, session, SessionStatus.CANCELLED)

    notify_user_id = session.therapist_id if actor.id == session.patient_id else session.patient_id
    create_notification(db, notify_user_id, NOTIFICATION_GENERAL, 'A therapy session has been cancelled.')
    log_activity(db, actor.id, ACTIVITY_SESSION_CANCELLED, headers)
    return session


def complete_session(db: Session, session_id: int, actor: User, now: datetime | None = None) -> TherapySession:
    session = get_session(db, session_id)
    _require_therapist_owner(session, actor)

    return _transition(db, session, SessionStatus.COMPLETED, completed_at=now or datetime.now())


def session_end(session: TherapySession) -> datetime:
    return datetime.combine(session.scheduled_date, session.end_time)


def auto_complete_sessions(db: Session, now: datetime | None = None) -> int:
    """Complete every accepted session whose end has passed.

    The write only matches rows still ``accepted``, so a session cancelled
    or completed after it was read is left as it is, and running the sweep
    again changes nothing.
    """
    now = now or datetime.now()

    try:
        accepted = db.query(TherapySession).filter(
            TherapySession.status == SessionStatus.ACCEPTED.value,
        ).all()
        due_ids = [session.id for session in accepted if now > session_end(session)]

        completed = 0
        if due_ids:
            completed = db.query(TherapySession).filter(
                TherapySession.id.in_(due_ids),
                TherapySession.status == SessionStatus.ACCEPTED.value,
            ).update(
                {'status': SessionStatus.COMPLETED.value, 'completed_at': now},
                synchronize_session=False,
            )
            db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Auto-complete sweep failed')
        raise InternalError('Auto-complete sweep failed') from exc

    if completed:
        logger.info('Auto-complete sweep completed %s session(s)', completed)
    return completed
