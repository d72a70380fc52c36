from datetime import date, datetime

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, require_role
from backend.core.errors import ForbiddenError, ValidationError
from backend.core.schemas import CamelModel
from backend.database import get_db
from backend.models.therapy_session import TherapySession
from backend.models.user import ROLE_ADMIN, ROLE_PATIENT, ROLE_THERAPIST, User
from backend.services import session_service
from backend.services.booking_service import book_session, parse_positive_id
from backend.utils.time_utils import format_hhmm

router = APIRouter(tags=['sessions'])


class BookSessionRequest(CamelModel):
    therapist_id: int | str | None = None
    patient_id: int | str | None = None
    selected_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    issue_description: str | None = None


class SessionIdRequest(CamelModel):
    session_id: int | str | None = None


class SessionResponse(CamelModel):
    id: int
    therapist_id: int
    patient_id: int
    scheduled_date: date
    start_time: str
    end_time: str
    status: str
    session_type: str
    issue_description: str | None = None
    meeting_room_id: str | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_session(cls, session: TherapySession) -> 'SessionResponse':
        return cls(
            id=session.id,
            therapist_id=session.therapist_id,
            patient_id=session.patient_id,
            scheduled_date=session.scheduled_date,
            start_time=format_hhmm(session.start_time),
            end_time=format_hhmm(session.end_time),
            status=session.status,
            session_type=session.session_type,
            issue_description=session.issue_description,
            meeting_room_id=session.meeting_room_id,
            completed_at=session.completed_at,
            created_at=session.created_at,
        )


class SessionActionResponse(CamelModel):
    success: bool
    session: SessionResponse


class AutoCompleteResponse(CamelModel):
    success: bool
    completed: int


def _require_session_id(data: SessionIdRequest) -> int:
    if data.session_id is None or data.session_id == '':
        raise ValidationError('Missing sessionId')
    try:
        return parse_positive_id(data.session_id)
    except ValidationError as exc:
        raise ValidationError('Invalid session ID') from exc


@router.post('/book', response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def book(
    data: BookSessionRequest,
    request: Request,
    current_user: User = Depends(require_role(ROLE_PATIENT, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    if current_user.role == ROLE_PATIENT and data.patient_id and str(data.patient_id).strip() != str(current_user.id):
        raise ForbiddenError('Patients can only book sessions for themselves.')

    session = book_session(
        db,
        therapist_id=data.therapist_id,
        patient_id=data.patient_id,
        scheduled_date=data.selected_date,
        start_time=data.start_time,
        end_time=data.end_time,
        issue_description=data.issue_description,
        headers=request.headers,
    )
    return SessionResponse.from_session(session)


@router.post('/auto-complete', response_model=AutoCompleteResponse)
def auto_complete(db: Session = Depends(get_db)):
    completed = session_service.auto_complete_sessions(db)
    return AutoCompleteResponse(success=True, completed=completed)


@router.post('/accept', response_model=SessionActionResponse)
def accept(
    data: SessionIdRequest,
    current_user: User = Depends(require_role(ROLE_THERAPIST, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    session = session_service.accept_session(db, _require_session_id(data), current_user)
    return SessionActionResponse(success=True, session=SessionResponse.from_session(session))


@router.post('/decline', response_model=SessionActionResponse)
def decline(
    data: SessionIdRequest,
    current_user: User = Depends(require_role(ROLE_THERAPIST, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    session = session_service.decline_session(db, _require_session_id(data), current_user)
    return SessionActionResponse(success=True, session=SessionResponse.from_session(session))


@router.put('/cancel', response_model=SessionActionResponse)
def cancel(
    data: SessionIdRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = session_service.cancel_session(db, _require_session_id(data), current_user, request.headers)
    return SessionActionResponse(success=True, session=SessionResponse.from_session(session))


@router.patch('/{session_id}/complete', response_model=SessionResponse)
def complete(
    session_id: int,
    current_user: User = Depends(require_role(ROLE_THERAPIST, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    session = session_service.complete_session(db, session_id, current_user)
    return SessionResponse.from_session(session)


@router.get('/{session_id}', response_model=SessionResponse)
def get_session_detail(
    session_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = session_service.get_session(db, session_id, current_user)
    return SessionResponse.from_session(session)
