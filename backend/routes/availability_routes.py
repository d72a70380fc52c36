from fastapi import APIRouter, Depends
from pydantic import field_validator
from sqlalchemy.orm import Session

from backend.auth.dependencies import require_role
from backend.core.errors import ValidationError
from backend.core.schemas import CamelModel
from backend.database import get_db
from backend.models.availability import TherapistAvailability
from backend.models.user import ROLE_THERAPIST, User
from backend.services import availability_service
from backend.utils.time_utils import format_hhmm

router = APIRouter(tags=['availability'])


class UpsertAvailabilityRequest(CamelModel):
    day_of_week: str | None = None
    start_time: str | None = None
    end_time: str | None = None

    @field_validator('day_of_week', 'start_time', 'end_time')
    @classmethod
    def strip_blank(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


class DeleteAvailabilityRequest(CamelModel):
    id: int | None = None


class AvailabilityWindowResponse(CamelModel):
    id: int
    therapist_id: int
    day_of_week: str
    start_time: str
    end_time: str

    @classmethod
    def from_window(cls, window: TherapistAvailability) -> 'AvailabilityWindowResponse':
        return cls(
            id=window.id,
            therapist_id=window.therapist_id,
            day_of_week=window.day_of_week,
            start_time=format_hhmm(window.start_time),
            end_time=format_hhmm(window.end_time),
        )


class DeleteAvailabilityResponse(CamelModel):
    success: bool


@router.get('', response_model=list[AvailabilityWindowResponse])
def list_availability(
    current_user: User = Depends(require_role(ROLE_THERAPIST)),
    db: Session = Depends(get_db),
):
    windows = availability_service.list_windows(db, current_user.id)
    return [AvailabilityWindowResponse.from_window(window) for window in windows]


@router.post('', response_model=AvailabilityWindowResponse)
def upsert_availability(
    data: UpsertAvailabilityRequest,
    current_user: User = Depends(require_role(ROLE_THERAPIST)),
    db: Session = Depends(get_db),
):
    if not data.day_of_week or not data.start_time or not data.end_time:
        raise ValidationError('Missing fields')

    window = availability_service.upsert_window(
        db,
        therapist_id=current_user.id,
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        end_time=data.end_time,
    )
    return AvailabilityWindowResponse.from_window(window)


@router.delete('', response_model=DeleteAvailabilityResponse)
def delete_availability(
    data: DeleteAvailabilityRequest,
    current_user: User = Depends(require_role(ROLE_THERAPIST)),
    db: Session = Depends(get_db),
):
    if not data.id:
        raise ValidationError('Missing availability id')

    availability_service.delete_window(db, therapist_id=current_user.id, window_id=data.id)
    return DeleteAvailabilityResponse(success=True)
