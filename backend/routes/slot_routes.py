from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.core.errors import ValidationError
from backend.core.schemas import CamelModel
from backend.database import get_db
from backend.services.booking_service import parse_positive_id
from backend.services.slot_service import Slot, bucket_slots, generate_slots
from backend.utils.time_utils import format_hhmm, parse_calendar_date

router = APIRouter(tags=['slots'])


class AvailableSlotsRequest(CamelModel):
    therapist_id: int | str | None = None
    selected_date: str | None = None


class SlotResponse(CamelModel):
    start: str
    end: str

    @classmethod
    def from_slot(cls, slot: Slot) -> 'SlotResponse':
        return cls(start=format_hhmm(slot.start), end=format_hhmm(slot.end))


class GroupedSlotsResponse(CamelModel):
    morning: list[SlotResponse]
    afternoon: list[SlotResponse]
    evening: list[SlotResponse]


def _resolve_slots(db: Session, therapist_id, selected_date) -> list[Slot]:
    if not therapist_id or not selected_date:
        raise ValidationError('Missing therapistId or selectedDate')

    return generate_slots(
        db,
        therapist_id=parse_positive_id(therapist_id),
        on_date=parse_calendar_date(selected_date),
    )


@router.post('', response_model=list[SlotResponse])
def list_available_slots(data: AvailableSlotsRequest, db: Session = Depends(get_db)):
    slots = _resolve_slots(db, data.therapist_id, data.selected_date)
    return [SlotResponse.from_slot(slot) for slot in slots]


@router.get('/grouped', response_model=GroupedSlotsResponse)
def list_grouped_slots(
    therapist_id: int = Query(..., alias='therapistId'),
    selected_date: str = Query(..., alias='selectedDate'),
    db: Session = Depends(get_db),
):
    buckets = bucket_slots(_resolve_slots(db, therapist_id, selected_date))
    return GroupedSlotsResponse(
        **{name: [SlotResponse.from_slot(slot) for slot in slots] for name, slots in buckets.items()}
    )
