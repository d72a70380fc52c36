"""Bookable slot generation.

A therapist's weekly window is tiled into fixed-length sessions separated by
a fixed break, then slots already claimed by a booked session on the
requested date are removed. Slots are derived on every request and never
stored.
"""

import logging
from dataclasses import dataclass
from datetime import date, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.core.errors import InternalError
from backend.models.therapy_session import SessionStatus, TherapySession
from backend.services.availability_service import find_windows_for_day
from backend.utils.time_utils import format_hhmm, from_minutes, to_minutes, weekday_name

logger = logging.getLogger(__name__)

# Sessions in these states no longer hold their slot.
RELEASED_STATUSES = (SessionStatus.DECLINED.value, SessionStatus.CANCELLED.value)

MORNING_END_HOUR = 12
AFTERNOON_END_HOUR = 17


@dataclass(frozen=True)
class Slot:
    start: time
    end: time

    def as_dict(self) -> dict[str, str]:
        return {'start': format_hhmm(self.start), 'end': format_hhmm(self.end)}


def tile_window(
    window_start: time,
    window_end: time,
    duration_minutes: int | None = None,
    break_minutes: int | None = None,
) -> list[Slot]:
    duration = config.SESSION_DURATION_MINUTES if duration_minutes is None else duration_minutes
    break_time = config.SESSION_BREAK_MINUTES if break_minutes is None else break_minutes

    slots: list[Slot] = []
    current = to_minutes(window_start)
    end = to_minutes(window_end)

    while current + duration <= end:
        slots.append(Slot(start=from_minutes(current), end=from_minutes(current + duration)))
        current += duration + break_time

    return slots


def _collides(slot: Slot, booked: list[tuple[int, int]], mode: str) -> bool:
    slot_start = to_minutes(slot.start)
    if mode == 'overlap':
        slot_end = to_minutes(slot.end)
        return any(booked_start < slot_end and booked_end > slot_start for booked_start, booked_end in booked)
    return any(booked_start == slot_start for booked_start, _ in booked)


def fetch_booked_intervals(db: Session, therapist_id: int, on_date: date) -> list[tuple[int, int]]:
    booked_sessions = db.query(TherapySession.start_time, TherapySession.end_time).filter(
        TherapySession.therapist_id == therapist_id,
        TherapySession.scheduled_date == on_date,
        TherapySession.status.not_in(RELEASED_STATUSES),
    ).all()

    return [(to_minutes(start), to_minutes(end)) for start, end in booked_sessions]


def generate_slots(
    db: Session,
    therapist_id: int,
    on_date: date,
    collision_mode: str | None = None,
) -> list[Slot]:
    mode = collision_mode or config.SLOT_COLLISION_MODE
    day_name = weekday_name(on_date)

    try:
        windows = find_windows_for_day(db, therapist_id, day_name)
        if not windows:
            return []

        generated: list[Slot] = []
        for window in windows:
            generated.extend(tile_window(window.start_time, window.end_time))

        booked = fetch_booked_intervals(db, therapist_id, on_date)
    except SQLAlchemyError as exc:
        logger.exception('Available slots lookup failed for therapist %s on %s', therapist_id, on_date)
        raise InternalError('Something went wrong') from exc

    available = [slot for slot in generated if not _collides(slot, booked, mode)]
    available.sort(key=lambda slot: to_minutes(slot.start))
    return available


def bucket_slots(slots: list[Slot]) -> dict[str, list[Slot]]:
    """Group slots into morning, afternoon and evening for display."""
    buckets: dict[str, list[Slot]] = {'morning': [], 'afternoon': [], 'evening': []}
    for slot in slots:
        if slot.start.hour < MORNING_END_HOUR:
            buckets['morning'].append(slot)
        elif slot.start.hour < AFTERNOON_END_HOUR:
            buckets['afternoon'].append(slot)
        else:
            buckets['evening'].append(slot)
    return buckets
