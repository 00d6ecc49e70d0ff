"""Free-slot suggestions for a room on a given date."""
from datetime import date
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.showtime import AvailableSlot
from app.services import facts
from app.utils.time_of_day import from_seconds_since_midnight, to_seconds_since_midnight


def fit_slots(
    occupied: Iterable[Tuple[int, int]],
    duration_seconds: int,
    opening: int,
    closing: int,
    gap_seconds: int,
) -> List[Tuple[int, int]]:
    """
    Tile the free time between ``opening`` and ``closing`` with back-to-back
    blocks of ``duration + gap``. ``occupied`` holds (start, end) pairs in
    seconds since midnight.
    """
    block = duration_seconds + gap_seconds
    slots = []
    cursor = opening

    def fill(until: int) -> None:
        count = max(until - cursor, 0) // block
        for i in range(count):
            start = cursor + i * block
            slots.append((start, start + duration_seconds))

    for start, end in sorted(occupied):
        if start > cursor:
            fill(start)
        cursor = max(cursor, end + gap_seconds)

    fill(closing)
    return slots


def find_available_slots(
    db: Session,
    room_id: UUID,
    show_date: date,
    required_duration_minutes: int,
    exclude_showtime_id: Optional[UUID] = None,
) -> List[AvailableSlot]:
    """
    Windows in operating hours where a showtime occupying
    ``required_duration_minutes`` (runtime + cleanup) would fit.

    Advisory only: nothing is reserved and the result must be re-validated
    through the conflict check before committing.
    """
    if required_duration_minutes <= 0:
        raise ValueError("required_duration_minutes must be positive")

    occupied = [
        (
            to_seconds_since_midnight(showtime.start_time),
            to_seconds_since_midnight(showtime.end_time),
        )
        for showtime, _ in facts.list_by_room_and_date(
            db, room_id, show_date, exclude_showtime_id=exclude_showtime_id
        )
    ]

    windows = fit_slots(
        occupied,
        duration_seconds=required_duration_minutes * 60,
        opening=to_seconds_since_midnight(settings.OPERATING_HOURS_START),
        closing=to_seconds_since_midnight(settings.OPERATING_HOURS_END),
        gap_seconds=settings.INTER_SCREENING_GAP_MINUTES * 60,
    )
    return [
        AvailableSlot(
            start=from_seconds_since_midnight(start),
            end=from_seconds_since_midnight(end),
        )
        for start, end in windows
    ]
