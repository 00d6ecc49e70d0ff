"""Conflict detection for a candidate showtime window in a room."""
import logging
from datetime import date
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.showtime import ConflictingShowtime
from app.services import facts
from app.utils.time_of_day import normalize, to_seconds_since_midnight

logger = logging.getLogger(__name__)


def window_conflict(
    start_a: int,
    end_a: int,
    start_b: int,
    end_b: int,
    gap_seconds: int,
) -> Optional[str]:
    """
    Classify two half-open windows given in seconds since midnight.

    Returns "overlap" when they intersect, "gap" when they are disjoint but
    closer than ``gap_seconds`` on either side, and None when they can coexist.
    """
    if start_a < end_b and start_b < end_a:
        return "overlap"
    if end_a <= start_b and start_b - end_a < gap_seconds:
        return "gap"
    if end_b <= start_a and start_a - end_b < gap_seconds:
        return "gap"
    return None


def find_conflicts(
    db: Session,
    room_id: UUID,
    show_date: date,
    candidate_start: Any,
    candidate_end: Any,
    exclude_showtime_id: Optional[UUID] = None,
    gap_minutes: Optional[int] = None,
) -> List[ConflictingShowtime]:
    """
    Every non-hidden showtime in the room on ``show_date`` that overlaps
    ``[candidate_start, candidate_end)`` or sits within the inter-screening gap.

    An empty result means the window fits as of this read; the commit is still
    guarded by the store (room lock and unique slot index).
    """
    if gap_minutes is None:
        gap_minutes = settings.INTER_SCREENING_GAP_MINUTES

    start = to_seconds_since_midnight(candidate_start)
    end = to_seconds_since_midnight(candidate_end)
    gap_seconds = gap_minutes * 60

    conflicts = []
    for showtime, movie_title in facts.list_by_room_and_date(
        db, room_id, show_date, exclude_showtime_id=exclude_showtime_id
    ):
        existing_start = to_seconds_since_midnight(showtime.start_time)
        existing_end = to_seconds_since_midnight(showtime.end_time)
        reason = window_conflict(start, end, existing_start, existing_end, gap_seconds)
        if reason:
            conflicts.append(
                ConflictingShowtime(
                    showtime_id=showtime.id,
                    movie_title=movie_title,
                    start_time=normalize(showtime.start_time),
                    end_time=normalize(showtime.end_time),
                    reason=reason,
                )
            )

    if conflicts:
        logger.debug(
            "Window %s-%s in room %s on %s conflicts with %d showtime(s).",
            normalize(candidate_start), normalize(candidate_end), room_id, show_date, len(conflicts),
        )
    return conflicts
