"""
Data access for the scheduling engine.

Movie, room, seat and booking lookups are read-only facts owned by other parts
of the ticketing system. Showtime functions make up the screening store.
"""
from datetime import date, time
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.movie import Movie
from app.models.room import CinemaRoom
from app.models.seat_layout import SeatLayout
from app.models.showtime import Showtime, ShowtimeStatus
from app.models.ticket_booking import TicketBooking


# ---------------------------------------------------------------------------
# Movie / room / booking facts
# ---------------------------------------------------------------------------


def get_movie(db: Session, movie_id: UUID) -> Optional[Movie]:
    return db.query(Movie).filter(Movie.id == movie_id).first()


def get_room(db: Session, room_id: UUID) -> Optional[CinemaRoom]:
    return db.query(CinemaRoom).filter(CinemaRoom.id == room_id).first()


def get_active_seat_count(db: Session, room_id: UUID) -> int:
    return (
        db.query(func.count(SeatLayout.id))
        .filter(SeatLayout.room_id == room_id, SeatLayout.is_active == True)  # noqa: E712
        .scalar()
    ) or 0


def count_bookings(db: Session, showtime_id: UUID, statuses: Iterable[str]) -> int:
    return count_bookings_for(db, [showtime_id], statuses)


def count_bookings_for(db: Session, showtime_ids: Sequence[UUID], statuses: Iterable[str]) -> int:
    return (
        db.query(func.count(TicketBooking.id))
        .filter(
            TicketBooking.showtime_id.in_(list(showtime_ids)),
            TicketBooking.status.in_(list(statuses)),
        )
        .scalar()
    ) or 0


def lock_room(db: Session, room_id: UUID) -> Optional[CinemaRoom]:
    """
    Take a row lock on the room for the rest of the transaction.

    Concurrent placements into the same room queue up here on Postgres, so the
    conflict read that follows cannot be invalidated before commit. Backends
    without FOR UPDATE ignore the clause.
    """
    return (
        db.query(CinemaRoom)
        .filter(CinemaRoom.id == room_id)
        .with_for_update()
        .first()
    )


# ---------------------------------------------------------------------------
# Screening store
# ---------------------------------------------------------------------------


def get_showtime(db: Session, showtime_id: UUID) -> Optional[Showtime]:
    return db.query(Showtime).filter(Showtime.id == showtime_id).first()


def list_by_room_and_date(
    db: Session,
    room_id: UUID,
    show_date: date,
    exclude_showtime_id: Optional[UUID] = None,
) -> List[Tuple[Showtime, str]]:
    """Non-hidden showtimes of a room on a date with their movie titles, by start time."""
    query = (
        db.query(Showtime, Movie.title)
        .join(Movie, Movie.id == Showtime.movie_id)
        .filter(
            Showtime.room_id == room_id,
            Showtime.show_date == show_date,
            Showtime.status != ShowtimeStatus.HIDDEN.value,
        )
    )
    if exclude_showtime_id:
        query = query.filter(Showtime.id != exclude_showtime_id)

    return query.order_by(Showtime.start_time).all()


def find_duplicate(
    db: Session,
    movie_id: UUID,
    room_id: UUID,
    show_date: date,
    start_time: time,
    exclude_showtime_id: Optional[UUID] = None,
) -> Optional[Showtime]:
    query = db.query(Showtime).filter(
        Showtime.movie_id == movie_id,
        Showtime.room_id == room_id,
        Showtime.show_date == show_date,
        Showtime.start_time == start_time,
        Showtime.status != ShowtimeStatus.HIDDEN.value,
    )
    if exclude_showtime_id:
        query = query.filter(Showtime.id != exclude_showtime_id)
    return query.first()


def create_showtime(db: Session, **fields) -> Showtime:
    showtime = Showtime(**fields)
    db.add(showtime)
    db.flush()  # surface constraint violations before the caller commits
    return showtime


def batch_hide(db: Session, showtime_ids: Sequence[UUID]) -> int:
    """Mark the given showtimes Hidden in the caller's transaction."""
    if not showtime_ids:
        return 0
    return (
        db.query(Showtime)
        .filter(
            Showtime.id.in_(list(showtime_ids)),
            Showtime.status != ShowtimeStatus.HIDDEN.value,
        )
        .update(
            {"status": ShowtimeStatus.HIDDEN.value, "updated_at": func.now()},
            synchronize_session="fetch",
        )
    )
