"""
Showtime scheduling engine.

Every create/update goes through the same pipeline:

  1. facts: movie exists, room exists and is Active, room has seats
  2. temporal: (date, start) is not in the past
  3. end time: start + runtime + cleanup buffer, must not pass closing time
  4. premiere: no showtime between release and premiere without override
  5. duplicate: same movie/room/date/start not already scheduled
  6. conflicts: no overlap or short gap in the room; suggest free slots
  7. commit: persisted as Scheduled with the room's active seat count

Failures are raised as ``SchedulingError`` subclasses and never retried here.
"""
import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, exists
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    BookingObligationError,
    DuplicateShowtimeError,
    EarlyPremiereError,
    NotFoundError,
    ScheduleConflictError,
    ValidationError,
)
from app.models.movie import Movie, MovieStatus
from app.models.room import CinemaRoom, RoomStatus
from app.models.showtime import Showtime, ShowtimeStatus
from app.models.ticket_booking import ACTIVE_BOOKING_STATUSES, BookingStatus, TicketBooking
from app.schemas.showtime import AvailableSlot, ShowtimeCreate, ShowtimeUpdate
from app.services import facts
from app.services.conflicts import find_conflicts
from app.services.slots import find_available_slots
from app.utils.time_of_day import (
    TimeFormatCache,
    add_minutes,
    crosses_midnight,
    normalize,
    to_seconds_since_midnight,
    to_time,
)

logger = logging.getLogger(__name__)

VALID_STATUSES = tuple(s.value for s in ShowtimeStatus)
PLACEMENT_FIELDS = ("movie_id", "room_id", "show_date", "start_time")
SLOT_TAKEN_MESSAGE = "Another showtime already occupies this room at that start time"


class ShowtimeService:
    """
    Scheduling engine bound to one session.

    ``clock`` returns the venue's naive local time; tests pass a fixed one.
    ``time_cache`` is the normalization cache shared by this engine's calls.
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = datetime.now,
        time_cache: Optional[TimeFormatCache] = None,
    ):
        self.db = db
        self.clock = clock
        self.time_cache = time_cache or TimeFormatCache(settings.TIME_FORMAT_CACHE_SIZE)

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _load_facts(self, movie_id: UUID, room_id: UUID) -> Tuple[Movie, CinemaRoom, int]:
        movie = facts.get_movie(self.db, movie_id)
        if not movie:
            raise NotFoundError(f"Movie {movie_id} not found")

        room = facts.get_room(self.db, room_id)
        if not room:
            raise NotFoundError(f"Cinema room {room_id} not found")
        if room.status != RoomStatus.ACTIVE.value:
            raise ValidationError(f"Cinema room '{room.name}' is not active")

        seat_count = facts.get_active_seat_count(self.db, room_id)
        if seat_count == 0:
            raise ValidationError(f"Cinema room '{room.name}' has no active seats configured")

        return movie, room, seat_count

    def _parse_start(self, raw_start) -> str:
        start = normalize(raw_start, cache=self.time_cache)
        if start is None:
            raise ValidationError(f"Invalid start time: {raw_start!r}")
        return start

    def _check_not_in_past(self, show_date: date, start: str) -> None:
        if datetime.combine(show_date, to_time(start)) < self.clock():
            raise ValidationError("Cannot schedule a showtime in the past")

    def _compute_end(self, movie: Movie, start: str) -> Tuple[str, int]:
        """Return (end time, occupied minutes) for ``movie`` starting at ``start``."""
        if not movie.duration_minutes or movie.duration_minutes <= 0:
            raise ValidationError(f"Movie '{movie.title}' has no valid duration")

        occupied = movie.duration_minutes + settings.CLEANUP_BUFFER_MINUTES
        closing = settings.VENUE_CLOSING_TIME
        if crosses_midnight(start, occupied):
            raise ValidationError(f"Showtime would end after closing time {closing}")

        end = add_minutes(start, occupied)
        if to_seconds_since_midnight(end) > to_seconds_since_midnight(closing):
            raise ValidationError(f"Showtime would end after closing time {closing}")
        return end, occupied

    @staticmethod
    def _check_premiere(movie: Movie, show_date: date, allow_early_premiere: bool) -> None:
        if not movie.premiere_date or allow_early_premiere:
            return
        released = movie.release_date is None or movie.release_date <= show_date
        if released and show_date < movie.premiere_date:
            raise EarlyPremiereError(
                f"'{movie.title}' premieres on {movie.premiere_date}; "
                f"scheduling on {show_date} requires an early premiere override"
            )

    def _check_duplicate(
        self,
        movie_id: UUID,
        room_id: UUID,
        show_date: date,
        start: str,
        exclude_showtime_id: Optional[UUID] = None,
    ) -> None:
        duplicate = facts.find_duplicate(
            self.db, movie_id, room_id, show_date, to_time(start),
            exclude_showtime_id=exclude_showtime_id,
        )
        if duplicate:
            raise DuplicateShowtimeError(
                f"Showtime already exists for this movie in this room on {show_date} at {start} "
                f"(showtime {duplicate.id})"
            )

    def _suggest_slots(
        self,
        room_id: UUID,
        show_date: date,
        occupied_minutes: int,
        exclude_showtime_id: Optional[UUID] = None,
    ) -> List[AvailableSlot]:
        slots = find_available_slots(
            self.db, room_id, show_date, occupied_minutes,
            exclude_showtime_id=exclude_showtime_id,
        )
        now = self.clock()
        if show_date == now.date():
            slots = [s for s in slots if to_time(s.start) >= now.time()]
        elif show_date < now.date():
            slots = []
        return slots[: settings.MAX_SUGGESTED_SLOTS]

    def _check_conflicts(
        self,
        room_id: UUID,
        show_date: date,
        start: str,
        end: str,
        occupied_minutes: int,
        exclude_showtime_id: Optional[UUID] = None,
    ) -> None:
        # Serializes placements into this room until commit
        facts.lock_room(self.db, room_id)

        conflicts = find_conflicts(
            self.db, room_id, show_date, start, end,
            exclude_showtime_id=exclude_showtime_id,
        )
        if not conflicts:
            return

        suggestions = self._suggest_slots(
            room_id, show_date, occupied_minutes, exclude_showtime_id=exclude_showtime_id
        )
        blocking = ", ".join(
            f"'{c.movie_title}' {c.start_time}-{c.end_time}" for c in conflicts
        )
        message = f"Showtime {start}-{end} on {show_date} conflicts with {blocking}."
        if not suggestions:
            message += " No free slots are left in this room on that date."

        raise ScheduleConflictError(
            message,
            conflicts=[c.model_dump(mode="json") for c in conflicts],
            suggested_slots=[s.model_dump() for s in suggestions],
        )

    def _promote_movie(self, movie: Movie, show_date: date) -> None:
        if movie.status == MovieStatus.COMING_SOON.value and show_date <= self.clock().date():
            movie.status = MovieStatus.NOW_SHOWING.value
            logger.info("Movie %s is now showing.", movie.id)

    def _create_or_duplicate(self, **fields) -> Showtime:
        try:
            return facts.create_showtime(self.db, **fields)
        except IntegrityError:
            self.db.rollback()
            raise DuplicateShowtimeError(SLOT_TAKEN_MESSAGE)

    def _flush_or_duplicate(self) -> None:
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateShowtimeError(SLOT_TAKEN_MESSAGE)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def schedule_showtime(
        self,
        request: ShowtimeCreate,
        actor_id: Optional[UUID],
        allow_early_premiere: bool = False,
    ) -> Showtime:
        movie, room, seat_count = self._load_facts(request.movie_id, request.room_id)

        start = self._parse_start(request.start_time)
        self._check_not_in_past(request.show_date, start)
        end, occupied = self._compute_end(movie, start)
        self._check_premiere(movie, request.show_date, allow_early_premiere)
        self._check_duplicate(movie.id, room.id, request.show_date, start)
        self._check_conflicts(room.id, request.show_date, start, end, occupied)

        showtime = self._create_or_duplicate(
            movie_id=movie.id,
            room_id=room.id,
            show_date=request.show_date,
            start_time=to_time(start),
            end_time=to_time(end),
            status=ShowtimeStatus.SCHEDULED.value,
            capacity_available=seat_count,
            created_by=actor_id,
        )

        self._promote_movie(movie, request.show_date)
        self.db.commit()
        self.db.refresh(showtime)

        logger.info(
            "Scheduled showtime %s: movie %s in room %s on %s %s-%s (by %s).",
            showtime.id, movie.id, room.id, request.show_date, start, end, actor_id,
        )
        return showtime

    def update_showtime(
        self,
        showtime_id: UUID,
        request: ShowtimeUpdate,
        actor_id: Optional[UUID],
    ) -> Showtime:
        showtime = self.get_showtime(showtime_id)

        active = facts.count_bookings(self.db, showtime.id, ACTIVE_BOOKING_STATUSES)
        if active:
            raise BookingObligationError(
                f"Showtime has {active} pending or confirmed booking(s) and cannot be changed",
                blocking_bookings=active,
            )

        updates = request.model_dump(exclude_unset=True)

        new_status = updates.get("status", showtime.status)
        if new_status not in VALID_STATUSES:
            raise ValidationError(
                f"Invalid status '{new_status}'. Must be one of: {', '.join(VALID_STATUSES)}"
            )

        movie_id = updates.get("movie_id") or showtime.movie_id
        room_id = updates.get("room_id") or showtime.room_id
        show_date = updates.get("show_date") or showtime.show_date
        raw_start = updates.get("start_time") or showtime.start_time

        placement_changed = any(updates.get(f) is not None for f in PLACEMENT_FIELDS)
        rejoins_schedule = (
            new_status == ShowtimeStatus.SCHEDULED.value
            and showtime.status != ShowtimeStatus.SCHEDULED.value
        )

        if placement_changed or rejoins_schedule:
            movie, room, seat_count = self._load_facts(movie_id, room_id)
            start = self._parse_start(raw_start)
            self._check_not_in_past(show_date, start)
            end, occupied = self._compute_end(movie, start)
            if new_status != ShowtimeStatus.HIDDEN.value:
                self._check_conflicts(
                    room.id, show_date, start, end, occupied,
                    exclude_showtime_id=showtime.id,
                )

            if room.id != showtime.room_id:
                showtime.capacity_available = seat_count
            showtime.movie_id = movie.id
            showtime.room_id = room.id
            showtime.show_date = show_date
            showtime.start_time = to_time(start)
            showtime.end_time = to_time(end)

        showtime.status = new_status
        self._flush_or_duplicate()
        self.db.commit()
        self.db.refresh(showtime)

        logger.info("Updated showtime %s (by %s): %s", showtime.id, actor_id, sorted(updates))
        return showtime

    def get_showtime(self, showtime_id: UUID) -> Showtime:
        showtime = facts.get_showtime(self.db, showtime_id)
        if not showtime:
            raise NotFoundError(f"Showtime {showtime_id} not found")
        return showtime

    def hide_showtime(self, showtime_id: UUID, actor_id: Optional[UUID]) -> Showtime:
        showtime = self.get_showtime(showtime_id)
        if showtime.status == ShowtimeStatus.HIDDEN.value:
            return showtime

        pending = facts.count_bookings(self.db, showtime.id, (BookingStatus.PENDING.value,))
        if pending:
            raise BookingObligationError(
                f"Showtime has {pending} pending booking(s)",
                blocking_bookings=pending,
            )

        showtime.status = ShowtimeStatus.HIDDEN.value
        self.db.commit()
        self.db.refresh(showtime)
        logger.info("Hid showtime %s (by %s).", showtime.id, actor_id)
        return showtime

    def hide_showtimes_for_date(
        self, room_id: UUID, show_date: date, actor_id: Optional[UUID]
    ) -> int:
        """
        Hide every visible showtime of a room on a date. All or nothing: a
        single pending booking on any of them rejects the whole batch.
        """
        room = facts.get_room(self.db, room_id)
        if not room:
            raise NotFoundError(f"Cinema room {room_id} not found")

        showtime_ids = [s.id for s, _ in facts.list_by_room_and_date(self.db, room_id, show_date)]
        if not showtime_ids:
            return 0

        pending = facts.count_bookings_for(
            self.db, showtime_ids, (BookingStatus.PENDING.value,)
        )
        if pending:
            raise BookingObligationError(
                f"{pending} pending booking(s) on showtimes in '{room.name}' on {show_date}",
                blocking_bookings=pending,
            )

        count = facts.batch_hide(self.db, showtime_ids)
        self.db.commit()
        logger.info(
            "Hid %d showtime(s) in room %s on %s (by %s).", count, room_id, show_date, actor_id
        )
        return count

    # ------------------------------------------------------------------
    # Expiration
    # ------------------------------------------------------------------

    def find_expired(self) -> List[Showtime]:
        """
        Showtimes whose window plus the grace period has elapsed.

        Past dates expire unconditionally; today's showtimes once
        now >= end_time + grace. Showtimes with pending bookings are left for
        the booking expiration job to settle first.
        """
        now = self.clock()
        today = now.date()
        grace_seconds = settings.EXPIRATION_GRACE_MINUTES * 60
        now_seconds = to_seconds_since_midnight(now)

        has_pending = exists().where(
            and_(
                TicketBooking.showtime_id == Showtime.id,
                TicketBooking.status == BookingStatus.PENDING.value,
            )
        )
        candidates = (
            self.db.query(Showtime)
            .filter(
                Showtime.show_date <= today,
                Showtime.status.notin_(
                    [ShowtimeStatus.HIDDEN.value, ShowtimeStatus.CANCELLED.value]
                ),
                ~has_pending,
            )
            .all()
        )

        expired = []
        for showtime in candidates:
            if showtime.show_date < today:
                expired.append(showtime)
            elif now_seconds >= to_seconds_since_midnight(showtime.end_time) + grace_seconds:
                expired.append(showtime)
        return expired

    def auto_hide_expired(self) -> int:
        """Hide every expired showtime in one transaction; returns how many were hidden."""
        expired_ids = [s.id for s in self.find_expired()]
        if not expired_ids:
            return 0

        try:
            count = facts.batch_hide(self.db, expired_ids)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                "Failed to hide %d expired showtime(s): %s",
                len(expired_ids), ", ".join(str(i) for i in expired_ids),
            )
            raise
        return count
