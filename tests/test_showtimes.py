from datetime import date, time, timedelta
from uuid import uuid4

import pytest

from app.core.exceptions import (
    BookingObligationError,
    DuplicateShowtimeError,
    EarlyPremiereError,
    NotFoundError,
    ScheduleConflictError,
    ValidationError,
)
from app.models import BookingStatus, MovieStatus, RoomStatus, Showtime, ShowtimeStatus
from app.schemas.showtime import ShowtimeCreate, ShowtimeUpdate
from app.services import facts

TODAY = date(2024, 1, 2)         # date of the fixed engine clock
SHOW_DATE = date(2024, 1, 5)
ACTOR = uuid4()


def _request(movie, room, start="10:00", show_date=SHOW_DATE):
    return ShowtimeCreate(movie_id=movie.id, room_id=room.id, show_date=show_date, start_time=start)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def test_schedule_showtime_derives_end_time_and_capacity(service, make_movie, make_room):
    movie = make_movie(duration_minutes=120)
    room = make_room(seats=12, inactive_seats=3)

    showtime = service.schedule_showtime(_request(movie, room, "10:00"), ACTOR)

    assert showtime.start_time == time(10, 0)
    assert showtime.end_time == time(12, 15)
    assert showtime.status == ShowtimeStatus.SCHEDULED.value
    assert showtime.capacity_available == 12
    assert showtime.created_by == ACTOR


def test_schedule_accepts_heterogeneous_start_times(service, make_movie, make_room):
    movie, room = make_movie(duration_minutes=60), make_room()

    first = service.schedule_showtime(_request(movie, room, {"hours": 9, "minutes": 0}), ACTOR)
    second = service.schedule_showtime(_request(movie, room, "2024-01-05T12:00:00.000Z"), ACTOR)

    assert first.start_time == time(9, 0)
    assert second.start_time == time(12, 0)


def test_malformed_start_time_is_rejected(service, make_movie, make_room):
    with pytest.raises(ValidationError, match="Invalid start time"):
        service.schedule_showtime(_request(make_movie(), make_room(), "25:61"), ACTOR)


def test_missing_movie_or_room(service, make_movie, make_room):
    movie, room = make_movie(), make_room()

    with pytest.raises(NotFoundError, match="Movie"):
        service.schedule_showtime(
            ShowtimeCreate(movie_id=uuid4(), room_id=room.id, show_date=SHOW_DATE, start_time="10:00"),
            ACTOR,
        )
    with pytest.raises(NotFoundError, match="Cinema room"):
        service.schedule_showtime(
            ShowtimeCreate(movie_id=movie.id, room_id=uuid4(), show_date=SHOW_DATE, start_time="10:00"),
            ACTOR,
        )


def test_room_must_be_active_and_have_seats(service, make_movie, make_room):
    movie = make_movie()

    with pytest.raises(ValidationError, match="not active"):
        service.schedule_showtime(_request(movie, make_room(status=RoomStatus.MAINTENANCE.value)), ACTOR)
    with pytest.raises(ValidationError, match="no active seats"):
        service.schedule_showtime(_request(movie, make_room(seats=0, inactive_seats=5)), ACTOR)


def test_yesterday_is_rejected_regardless_of_time(service, make_movie, make_room):
    movie, room = make_movie(), make_room()
    yesterday = TODAY - timedelta(days=1)

    for start in ("09:00", "22:00"):
        with pytest.raises(ValidationError, match="past"):
            service.schedule_showtime(_request(movie, room, start, show_date=yesterday), ACTOR)


def test_earlier_today_is_rejected(service, make_movie, make_room):
    # The clock reads 08:00
    with pytest.raises(ValidationError, match="past"):
        service.schedule_showtime(_request(make_movie(), make_room(), "07:30", show_date=TODAY), ACTOR)


def test_showtime_may_not_run_past_closing(service, make_movie, make_room):
    room = make_room()

    with pytest.raises(ValidationError, match="closing"):
        service.schedule_showtime(_request(make_movie(duration_minutes=20), room, "23:50"), ACTOR)
    with pytest.raises(ValidationError, match="closing"):
        service.schedule_showtime(_request(make_movie(duration_minutes=45), room, "23:00"), ACTOR)

    showtime = service.schedule_showtime(_request(make_movie(duration_minutes=44), room, "23:00"), ACTOR)
    assert showtime.end_time == time(23, 59)


def test_premiere_gating_requires_override(service, make_movie, make_room):
    movie = make_movie(release_date=date(2024, 1, 1), premiere_date=date(2024, 1, 10))
    room = make_room()

    with pytest.raises(EarlyPremiereError):
        service.schedule_showtime(_request(movie, room), ACTOR)

    showtime = service.schedule_showtime(_request(movie, room), ACTOR, allow_early_premiere=True)
    assert showtime.show_date == SHOW_DATE


def test_premiere_date_itself_is_not_gated(service, make_movie, make_room):
    movie = make_movie(release_date=date(2024, 1, 1), premiere_date=SHOW_DATE)

    assert service.schedule_showtime(_request(movie, make_room()), ACTOR).id


def test_exact_duplicate_is_rejected(service, make_movie, make_room):
    movie, room = make_movie(), make_room()
    service.schedule_showtime(_request(movie, room), ACTOR)

    with pytest.raises(DuplicateShowtimeError, match="already exists"):
        service.schedule_showtime(_request(movie, room), ACTOR)


def test_conflict_lists_blockers_and_suggests_slots_after_the_gap(
    service, make_movie, make_room, make_showtime
):
    room = make_room()
    make_showtime(make_movie("Dune"), room, SHOW_DATE, "10:00", "12:15")
    short = make_movie("Up", duration_minutes=75)        # occupies 90 minutes

    with pytest.raises(ScheduleConflictError) as excinfo:
        service.schedule_showtime(_request(short, room, "12:16"), ACTOR)

    error = excinfo.value
    assert [c["movie_title"] for c in error.conflicts] == ["Dune"]
    assert error.conflicts[0]["reason"] == "gap"
    assert len(error.suggested_slots) == 5
    assert error.suggested_slots[0] == {"start": "12:30:00", "end": "14:00:00"}
    assert all(slot["start"] >= "12:30:00" for slot in error.suggested_slots)

    # The suggestion is accepted when resubmitted
    accepted = service.schedule_showtime(_request(short, room, "12:30"), ACTOR)
    assert accepted.end_time == time(14, 0)


def test_conflict_without_any_free_slot_says_so(service, make_movie, make_room, make_showtime):
    room = make_room()
    make_showtime(make_movie("Marathon", duration_minutes=825), room, SHOW_DATE, "09:00", "23:00")

    with pytest.raises(ScheduleConflictError, match="No free slots") as excinfo:
        service.schedule_showtime(_request(make_movie(), room, "12:00"), ACTOR)
    assert excinfo.value.suggested_slots == []


def test_store_rejects_the_loser_of_a_race(
    service, db, make_movie, make_room, monkeypatch
):
    room = make_room()
    service.schedule_showtime(_request(make_movie("Dune"), room), ACTOR)

    # A second request that read the room before the first committed
    monkeypatch.setattr("app.services.showtimes.find_conflicts", lambda *a, **k: [])
    monkeypatch.setattr(facts, "find_duplicate", lambda *a, **k: None)

    with pytest.raises(DuplicateShowtimeError):
        service.schedule_showtime(_request(make_movie("Up"), room), ACTOR)

    scheduled = db.query(Showtime).filter(Showtime.room_id == room.id).all()
    assert len(scheduled) == 1


def test_hidden_slot_can_be_reused(service, make_movie, make_room, make_showtime):
    movie, room = make_movie(), make_room()
    make_showtime(movie, room, SHOW_DATE, "10:00", "12:15", status=ShowtimeStatus.HIDDEN.value)

    assert service.schedule_showtime(_request(movie, room), ACTOR).status == "Scheduled"


def test_coming_soon_movie_starts_showing_when_scheduled_today(service, db, make_movie, make_room):
    movie = make_movie(status=MovieStatus.COMING_SOON.value)

    service.schedule_showtime(_request(movie, make_room(), "10:00", show_date=TODAY), ACTOR)

    db.refresh(movie)
    assert movie.status == MovieStatus.NOW_SHOWING.value


def test_future_showtime_leaves_movie_status_alone(service, db, make_movie, make_room):
    coming = make_movie(status=MovieStatus.COMING_SOON.value)
    inactive = make_movie("Old", status=MovieStatus.INACTIVE.value)
    room = make_room()

    service.schedule_showtime(_request(coming, room, "10:00"), ACTOR)
    service.schedule_showtime(_request(inactive, room, "10:00", show_date=TODAY), ACTOR)

    db.refresh(coming)
    db.refresh(inactive)
    assert coming.status == MovieStatus.COMING_SOON.value
    assert inactive.status == MovieStatus.INACTIVE.value


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


def test_update_moves_the_window_and_recomputes_end(service, make_movie, make_room, make_showtime):
    movie, room = make_movie(), make_room()
    showtime = make_showtime(movie, room, SHOW_DATE, "10:00", "12:15")

    updated = service.update_showtime(showtime.id, ShowtimeUpdate(start_time="10:30"), ACTOR)

    assert updated.start_time == time(10, 30)
    assert updated.end_time == time(12, 45)


def test_update_into_another_showtime_conflicts(service, make_movie, make_room, make_showtime):
    movie, room = make_movie(), make_room()
    showtime = make_showtime(movie, room, SHOW_DATE, "10:00", "12:15")
    make_showtime(movie, room, SHOW_DATE, "13:00", "15:15")

    with pytest.raises(ScheduleConflictError):
        service.update_showtime(showtime.id, ShowtimeUpdate(start_time="11:00"), ACTOR)


def test_update_to_another_room_refreshes_capacity(service, make_movie, make_room, make_showtime):
    movie = make_movie()
    showtime = make_showtime(movie, make_room(seats=10), SHOW_DATE, "10:00", "12:15")
    bigger = make_room("Room 2", seats=30)

    updated = service.update_showtime(showtime.id, ShowtimeUpdate(room_id=bigger.id), ACTOR)

    assert updated.room_id == bigger.id
    assert updated.capacity_available == 30


@pytest.mark.parametrize("status", [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value])
def test_update_is_blocked_by_active_bookings(
    service, make_movie, make_room, make_showtime, make_booking, status
):
    showtime = make_showtime(make_movie(), make_room(), SHOW_DATE, "10:00", "12:15")
    make_booking(showtime, status=status)

    with pytest.raises(BookingObligationError) as excinfo:
        service.update_showtime(showtime.id, ShowtimeUpdate(start_time="14:00"), ACTOR)
    assert excinfo.value.blocking_bookings == 1


def test_update_ignores_settled_bookings(
    service, make_movie, make_room, make_showtime, make_booking
):
    showtime = make_showtime(make_movie(), make_room(), SHOW_DATE, "10:00", "12:15")
    make_booking(showtime, status=BookingStatus.CANCELLED.value)

    assert service.update_showtime(showtime.id, ShowtimeUpdate(start_time="14:00"), ACTOR).start_time == time(14, 0)


def test_update_rejects_unknown_status(service, make_movie, make_room, make_showtime):
    showtime = make_showtime(make_movie(), make_room(), SHOW_DATE, "10:00", "12:15")

    with pytest.raises(ValidationError, match="Invalid status"):
        service.update_showtime(showtime.id, ShowtimeUpdate(status="Deleted"), ACTOR)


def test_update_status_only_skips_schedule_checks(service, make_movie, make_room, make_showtime):
    # A past showtime can still be cancelled
    showtime = make_showtime(make_movie(), make_room(), date(2023, 12, 30), "10:00", "12:15")

    updated = service.update_showtime(showtime.id, ShowtimeUpdate(status="Cancelled"), ACTOR)
    assert updated.status == ShowtimeStatus.CANCELLED.value


def test_update_into_the_past_is_rejected(service, make_movie, make_room, make_showtime):
    showtime = make_showtime(make_movie(), make_room(), SHOW_DATE, "10:00", "12:15")

    with pytest.raises(ValidationError, match="past"):
        service.update_showtime(showtime.id, ShowtimeUpdate(show_date=date(2024, 1, 1)), ACTOR)


def test_update_unknown_showtime(service):
    with pytest.raises(NotFoundError):
        service.update_showtime(uuid4(), ShowtimeUpdate(start_time="10:00"), ACTOR)


# ---------------------------------------------------------------------------
# Hide
# ---------------------------------------------------------------------------


def test_hide_reports_pending_bookings(service, make_movie, make_room, make_showtime, make_booking):
    showtime = make_showtime(make_movie(), make_room(), SHOW_DATE, "10:00", "12:15")
    make_booking(showtime)
    make_booking(showtime)

    with pytest.raises(BookingObligationError, match="2 pending") as excinfo:
        service.hide_showtime(showtime.id, ACTOR)
    assert excinfo.value.blocking_bookings == 2


def test_hide_with_only_confirmed_bookings(service, make_movie, make_room, make_showtime, make_booking):
    showtime = make_showtime(make_movie(), make_room(), SHOW_DATE, "10:00", "12:15")
    make_booking(showtime, status=BookingStatus.CONFIRMED.value)

    assert service.hide_showtime(showtime.id, ACTOR).status == ShowtimeStatus.HIDDEN.value


def test_hide_unknown_showtime(service):
    with pytest.raises(NotFoundError):
        service.hide_showtime(uuid4(), ACTOR)


def test_hiding_a_hidden_showtime_is_a_no_op(service, make_movie, make_room, make_showtime, make_booking):
    showtime = make_showtime(make_movie(), make_room(), SHOW_DATE, "10:00", "12:15",
                             status=ShowtimeStatus.HIDDEN.value)
    make_booking(showtime)

    assert service.hide_showtime(showtime.id, ACTOR).status == ShowtimeStatus.HIDDEN.value


def test_get_showtime(service, make_movie, make_room, make_showtime):
    showtime = make_showtime(make_movie(), make_room(), SHOW_DATE, "10:00", "12:15")

    assert service.get_showtime(showtime.id).id == showtime.id
    with pytest.raises(NotFoundError):
        service.get_showtime(uuid4())


# ---------------------------------------------------------------------------
# Hide a whole day in a room
# ---------------------------------------------------------------------------


def test_hide_showtimes_for_date_only_touches_that_room_and_date(
    service, db, make_movie, make_room, make_showtime
):
    movie, room, other_room = make_movie(), make_room(), make_room("Room 2")
    morning = make_showtime(movie, room, SHOW_DATE, "10:00", "12:15")
    evening = make_showtime(movie, room, SHOW_DATE, "19:00", "21:15")
    next_day = make_showtime(movie, room, SHOW_DATE + timedelta(days=1), "10:00", "12:15")
    elsewhere = make_showtime(movie, other_room, SHOW_DATE, "10:00", "12:15")

    assert service.hide_showtimes_for_date(room.id, SHOW_DATE, ACTOR) == 2

    db.expire_all()
    assert db.get(Showtime, morning.id).status == ShowtimeStatus.HIDDEN.value
    assert db.get(Showtime, evening.id).status == ShowtimeStatus.HIDDEN.value
    assert db.get(Showtime, next_day.id).status == ShowtimeStatus.SCHEDULED.value
    assert db.get(Showtime, elsewhere.id).status == ShowtimeStatus.SCHEDULED.value

    assert service.hide_showtimes_for_date(room.id, SHOW_DATE, ACTOR) == 0


def test_hide_showtimes_for_date_is_all_or_nothing(
    service, db, make_movie, make_room, make_showtime, make_booking
):
    movie, room = make_movie(), make_room()
    free = make_showtime(movie, room, SHOW_DATE, "10:00", "12:15")
    held = make_showtime(movie, room, SHOW_DATE, "19:00", "21:15")
    make_booking(held)

    with pytest.raises(BookingObligationError) as excinfo:
        service.hide_showtimes_for_date(room.id, SHOW_DATE, ACTOR)
    assert excinfo.value.blocking_bookings == 1

    db.expire_all()
    assert db.get(Showtime, free.id).status == ShowtimeStatus.SCHEDULED.value
    assert db.get(Showtime, held.id).status == ShowtimeStatus.SCHEDULED.value


def test_hide_showtimes_for_unknown_room(service):
    with pytest.raises(NotFoundError):
        service.hide_showtimes_for_date(uuid4(), SHOW_DATE, ACTOR)
