import os

# Point the app at SQLite before anything imports the settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SHOWTIME_SWEEPER_ENABLED", "false")

from datetime import date, datetime, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.models import (
    Movie, MovieStatus, CinemaRoom, RoomStatus, SeatLayout,
    Showtime, ShowtimeStatus, TicketBooking, BookingStatus,
)
from app.services.showtimes import ShowtimeService

# Venue clock used by the engine tests: Tuesday 2024-01-02, 08:00
NOW = datetime(2024, 1, 2, 8, 0, 0)
TODAY = NOW.date()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def service(db):
    return ShowtimeService(db, clock=lambda: NOW)


@pytest.fixture
def make_movie(db):
    def _make(
        title="Dune: Part Two",
        duration_minutes=120,
        release_date=None,
        premiere_date=None,
        status=MovieStatus.NOW_SHOWING.value,
    ):
        movie = Movie(
            title=title,
            duration_minutes=duration_minutes,
            release_date=release_date,
            premiere_date=premiere_date,
            status=status,
        )
        db.add(movie)
        db.commit()
        db.refresh(movie)
        return movie

    return _make


@pytest.fixture
def make_room(db):
    def _make(name="Room 1", seats=10, status=RoomStatus.ACTIVE.value, inactive_seats=0):
        room = CinemaRoom(name=name, room_type="2D", status=status)
        db.add(room)
        db.flush()
        for i in range(seats + inactive_seats):
            db.add(
                SeatLayout(
                    room_id=room.id,
                    row_label=chr(ord("A") + i // 10),
                    column_number=i % 10 + 1,
                    is_active=i < seats,
                )
            )
        db.commit()
        db.refresh(room)
        return room

    return _make


@pytest.fixture
def make_showtime(db):
    """Insert a showtime row directly, bypassing the engine."""

    def _make(movie, room, show_date, start, end, status=ShowtimeStatus.SCHEDULED.value):
        showtime = Showtime(
            movie_id=movie.id,
            room_id=room.id,
            show_date=show_date,
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            status=status,
            capacity_available=10,
        )
        db.add(showtime)
        db.commit()
        db.refresh(showtime)
        return showtime

    return _make


@pytest.fixture
def make_booking(db):
    def _make(showtime, status=BookingStatus.PENDING.value):
        booking = TicketBooking(showtime_id=showtime.id, status=status, total_amount=90000)
        db.add(booking)
        db.commit()
        return booking

    return _make
