from uuid import UUID
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_actor_id
from app.core.exceptions import NotFoundError
from app.core.config import settings
from app.schemas.common import ErrorResponse, ScheduleConflictResponse, BookingObligationResponse
from app.schemas.showtime import (
    ShowtimeCreate,
    ShowtimeUpdate,
    Showtime as ShowtimeSchema,
    HideShowtimeResponse,
    BulkHideResponse,
    RoomScheduleResponse,
    AvailableSlotsResponse,
    SweepResult,
    SweeperStatus,
)
from app.services import facts
from app.services.showtimes import ShowtimeService
from app.services.slots import find_available_slots

router = APIRouter(prefix="/admin/showtimes", tags=["Admin - Showtimes"])
room_schedule_router = APIRouter(prefix="/admin/rooms", tags=["Admin - Room Schedule"])
expiration_router = APIRouter(prefix="/admin/showtime-expiration", tags=["Admin - Showtime Expiration"])

SCHEDULING_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ScheduleConflictResponse},
}


# ---------------------------------------------------------------------------
# Showtime create / read / update / hide
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=ShowtimeSchema,
    status_code=status.HTTP_201_CREATED,
    responses=SCHEDULING_ERRORS,
)
def create_showtime(
    data: ShowtimeCreate,
    allow_early_premiere: bool = Query(False, description="Schedule before the premiere date"),
    db: Session = Depends(get_db),
    actor_id: UUID = Depends(get_current_actor_id),
):
    """
    Schedule a showtime. End time is derived from the movie runtime plus the
    cleanup buffer. On a room conflict the 409 body lists the blocking
    showtimes and up to five free slots for the same movie length.
    """
    return ShowtimeService(db).schedule_showtime(
        data, actor_id, allow_early_premiere=allow_early_premiere
    )


@router.get("/{id}", response_model=ShowtimeSchema, responses={404: {"model": ErrorResponse}})
def get_showtime(
    id: UUID,
    db: Session = Depends(get_db),
    actor_id: UUID = Depends(get_current_actor_id),
):
    return ShowtimeService(db).get_showtime(id)


@router.put(
    "/hide-all",
    response_model=BulkHideResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": BookingObligationResponse}},
)
def hide_all_showtimes_for_date(
    room_id: UUID = Query(..., description="Cinema room"),
    date: date = Query(..., description="Show date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    actor_id: UUID = Depends(get_current_actor_id),
):
    """Hide every visible showtime of a room on a date. Rejected if any has pending bookings."""
    count = ShowtimeService(db).hide_showtimes_for_date(room_id, date, actor_id)
    return {"room_id": room_id, "date": date, "hidden_count": count}


@router.patch("/{id}", response_model=ShowtimeSchema, responses=SCHEDULING_ERRORS)
def update_showtime(
    id: UUID,
    data: ShowtimeUpdate,
    db: Session = Depends(get_db),
    actor_id: UUID = Depends(get_current_actor_id),
):
    """Re-validate and move a showtime. Rejected while it has pending or confirmed bookings."""
    return ShowtimeService(db).update_showtime(id, data, actor_id)


@router.delete(
    "/{id}",
    response_model=HideShowtimeResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": BookingObligationResponse}},
)
def hide_showtime(
    id: UUID,
    db: Session = Depends(get_db),
    actor_id: UUID = Depends(get_current_actor_id),
):
    showtime = ShowtimeService(db).hide_showtime(id, actor_id)
    return {"id": showtime.id, "status": showtime.status}


# ---------------------------------------------------------------------------
# Room schedule: see what's booked in a room and where a movie still fits
# ---------------------------------------------------------------------------


def _get_room_or_404(db: Session, room_id: UUID):
    room = facts.get_room(db, room_id)
    if not room:
        raise NotFoundError(f"Cinema room {room_id} not found")
    return room


@room_schedule_router.get("/{room_id}/schedule", response_model=RoomScheduleResponse)
def get_room_schedule(
    room_id: UUID,
    date: date = Query(..., description="Show date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    actor_id: UUID = Depends(get_current_actor_id),
):
    room = _get_room_or_404(db, room_id)

    entries = [
        {
            "id": showtime.id,
            "movie_id": showtime.movie_id,
            "movie_title": movie_title,
            "start_time": showtime.start_time,
            "end_time": showtime.end_time,
            "status": showtime.status,
            "capacity_available": showtime.capacity_available,
        }
        for showtime, movie_title in facts.list_by_room_and_date(db, room_id, date)
    ]
    return {"room_id": room.id, "room_name": room.name, "date": date, "showtimes": entries}


@room_schedule_router.get("/{room_id}/available-slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    room_id: UUID,
    date: date = Query(..., description="Show date (YYYY-MM-DD)"),
    movie_id: Optional[UUID] = Query(None, description="Size slots for this movie's runtime"),
    duration_minutes: Optional[int] = Query(None, gt=0, description="Occupied minutes, if no movie given"),
    db: Session = Depends(get_db),
    actor_id: UUID = Depends(get_current_actor_id),
):
    """
    Free windows in operating hours. With `movie_id` the window length is the
    runtime plus the cleanup buffer; otherwise `duration_minutes` is used as is.
    """
    _get_room_or_404(db, room_id)

    if movie_id:
        movie = facts.get_movie(db, movie_id)
        if not movie:
            raise NotFoundError(f"Movie {movie_id} not found")
        duration_minutes = movie.duration_minutes + settings.CLEANUP_BUFFER_MINUTES
    elif not duration_minutes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either movie_id or duration_minutes is required",
        )

    slots = find_available_slots(db, room_id, date, duration_minutes)
    return {"room_id": room_id, "date": date, "duration_minutes": duration_minutes, "slots": slots}


# ---------------------------------------------------------------------------
# Expiration sweeper
# ---------------------------------------------------------------------------


@expiration_router.get("/status", response_model=SweeperStatus)
def get_sweeper_status(
    request: Request,
    actor_id: UUID = Depends(get_current_actor_id),
):
    return request.app.state.sweeper.status()


@expiration_router.post("/check-now", response_model=SweepResult)
def run_sweep_now(
    request: Request,
    actor_id: UUID = Depends(get_current_actor_id),
):
    """Hide expired showtimes immediately. Skipped if a sweep is already running."""
    return request.app.state.sweeper.run_once()


@expiration_router.post("/start", response_model=SweeperStatus)
async def start_sweeper(
    request: Request,
    actor_id: UUID = Depends(get_current_actor_id),
):
    sweeper = request.app.state.sweeper
    sweeper.start()
    return sweeper.status()


@expiration_router.post("/stop", response_model=SweeperStatus)
async def stop_sweeper(
    request: Request,
    actor_id: UUID = Depends(get_current_actor_id),
):
    sweeper = request.app.state.sweeper
    await sweeper.stop()
    return sweeper.status()
