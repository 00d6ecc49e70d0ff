from typing import Optional, List, Union, Dict, Any
from uuid import UUID
from pydantic import BaseModel, UUID4
from datetime import date, time, datetime

# Raw time input: "H:MM", "HH:MM:SS", ISO timestamp, time object or
# {"hours": .., "minutes": .., "seconds": ..}. Normalized by the scheduler.
RawTime = Union[time, str, Dict[str, Any]]


# Showtime: Create (admin POST /admin/showtimes)
class ShowtimeCreate(BaseModel):
    movie_id: UUID
    room_id: UUID
    show_date: date
    start_time: RawTime


# Showtime: Update (admin PATCH /admin/showtimes/{id})
class ShowtimeUpdate(BaseModel):
    movie_id: Optional[UUID] = None
    room_id: Optional[UUID] = None
    show_date: Optional[date] = None
    start_time: Optional[RawTime] = None
    status: Optional[str] = None        # "Scheduled" | "Hidden" | "Cancelled"


# Showtime: DB response
class Showtime(BaseModel):
    id: UUID4
    movie_id: UUID
    room_id: UUID
    show_date: date
    start_time: time
    end_time: time
    status: str
    capacity_available: int
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# A showtime that blocks a requested window, with the reason it blocks
class ConflictingShowtime(BaseModel):
    showtime_id: UUID4
    movie_title: str
    start_time: str
    end_time: str
    reason: str                         # "overlap" | "gap"


class AvailableSlot(BaseModel):
    start: str
    end: str


# Room schedule entry: GET /admin/rooms/{id}/schedule
class RoomScheduleEntry(BaseModel):
    id: UUID4
    movie_id: UUID
    movie_title: str
    start_time: time
    end_time: time
    status: str
    capacity_available: int


class RoomScheduleResponse(BaseModel):
    room_id: UUID
    room_name: str
    date: date
    showtimes: List[RoomScheduleEntry]


class AvailableSlotsResponse(BaseModel):
    room_id: UUID
    date: date
    duration_minutes: int
    slots: List[AvailableSlot]


class HideShowtimeResponse(BaseModel):
    id: UUID4
    status: str


class BulkHideResponse(BaseModel):
    room_id: UUID
    date: date
    hidden_count: int


# --- Expiration sweeper ---

class SweepResult(BaseModel):
    hidden_count: Optional[int] = None   # None when a sweep was already running
    skipped: bool = False


class SweeperStatus(BaseModel):
    is_running: bool
    interval_seconds: int
    sweep_in_progress: bool
    last_run_at: Optional[datetime] = None
    last_hidden_count: Optional[int] = None
    last_error: Optional[str] = None
    next_run_at: Optional[datetime] = None
