from app.schemas.common import ErrorResponse, ScheduleConflictResponse, BookingObligationResponse
from app.schemas.showtime import (
    Showtime, ShowtimeCreate, ShowtimeUpdate,
    ConflictingShowtime, AvailableSlot,
    RoomScheduleEntry, RoomScheduleResponse, AvailableSlotsResponse,
    HideShowtimeResponse, BulkHideResponse, SweepResult, SweeperStatus,
)
