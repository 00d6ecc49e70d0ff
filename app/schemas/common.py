from typing import List
from pydantic import BaseModel

from app.schemas.showtime import ConflictingShowtime, AvailableSlot


# Error responses: body of every SchedulingError rendered by the API
class ErrorResponse(BaseModel):
    error: str
    message: str


class ScheduleConflictResponse(ErrorResponse):
    conflicts: List[ConflictingShowtime]
    suggested_slots: List[AvailableSlot]


class BookingObligationResponse(ErrorResponse):
    blocking_bookings: int
