from typing import Any, Dict, List, Optional


class SchedulingError(Exception):
    """Base class for every structured failure raised by the scheduling engine.

    Subclasses set ``error`` (the machine readable kind) and ``status_code``
    (what the HTTP layer answers with). ``payload`` carries extra data such as
    suggested slots; it is merged into the error response body.
    """

    error = "scheduling_error"
    status_code = 400

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.payload}


class NotFoundError(SchedulingError):
    error = "not_found"
    status_code = 404


class ValidationError(SchedulingError):
    error = "validation_error"
    status_code = 400


class EarlyPremiereError(SchedulingError):
    """Showtime falls between release and premiere; retry with the override flag."""

    error = "early_premiere_request"
    status_code = 409


class DuplicateShowtimeError(SchedulingError):
    error = "duplicate_showtime"
    status_code = 409


class ScheduleConflictError(SchedulingError):
    error = "schedule_conflict"
    status_code = 409

    def __init__(
        self,
        message: str,
        conflicts: List[Dict[str, Any]],
        suggested_slots: List[Dict[str, Any]],
    ):
        super().__init__(
            message,
            payload={"conflicts": conflicts, "suggested_slots": suggested_slots},
        )
        self.conflicts = conflicts
        self.suggested_slots = suggested_slots


class BookingObligationError(SchedulingError):
    error = "booking_obligation"
    status_code = 409

    def __init__(self, message: str, blocking_bookings: int):
        super().__init__(message, payload={"blocking_bookings": blocking_bookings})
        self.blocking_bookings = blocking_bookings
