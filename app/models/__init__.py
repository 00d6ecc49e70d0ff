from app.models.movie import Movie, MovieStatus
from app.models.room import CinemaRoom, RoomStatus
from app.models.seat_layout import SeatLayout
from app.models.showtime import Showtime, ShowtimeStatus
from app.models.ticket_booking import TicketBooking, BookingStatus, ACTIVE_BOOKING_STATUSES
