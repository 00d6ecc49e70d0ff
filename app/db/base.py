from app.db.session import Base
from app.models.movie import Movie
from app.models.room import CinemaRoom
from app.models.seat_layout import SeatLayout
from app.models.showtime import Showtime
from app.models.ticket_booking import TicketBooking
