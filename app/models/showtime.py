import uuid
import enum
from sqlalchemy import Column, String, Date, Time, Integer, DateTime, ForeignKey, Index, Uuid, func, text
from sqlalchemy.orm import relationship
from app.db.session import Base

class ShowtimeStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    HIDDEN = "Hidden"
    CANCELLED = "Cancelled"

class Showtime(Base):
    __tablename__ = "showtimes"
    __table_args__ = (
        # Commit-time guard against two requests racing for the same slot.
        # Hidden showtimes are retired and release their slot.
        Index(
            "uq_showtimes_room_date_start",
            "room_id",
            "show_date",
            "start_time",
            unique=True,
            postgresql_where=text("status <> 'Hidden'"),
            sqlite_where=text("status <> 'Hidden'"),
        ),
        Index("ix_showtimes_room_date", "room_id", "show_date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    movie_id = Column(Uuid, ForeignKey("movies.id"), nullable=False, index=True)
    room_id = Column(Uuid, ForeignKey("cinema_rooms.id"), nullable=False)
    show_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)     # always derived: start + runtime + cleanup
    status = Column(String(20), default=ShowtimeStatus.SCHEDULED.value, index=True)
    capacity_available = Column(Integer, nullable=False)
    created_by = Column(Uuid, nullable=True)   # staff user id, owned by the auth service
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Relationships
    movie = relationship("Movie", back_populates="showtimes")
    room = relationship("CinemaRoom", back_populates="showtimes")
    bookings = relationship("TicketBooking", back_populates="showtime")
