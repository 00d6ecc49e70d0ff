import uuid
import enum
from sqlalchemy import Column, String, DateTime, func, DECIMAL, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"

# Bookings that still hold a claim on the showtime as scheduled
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

class TicketBooking(Base):
    __tablename__ = "ticket_bookings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    showtime_id = Column(Uuid, ForeignKey("showtimes.id"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=True, index=True)
    status = Column(String(20), default=BookingStatus.PENDING.value, index=True)
    total_amount = Column(DECIMAL(10, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    showtime = relationship("Showtime", back_populates="bookings")
