import uuid
import enum
from sqlalchemy import Column, String, DateTime, func, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class RoomStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    MAINTENANCE = "Maintenance"

class CinemaRoom(Base):
    __tablename__ = "cinema_rooms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    room_type = Column(String(50), nullable=True) # '2D', '3D', 'IMAX', ...
    status = Column(String(20), default=RoomStatus.ACTIVE.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    seats = relationship("SeatLayout", back_populates="room", cascade="all, delete-orphan")
    showtimes = relationship("Showtime", back_populates="room")
