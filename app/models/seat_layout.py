import uuid
from sqlalchemy import Column, String, Boolean, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class SeatLayout(Base):
    __tablename__ = "seat_layouts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    room_id = Column(Uuid, ForeignKey("cinema_rooms.id"), nullable=False, index=True)
    row_label = Column(String(5), nullable=False)
    column_number = Column(Integer, nullable=False)
    seat_type = Column(String(20), nullable=False, default="Regular") # Regular, VIP, Couple
    is_active = Column(Boolean, default=True)

    room = relationship("CinemaRoom", back_populates="seats")
