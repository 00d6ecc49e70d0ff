import uuid
import enum
from sqlalchemy import Column, String, Date, DateTime, func, Integer, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base

class MovieStatus(str, enum.Enum):
    COMING_SOON = "Coming Soon"
    NOW_SHOWING = "Now Showing"
    INACTIVE = "Inactive"

class Movie(Base):
    __tablename__ = "movies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    release_date = Column(Date, nullable=True)
    premiere_date = Column(Date, nullable=True)  # public screenings start here
    status = Column(String(20), default=MovieStatus.COMING_SOON.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Relationships
    showtimes = relationship("Showtime", back_populates="movie")
