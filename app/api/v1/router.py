from fastapi import APIRouter

# Admin: showtime scheduling
from app.api.v1.admin.showtimes import (
    router as showtimes_router,
    room_schedule_router,
    expiration_router,
)

api_router = APIRouter()

# --- Admin ---
api_router.include_router(showtimes_router)
api_router.include_router(room_schedule_router)
api_router.include_router(expiration_router)
