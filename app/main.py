import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.db.init_db import create_database
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.core.config import settings
from app.core.exceptions import SchedulingError
from app.api.v1.router import api_router
from app.services.expiration import ShowtimeExpirationSweeper

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Ensure DB exists and create tables
    create_database()
    Base.metadata.create_all(bind=engine)

    # Sweep immediately, then keep running in the background
    if settings.SHOWTIME_SWEEPER_ENABLED:
        app.state.sweeper.start()
    yield

    # Shutdown: cancel background task
    await app.state.sweeper.stop()


from fastapi.middleware.cors import CORSMiddleware

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
app.state.sweeper = ShowtimeExpirationSweeper(session_factory=SessionLocal)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.error, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"Hello": "Showtimes"}
