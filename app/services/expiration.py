"""
Background sweep that retires showtimes whose window has elapsed.

The sweep runs on a fixed interval from the FastAPI lifespan. A failed sweep
is logged and simply tried again on the next tick.
"""
import asyncio
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import SessionLocal
from app.schemas.showtime import SweepResult, SweeperStatus
from app.services.showtimes import ShowtimeService

logger = logging.getLogger(__name__)


class ShowtimeExpirationSweeper:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        interval_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.session_factory = session_factory
        if interval_seconds is None:
            interval_seconds = settings.SHOWTIME_SWEEP_INTERVAL_SECONDS
        self.interval_seconds = interval_seconds
        self.clock = clock

        self._sweep_lock = threading.Lock()   # one sweep at a time, timer or manual
        self._task: Optional[asyncio.Task] = None
        self.last_run_at: Optional[datetime] = None
        self.last_hidden_count: Optional[int] = None
        self.last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> SweepResult:
        """
        Hide expired showtimes now. Returns ``skipped=True`` without touching
        the store when another sweep is still in progress.
        """
        if not self._sweep_lock.acquire(blocking=False):
            logger.warning("Showtime expiration sweep already in progress; skipping.")
            return SweepResult(skipped=True)

        try:
            db = self.session_factory()
            try:
                count = ShowtimeService(db, clock=self.clock).auto_hide_expired()
            finally:
                db.close()
        except Exception as exc:
            self.last_error = str(exc)
            self.last_hidden_count = None
            raise
        finally:
            self.last_run_at = self.clock()
            self._sweep_lock.release()

        self.last_hidden_count = count
        self.last_error = None
        if count:
            logger.info("Hid %d expired showtime(s).", count)
        return SweepResult(hidden_count=count)

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.exception("Error during showtime expiration sweep.")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.is_running:
            logger.warning("Showtime expiration sweeper is already running.")
            return
        logger.info("Starting showtime expiration sweeper (every %ds).", self.interval_seconds)
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Showtime expiration sweeper stopped.")

    def status(self) -> SweeperStatus:
        next_run_at = None
        if self.is_running and self.last_run_at:
            next_run_at = self.last_run_at + timedelta(seconds=self.interval_seconds)
        return SweeperStatus(
            is_running=self.is_running,
            interval_seconds=self.interval_seconds,
            sweep_in_progress=self._sweep_lock.locked(),
            last_run_at=self.last_run_at,
            last_hidden_count=self.last_hidden_count,
            last_error=self.last_error,
            next_run_at=next_run_at,
        )

