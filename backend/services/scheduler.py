"""Background scheduler for the session auto-complete sweep."""

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import sessionmaker

from backend.core.errors import InternalError
from backend.services.session_service import auto_complete_sessions

logger = logging.getLogger(__name__)


class AutoCompleteScheduler:
    """Runs the auto-complete sweep on a fixed interval.

    Each run opens its own database session and executes the sweep in a
    worker thread so the event loop is not blocked.
    """

    def __init__(self, session_factory: sessionmaker, interval_minutes: int):
        self.session_factory = session_factory
        self.interval_minutes = interval_minutes
        self.scheduler = AsyncIOScheduler()
        self._is_started = False

    def start(self) -> None:
        if self._is_started:
            logger.warning('Auto-complete scheduler is already started')
            return

        self.scheduler.add_job(
            self._run_sweep,
            IntervalTrigger(minutes=self.interval_minutes),
            id='session_auto_complete',
            name='Complete elapsed accepted sessions',
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self._is_started = True
        logger.info('Auto-complete scheduler started (every %s minute(s))', self.interval_minutes)

    def stop(self) -> None:
        if self._is_started:
            self.scheduler.shutdown(wait=False)
            self._is_started = False
            logger.info('Auto-complete scheduler stopped')

    async def _run_sweep(self) -> None:
        await asyncio.to_thread(self.run_once)

    def run_once(self) -> int:
        db = self.session_factory()
        try:
            return auto_complete_sessions(db)
        except InternalError:
            # Already logged by the sweep; the next interval retries.
            return 0
        finally:
            db.close()
