"""APScheduler wiring for the daily attendance sweeps.

Started and stopped from the FastAPI lifespan in main.py. Each run opens its
own session, commits on success and rolls back on failure.
"""

import logging
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeping.attendance.jobs import flag_missed_punches, notify_expiring_shifts
from timekeeping.config import settings
from timekeeping.database import async_session_factory

logger = logging.getLogger(__name__)

Sweep = Callable[[AsyncSession], Awaitable[int]]

_scheduler: Optional[AsyncIOScheduler] = None


async def run_sweep(name: str, sweep: Sweep) -> int:
    """Run one sweep in a fresh session. Failures are logged and re-raised."""
    async with async_session_factory() as session:
        try:
            count = await sweep(session)
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Scheduled sweep %s failed", name)
            raise
    return count


def _register_jobs(scheduler: AsyncIOScheduler) -> None:
    # End of day: unmatched clock-ins
    scheduler.add_job(
        run_sweep,
        "cron",
        args=["missed-punch", flag_missed_punches],
        id="missed-punch",
        hour=settings.MISSED_PUNCH_SWEEP_HOUR,
        minute=settings.MISSED_PUNCH_SWEEP_MINUTE,
        replace_existing=True,
    )

    # Morning: shift assignments ending soon
    scheduler.add_job(
        run_sweep,
        "cron",
        args=["shift-expiry", notify_expiring_shifts],
        id="shift-expiry",
        hour=settings.SHIFT_EXPIRY_SWEEP_HOUR,
        minute=settings.SHIFT_EXPIRY_SWEEP_MINUTE,
        replace_existing=True,
    )


def create_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=settings.TIMEZONE)
    _register_jobs(scheduler)
    return scheduler


def start_scheduler() -> AsyncIOScheduler:
    """Create and start the process-wide scheduler (idempotent)."""
    global _scheduler
    if _scheduler is None:
        _scheduler = create_scheduler()
        _scheduler.start()
        logger.info(
            "Attendance scheduler started (missed-punch %02d:%02d, shift-expiry %02d:%02d, %s)",
            settings.MISSED_PUNCH_SWEEP_HOUR,
            settings.MISSED_PUNCH_SWEEP_MINUTE,
            settings.SHIFT_EXPIRY_SWEEP_HOUR,
            settings.SHIFT_EXPIRY_SWEEP_MINUTE,
            settings.TIMEZONE,
        )
    return _scheduler


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Attendance scheduler stopped")
