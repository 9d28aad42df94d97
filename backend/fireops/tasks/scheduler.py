"""Background task scheduler for the end-of-shift unit sweep."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from fireops.config import get_settings
from fireops.database import async_session_maker
from fireops.services.units import UnitScheduler

logger = logging.getLogger(__name__)
settings = get_settings()

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


async def auto_deactivate_units_job() -> None:
    """Background job standing down units whose shift has ended."""
    logger.info("Starting scheduled unit auto-deactivation")
    try:
        async with async_session_maker() as db:
            result = await UnitScheduler(db).auto_deactivate_sweep()
            logger.info(f"Unit sweep complete: {result.deactivated_count} deactivated")
    except Exception as e:
        logger.error(f"Unit sweep failed: {e}", exc_info=True)


def setup_scheduler() -> AsyncIOScheduler:
    """Set up and start the background task scheduler."""
    global scheduler

    scheduler = AsyncIOScheduler(timezone=settings.timezone)

    # Daily at the configured wall-clock time
    scheduler.add_job(
        auto_deactivate_units_job,
        trigger=CronTrigger(
            hour=settings.unit_sweep_hour,
            minute=settings.unit_sweep_minute,
            timezone=settings.timezone,
        ),
        id="auto_deactivate_units",
        name="Stand down units after their shift",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        f"Scheduler started (unit sweep daily at "
        f"{settings.unit_sweep_hour:02d}:{settings.unit_sweep_minute:02d} {settings.timezone})"
    )

    return scheduler


def shutdown_scheduler() -> None:
    """Shut down the scheduler gracefully."""
    global scheduler

    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shut down")
        scheduler = None
