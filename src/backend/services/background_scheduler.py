"""
Background Scheduler Service

Manages scheduled background tasks using APScheduler:
- Election status transitions (every ELECTION_STATUS_INTERVAL_SECONDS)

This runs in-process with the FastAPI application.
"""

import logging
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from db.session import async_session_maker

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


async def election_status_job() -> None:
    """
    Background job to run an election status cycle.

    Activates elections whose window has opened and ends those whose
    window has closed.
    """
    from services.election_scheduler import ElectionScheduler

    try:
        async with async_session_maker() as db:
            scheduler = ElectionScheduler(db)
            result = await scheduler.run_status_cycle()

            if result["activated_count"] or result["ended_count"]:
                logger.info(
                    f"Election status cycle completed: "
                    f"activated={result['activated_count']}, "
                    f"ended={result['ended_count']}"
                )
    except Exception as e:
        logger.error(f"Election status job failed: {e}", exc_info=True)


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=timezone.utc)
    return _scheduler


async def start_scheduler() -> None:
    """Start the background scheduler with all jobs."""
    scheduler = get_scheduler()

    if scheduler.running:
        logger.info("Scheduler already running")
        return

    scheduler.add_job(
        election_status_job,
        trigger=IntervalTrigger(seconds=settings.ELECTION_STATUS_INTERVAL_SECONDS),
        id="election_status",
        name="Election Status Transitions",
        replace_existing=True,
        max_instances=1,
    )
    logger.info(f"Added election status job (every {settings.ELECTION_STATUS_INTERVAL_SECONDS}s)")

    scheduler.start()
    logger.info("Background scheduler started")

    # Catch up on transitions missed while the service was down
    await election_status_job()


async def stop_scheduler() -> None:
    """Stop the background scheduler gracefully."""
    global _scheduler

    if _scheduler and _scheduler.running:
        logger.info("Stopping background scheduler...")
        _scheduler.shutdown(wait=True)
        logger.info("Background scheduler stopped")

    _scheduler = None

