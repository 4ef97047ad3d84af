"""
APScheduler setup for the auction lifecycle sweep.

The sweep drives upcoming -> active -> ended -> sold and settlement
notifications. Re-running it is harmless: transitions are applied with a
CAS status guard, so an auction is moved (and notified) exactly once.
"""

from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

import conf
from models.operations.auctions import auction_process_lifecycles, auction_status_summary
from utils import log

logger = log.get_logger(__name__)

_scheduler: Optional[AsyncIOScheduler] = None


async def lifecycle_job():
    """Apply due lifecycle transitions to every non-terminal auction."""
    try:
        transitions = await auction_process_lifecycles()
    except Exception as e:
        logger.error(f"Lifecycle sweep failed: {e}", exc_info=True)
        return
    if transitions:
        logger.info(f"Lifecycle sweep applied {len(transitions)} transitions")
    else:
        logger.debug("Lifecycle sweep: no transitions needed")


async def summary_job():
    """Log auction counts per status for monitoring."""
    try:
        summary = await auction_status_summary()
        logger.info(f"Auction summary: {summary}")
    except Exception as e:
        logger.error(f"Failed to get auction summary: {e}")


def init_scheduler() -> AsyncIOScheduler:
    """Start the APScheduler with the lifecycle sweep and the summary report."""
    global _scheduler
    lifecycle_conf = conf.get_lifecycle_conf()
    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        lifecycle_job,
        trigger=IntervalTrigger(seconds=lifecycle_conf.interval_seconds),
        id="auction_lifecycle",
        name="Auction Lifecycle Sweep",
        replace_existing=True,
        max_instances=1,  # prevent overlap
        next_run_time=datetime.now(timezone.utc),  # run once at startup
    )

    _scheduler.add_job(
        summary_job,
        trigger=IntervalTrigger(minutes=lifecycle_conf.summary_interval_minutes),
        id="auction_summary",
        name="Auction Status Summary",
        replace_existing=True,
    )

    _scheduler.start()
    logger.info(
        f"APScheduler started: lifecycle sweep every {lifecycle_conf.interval_seconds}s, "
        f"summary every {lifecycle_conf.summary_interval_minutes}min"
    )
    return _scheduler


def shutdown_scheduler():
    """Gracefully shut down the scheduler."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("APScheduler shut down")
