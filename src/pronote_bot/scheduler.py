"""
Recurring synchronization.

Runs a cycle as soon as the scheduler starts, then every
POLL_INTERVAL_MINUTES. A tick that fires while a cycle is still running
is dropped, and missed ticks are merged into one.
"""

import logging
from datetime import datetime

from apscheduler.schedulers.blocking import BlockingScheduler
from dateutil.tz import gettz

from pronote_bot.config import Settings

logger = logging.getLogger(__name__)

JOB_ID = "pronote_sync"


def build_scheduler(monitor, settings: Settings) -> BlockingScheduler:
    """
    Create a scheduler with the synchronization job registered.

    Args:
        monitor: Object whose run() executes one cycle
        settings: Settings providing the interval and timezone

    Returns:
        BlockingScheduler: Scheduler ready to be started
    """
    scheduler = BlockingScheduler(timezone=settings.timezone)
    scheduler.add_job(
        monitor.run,
        "interval",
        minutes=settings.poll_interval_minutes,
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(gettz(settings.timezone)),
    )
    return scheduler


def run_forever(monitor, settings: Settings) -> None:
    """Run cycles until the process is interrupted."""
    scheduler = build_scheduler(monitor, settings)
    logger.info(
        f"Synchronizing now and every {settings.poll_interval_minutes} minutes"
    )
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Stopping scheduler")
        scheduler.shutdown(wait=False)
