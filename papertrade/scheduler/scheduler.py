"""
SCHEDULER BOOTSTRAP

Initializes and manages the APScheduler instance.
Scheduler is orchestration-only and contains no business logic.
"""

import logging

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from papertrade.realtime.runtime import RefreshRuntime
from papertrade.scheduler.jobs import run_quote_refresh_job

_logger = logging.getLogger(__name__)

_SCHEDULER: AsyncIOScheduler | None = None

REFRESH_JOB_ID = "quote_refresh_job"


def start_scheduler(
    runtime: RefreshRuntime,
    interval_seconds: int = 3,
    timezone_name: str = "Asia/Kolkata",
) -> AsyncIOScheduler:
    """
    Start the asyncio scheduler and register the quote refresh job.
    Must be called from inside a running event loop.
    """
    global _SCHEDULER

    if _SCHEDULER is not None:
        return _SCHEDULER

    scheduler = AsyncIOScheduler(timezone=pytz.timezone(timezone_name))

    # ------------------------------------------------------------
    # QUOTE REFRESH JOB
    # A slow fetch is skipped rather than queued behind itself
    # ------------------------------------------------------------
    scheduler.add_job(
        run_quote_refresh_job,
        trigger=IntervalTrigger(seconds=interval_seconds),
        args=[runtime],
        id=REFRESH_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    _SCHEDULER = scheduler

    _logger.info("✅ Scheduler started | refresh every %ss", interval_seconds)
    return scheduler


def shutdown_scheduler():
    """
    Shutdown the scheduler safely.
    """
    global _SCHEDULER

    if _SCHEDULER:
        _SCHEDULER.shutdown(wait=False)
        _SCHEDULER = None
        _logger.info("🛑 Scheduler shut down")
