"""
Calendar Sync Scheduler

Runs inside the FastAPI process:
- hourly (at SYNC_CRON_MINUTE): sync every active calendar feed
- weekly (Sunday 03:00 UTC): prune old sync log entries

Uses APScheduler for cron-based scheduling.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config import settings
from ..utils.clock import utcnow
from .calendar_sync_service import CalendarSyncService

logger = logging.getLogger(__name__)

_scheduler: Optional[AsyncIOScheduler] = None
_last_sync_time: Optional[datetime] = None
_last_sync_result: Optional[Dict] = None

SCHEDULER_TIMEZONE = "UTC"


def run_calendar_sync() -> Dict:
    """Sync all feeds and remember the summary for the status endpoint"""
    global _last_sync_time, _last_sync_result

    result = CalendarSyncService().sync_all_calendars()
    _last_sync_time = utcnow()
    _last_sync_result = {
        "total": result.total,
        "succeeded": result.succeeded,
        "failed": result.failed,
    }
    return _last_sync_result


async def run_calendar_sync_job():
    """
    Async job function called by the scheduler.

    The sync itself is blocking (HTTP + DB), so it runs in a worker thread.
    """
    logger.info("Running scheduled calendar sync job...")
    try:
        result = await asyncio.to_thread(run_calendar_sync)
        logger.info(f"Scheduled calendar sync result: {result}")
    except Exception as e:
        logger.error(f"Scheduled calendar sync job failed: {e}")


async def run_log_cleanup_job():
    logger.info("Running scheduled sync log cleanup...")
    try:
        await asyncio.to_thread(CalendarSyncService().prune_sync_logs)
    except Exception as e:
        logger.error(f"Scheduled sync log cleanup failed: {e}")


def start_scheduler() -> bool:
    """
    Start the scheduler with the hourly sync and weekly cleanup jobs.

    Returns:
        True if scheduler started successfully, False otherwise
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Calendar sync scheduler is already running")
        return True

    try:
        _scheduler = AsyncIOScheduler(timezone=SCHEDULER_TIMEZONE)

        _scheduler.add_job(
            run_calendar_sync_job,
            CronTrigger(minute=settings.sync_cron_minute, timezone=SCHEDULER_TIMEZONE),
            id="calendar_sync_hourly",
            name="Calendar Sync (hourly)",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )

        _scheduler.add_job(
            run_log_cleanup_job,
            CronTrigger(day_of_week="sun", hour=3, minute=0, timezone=SCHEDULER_TIMEZONE),
            id="sync_log_cleanup_weekly",
            name="Sync Log Cleanup (weekly)",
            replace_existing=True
        )

        _scheduler.start()
        logger.info(f"Calendar sync scheduler started (hourly at :{settings.sync_cron_minute:0>2} {SCHEDULER_TIMEZONE})")
        return True

    except Exception as e:
        logger.error(f"Failed to start calendar sync scheduler: {e}")
        return False


def stop_scheduler() -> bool:
    global _scheduler

    if _scheduler is None:
        return True

    try:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Calendar sync scheduler stopped")
        return True
    except Exception as e:
        logger.error(f"Failed to stop calendar sync scheduler: {e}")
        return False


def get_scheduler_status() -> Dict:
    status = {
        "running": False,
        "timezone": SCHEDULER_TIMEZONE,
        "last_sync": None,
        "last_sync_result": None,
        "jobs": []
    }

    if _scheduler is not None and _scheduler.running:
        status["running"] = True
        for job in _scheduler.get_jobs():
            status["jobs"].append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None
            })

    if _last_sync_time:
        status["last_sync"] = _last_sync_time.isoformat()
    if _last_sync_result:
        status["last_sync_result"] = _last_sync_result

    return status
