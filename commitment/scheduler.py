"""
Optional in-process scheduler for single-node deployments.
Runs the daily recap sweep once a day at DAILY_RECAP_TIME.
Production deployments normally trigger /api/cron/daily-recap externally instead.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from commitment import config
from commitment.database import SessionLocal
from commitment.services.date_service import DateService
from commitment.services.daily_recap_service import DailyRecapService

logger = logging.getLogger("commitment.scheduler")

# Create scheduler instance
scheduler = AsyncIOScheduler()

DAILY_RECAP_JOB_ID = "daily_recap"


async def run_daily_recap():
    """Job: evaluate yesterday for every group"""
    db = SessionLocal()
    try:
        result = DailyRecapService(db).run()
        logger.info(f"Scheduled daily recap finished for {result['date']}: {result['groupsProcessed']} groups")
    except Exception as e:
        logger.error(f"Scheduler Error (Daily Recap): {e}")
    finally:
        db.close()


def start_scheduler():
    """Start the scheduler if enabled"""
    if not config.SCHEDULER_ENABLED:
        logger.info("In-process scheduler disabled (COMMITMENT_SCHEDULER_ENABLED is not set)")
        return

    if not scheduler.running:
        hour, minute = DateService.parse_time(config.DAILY_RECAP_TIME)
        scheduler.add_job(
            run_daily_recap,
            CronTrigger(hour=hour, minute=minute),
            id=DAILY_RECAP_JOB_ID,
            replace_existing=True
        )
        scheduler.start()
        logger.info(f">>> APScheduler STARTED <<< daily recap at {hour:02d}:{minute:02d}")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped")
