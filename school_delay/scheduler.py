from __future__ import annotations

from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from school_delay.config import SchedulerConfig
from school_delay.logging import get_logger

logger = get_logger(__name__)

JOB_ID = "daily-weather-log"


def build_scheduler(job: Callable[[], object], config: SchedulerConfig) -> Optional[AsyncIOScheduler]:
    """Schedule the daily logging run; returns None when scheduling is switched off."""
    if not config.enabled:
        logger.info("scheduler.disabled")
        return None

    scheduler = AsyncIOScheduler()
    trigger = CronTrigger.from_crontab(config.cron)
    scheduler.add_job(job, trigger=trigger, id=JOB_ID, max_instances=1, coalesce=True)
    logger.info("scheduler.configured", cron=config.cron, job=JOB_ID)
    return scheduler
