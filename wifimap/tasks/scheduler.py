import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from wifimap.api.deps import get_repository

logger = logging.getLogger(__name__)

# Инициализируем планировщик
scheduler = AsyncIOScheduler()

JOB_ID = "recalculate_positions"


async def _run_recalculate_job() -> None:
    """
    Пересчёт позиций всех сетей по накопленным наблюдениям.
    """
    logger.info(f"Job '{JOB_ID}' started")
    updated = await get_repository().recalculate_all_positions()
    logger.info(f"Job '{JOB_ID}' finished: {updated} networks")


def start_scheduler() -> None:
    """
    Запускает APScheduler с задачей recalculate_positions (ежедневно в 03:00).
    """
    scheduler.add_job(
        _run_recalculate_job,
        trigger=CronTrigger(hour=3, minute=0),
        id=JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    if not scheduler.running:
        scheduler.start()
    logger.info(f"Scheduler started: job '{JOB_ID}' scheduled at 03:00 daily")


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
