import logging
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from radiko_harvest.config import settings
from radiko_harvest.services.harvest_service import run_harvest


logger = logging.getLogger(__name__)

class HarvestScheduler:
    """Scheduler for periodic harvest runs"""

    JOB_ID = 'radiko_harvest'

    def __init__(self):
        self.scheduler: AsyncIOScheduler | None = None

    async def _harvest_job(self) -> None:
        """Background job that runs one harvest; the outcome is only logged"""
        logger.info("Scheduled harvest triggered")
        try:
            result = await run_harvest()
            if result.status == "failed":
                logger.error(
                    "Scheduled harvest failed at %s: %s",
                    result.stage.value,
                    result.error,
                )
        except Exception as e:
            logger.error(f"Exception in scheduled harvest: {e}", exc_info=True)

    def start(self) -> None:
        """Start the scheduler with the harvest job"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        try:
            trigger = CronTrigger.from_crontab(settings.harvest_cron, timezone='UTC')
        except (ValueError, KeyError) as exc:
            logger.error("Invalid cron expression '%s': %s", settings.harvest_cron, exc)
            raise

        self.scheduler = AsyncIOScheduler(timezone='UTC')
        self.scheduler.add_job(
            self._harvest_job,
            trigger=trigger,
            id=self.JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.harvest_misfire_grace_sec
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started. Next harvest: %s",
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
            self.scheduler = None

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled harvest time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(self.JOB_ID)
        return job.next_run_time if job else None


harvest_scheduler = HarvestScheduler()
