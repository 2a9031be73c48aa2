"""Cron scheduling of the batch jobs via APScheduler.

APScheduler is imported lazily in :meth:`ProgressScheduler.start` so the
module can be imported without the scheduler machinery.
"""

import logging
from typing import Any, Callable, Optional

from app.config import Settings, get_settings
from app.jobs.progress_jobs import refresh_all_progress, sync_all_activities

logger = logging.getLogger(__name__)


class ProgressScheduler:
    """Runs the progress refresh and Strava sync jobs on cron triggers.

    Args:
        settings: Provides the timezone and the cron expressions
            (``PROGRESS_REFRESH_CRON``, ``ACTIVITY_SYNC_CRON``), each a dict
            of ``CronTrigger`` fields.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._scheduler: Any = None  # AsyncIOScheduler, created in start()
        self._jobs: list[tuple[str, Callable, dict[str, Any]]] = [
            ("refresh_all_progress", refresh_all_progress, self._settings.PROGRESS_REFRESH_CRON),
            ("sync_all_activities", sync_all_activities, self._settings.ACTIVITY_SYNC_CRON),
        ]

    def start(self) -> None:
        """Create the APScheduler instance, register the jobs and start.

        Must be called from a running asyncio event loop.
        """
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.cron import CronTrigger

        timezone = self._settings.SCHEDULER_TIMEZONE
        self._scheduler = AsyncIOScheduler(timezone=timezone)

        for job_id, func, cron in self._jobs:
            self._scheduler.add_job(
                func,
                trigger=CronTrigger(timezone=timezone, **cron),
                id=job_id,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            logger.info(f"Registered job {job_id}: cron={cron}")

        self._scheduler.start()
        logger.info(f"ProgressScheduler started with {len(self._jobs)} job(s), tz={timezone}")

    def shutdown(self) -> None:
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("ProgressScheduler shut down")
