"""Scheduled batch jobs."""

from app.jobs.progress_jobs import refresh_all_progress, sync_all_activities
from app.jobs.scheduler import ProgressScheduler

__all__ = ["refresh_all_progress", "sync_all_activities", "ProgressScheduler"]
