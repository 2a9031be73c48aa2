"""Services package for business logic."""

from app.services.progress_service import ProgressService, progress_service
from app.services.activity_service import ActivityService, activity_service

__all__ = [
    "ProgressService",
    "progress_service",
    "ActivityService",
    "activity_service",
]
