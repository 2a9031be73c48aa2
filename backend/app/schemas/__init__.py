"""Pydantic schemas package for API request/response models."""

from app.schemas.activity import (
    ActivityBase,
    ActivityResponse,
    ActivitySyncResponse,
    ActivityUpdate,
)
from app.schemas.progress import (
    CurrentGoalsResponse,
    GoalResponse,
    ProgressResponse,
)

__all__ = [
    # Activity schemas
    "ActivityBase",
    "ActivityResponse",
    "ActivitySyncResponse",
    "ActivityUpdate",
    # Goal and progress schemas
    "CurrentGoalsResponse",
    "GoalResponse",
    "ProgressResponse",
]
