"""Database models for the mileage tracker application."""

from app.models.base import Base
from app.models.user import User, UserRole
from app.models.activity import Activity, TRACKED_ACTIVITY_TYPES
from app.models.goal import Goal, GoalType
from app.models.progress import Progress

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Activity",
    "TRACKED_ACTIVITY_TYPES",
    "Goal",
    "GoalType",
    "Progress",
]
