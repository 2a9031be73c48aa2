"""API routers package."""

from app.routers import activities, progress

__all__ = ["activities", "progress"]
