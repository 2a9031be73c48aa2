"""Activity model for normalized run/walk/hike workouts."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.user import User

# Activity types shown in type-specific displays; others are stored but not broken out
TRACKED_ACTIVITY_TYPES = ("Run", "Walk", "Hike")


class Activity(Base):
    """A single recorded workout, already converted to miles and minutes."""

    __tablename__ = "activities"

    # Source-assigned (Strava activity id or manual entry id)
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)

    name: Mapped[str] = mapped_column(String(255))
    activity_type: Mapped[str] = mapped_column(String(50))  # e.g., "Run", "Walk", "Hike"
    date: Mapped[datetime] = mapped_column(DateTime, index=True)  # naive UTC

    distance: Mapped[float] = mapped_column(Float, default=0.0)  # miles
    duration: Mapped[float] = mapped_column(Float, default=0.0)  # minutes
    pace: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # minutes per mile
    elevation: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # feet
    calories: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    route: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # summary polyline

    # Timestamps
    synced_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="activities")

    def __repr__(self) -> str:
        return f"<Activity(id={self.id}, name='{self.name}', date={self.date})>"
