"""Progress model holding the current snapshot of a user's mileage."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.user import User


class Progress(Base):
    """
    Fully recomputed progress snapshot, one row per user.

    Every field is derived from the user's activities and the targets of the
    two current-period goals; the row is overwritten on every recompute.
    """

    __tablename__ = "progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), unique=True, index=True)

    # Period-scoped mileage
    monthly_mileage: Mapped[float] = mapped_column(Float, default=0.0)
    seasonal_mileage: Mapped[float] = mapped_column(Float, default=0.0)

    # Targets copied from the current goals
    monthly_goal: Mapped[float] = mapped_column(Float)
    seasonal_goal: Mapped[float] = mapped_column(Float)

    # Percent of target, uncapped
    monthly_progress: Mapped[float] = mapped_column(Float, default=0.0)
    seasonal_progress: Mapped[float] = mapped_column(Float, default=0.0)

    # All-time aggregates
    total_activities: Mapped[int] = mapped_column(Integer, default=0)
    average_pace: Mapped[float] = mapped_column(Float, default=0.0)  # minutes per mile
    longest_run: Mapped[float] = mapped_column(Float, default=0.0)  # miles

    last_updated: Mapped[datetime] = mapped_column(DateTime)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="progress")

    def __repr__(self) -> str:
        return (
            f"<Progress(user_id={self.user_id}, monthly={self.monthly_mileage:.1f}/{self.monthly_goal}, "
            f"seasonal={self.seasonal_mileage:.1f}/{self.seasonal_goal})>"
        )
