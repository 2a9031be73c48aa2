"""Goal model for per-period mileage targets."""

import enum
from datetime import datetime
from datetime import date as date_type
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.user import User


class GoalType(str, enum.Enum):
    """Period a goal covers."""
    MONTHLY = "monthly"
    SEASONAL = "seasonal"


class Goal(Base):
    """
    Mileage target for one user and one period.

    ``goal_key`` is ``monthly_{year}_{month}`` or ``seasonal_{year}_{season}``;
    the unique constraint guarantees at most one goal per user per period.
    ``current`` and ``is_completed`` are written once at creation.
    """

    __tablename__ = "goals"
    __table_args__ = (
        UniqueConstraint("user_id", "goal_key", name="uq_goal_user_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    goal_key: Mapped[str] = mapped_column(String(50), index=True)
    goal_type: Mapped[str] = mapped_column(String(20))

    target: Mapped[float] = mapped_column(Float)  # miles
    current: Mapped[float] = mapped_column(Float, default=0.0)  # miles
    start_date: Mapped[date_type] = mapped_column(Date)
    end_date: Mapped[date_type] = mapped_column(Date)  # inclusive
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    # Period identity
    year: Mapped[int] = mapped_column(Integer)
    month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # monthly goals only
    season: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)  # seasonal goals only

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="goals")

    def __repr__(self) -> str:
        return f"<Goal(user_id={self.user_id}, key='{self.goal_key}', target={self.target})>"
