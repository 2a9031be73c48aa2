"""Mileage progress engine.

Computes a user's progress snapshot from their activities:
- Monthly and seasonal mileage for the period containing ``now``
- All-time activity count, average pace and longest run
- Percent of the current monthly and seasonal goal targets (uncapped)

Goals are created lazily the first time a period is seen, with a fixed
default target, and are never modified afterwards. The snapshot is fully
recomputed and overwritten on every call.

The goal upserts and the snapshot overwrite are separate commits. A failure
between them leaves goals in place without a fresh snapshot; the next call
recomputes everything from scratch.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.activity import Activity
from app.models.goal import Goal, GoalType
from app.models.progress import Progress
from app.services.periods import (
    Season,
    month_range,
    monthly_goal_key,
    season_for_date,
    season_range,
    seasonal_goal_key,
    to_utc_naive,
)

logger = logging.getLogger(__name__)


class ProgressError(Exception):
    """Base exception for progress computation failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProgressInputError(ProgressError):
    """Raised when the request cannot be processed, e.g. a missing user id."""
    pass


class ProgressStoreError(ProgressError):
    """Raised when the underlying store fails during a read or write."""
    pass


@dataclass
class ActivityTotals:
    """Aggregates over a user's activities relative to a reference instant."""

    monthly_mileage: float = 0.0
    seasonal_mileage: float = 0.0
    total_activities: int = 0
    average_pace: float = 0.0
    longest_run: float = 0.0


class ProgressService:
    """Compute and persist progress snapshots and current-period goals."""

    DEFAULT_MONTHLY_TARGET = 26.2  # miles, one marathon
    DEFAULT_SEASONAL_TARGET = 78.6  # miles, three marathons

    def summarize_activities(
        self,
        activities: Iterable[Activity],
        now: datetime,
    ) -> ActivityTotals:
        """
        Aggregate activities into period-scoped and all-time totals.

        Monthly mileage covers the calendar month of ``now``; seasonal mileage
        covers the season containing ``now``, including the previous December
        when ``now`` is in January or February.

        Args:
            activities: The user's complete activity set
            now: Reference instant

        Returns:
            ActivityTotals with zero values for an empty set
        """
        now = to_utc_naive(now)
        month_period = month_range(now.year, now.month)
        season, season_year = season_for_date(now)
        season_period = season_range(season, season_year)

        totals = ActivityTotals()
        paces = []

        for activity in activities:
            totals.total_activities += 1
            distance = activity.distance or 0.0

            if month_period.contains(activity.date):
                totals.monthly_mileage += distance
            if season_period.contains(activity.date):
                totals.seasonal_mileage += distance

            if activity.pace is not None:
                paces.append(activity.pace)
            totals.longest_run = max(totals.longest_run, distance)

        if paces:
            totals.average_pace = sum(paces) / len(paces)

        return totals

    @staticmethod
    def calculate_percentage(mileage: float, target: float) -> float:
        """Percent of target reached; values above 100 mean the goal was exceeded."""
        if target <= 0:
            return 0.0
        return mileage / target * 100

    def update_progress(
        self,
        db: Session,
        user_id: int,
        activities: Optional[Sequence[Activity]] = None,
        now: Optional[datetime] = None,
    ) -> Progress:
        """
        Recompute and overwrite the progress snapshot for a user.

        Args:
            db: Database session
            user_id: User to recompute
            activities: The user's complete activity set. Loaded from the
                database when omitted.
            now: Reference instant (defaults to the current UTC time)

        Returns:
            The persisted Progress row

        Raises:
            ProgressInputError: If user_id is missing
            ProgressStoreError: If any database operation fails
        """
        if not user_id:
            raise ProgressInputError("User ID is required")

        now = to_utc_naive(now) if now is not None else datetime.utcnow()

        try:
            if activities is None:
                activities = db.query(Activity).filter(Activity.user_id == user_id).all()

            totals = self.summarize_activities(activities, now)

            season, season_year = season_for_date(now)
            monthly_goal = self.get_or_create_monthly_goal(db, user_id, now.month, now.year)
            seasonal_goal = self.get_or_create_seasonal_goal(db, user_id, season, season_year)

            progress = self._save_snapshot(db, user_id, {
                "monthly_mileage": totals.monthly_mileage,
                "seasonal_mileage": totals.seasonal_mileage,
                "monthly_goal": monthly_goal.target,
                "seasonal_goal": seasonal_goal.target,
                "monthly_progress": self.calculate_percentage(
                    totals.monthly_mileage, monthly_goal.target
                ),
                "seasonal_progress": self.calculate_percentage(
                    totals.seasonal_mileage, seasonal_goal.target
                ),
                "last_updated": now,
                "total_activities": totals.total_activities,
                "average_pace": totals.average_pace,
                "longest_run": totals.longest_run,
            })

        except (SQLAlchemyError, ProgressStoreError) as e:
            db.rollback()
            logger.error(f"Error updating progress for user {user_id}: {e}")
            raise ProgressStoreError("Failed to update progress") from e

        logger.info(
            f"Updated progress for user {user_id}: {totals.total_activities} activities, "
            f"monthly {totals.monthly_mileage:.2f} mi, seasonal {totals.seasonal_mileage:.2f} mi"
        )
        return progress

    def get_progress(self, db: Session, user_id: int) -> Progress:
        """
        Get the stored progress snapshot, computing it on a cache miss.

        Raises:
            ProgressInputError: If user_id is missing
            ProgressStoreError: If any database operation fails
        """
        if not user_id:
            raise ProgressInputError("User ID is required")

        try:
            progress = self._find_progress(db, user_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error getting progress for user {user_id}: {e}")
            raise ProgressStoreError("Failed to get progress") from e

        if progress is not None:
            return progress

        logger.debug(f"No stored progress for user {user_id}, computing")
        return self.update_progress(db, user_id)

    def get_or_create_monthly_goal(
        self,
        db: Session,
        user_id: int,
        month: int,
        year: int,
    ) -> Goal:
        """Return the monthly goal for (user, month, year), creating it with the default target."""
        period = month_range(year, month)
        return self._get_or_create_goal(
            db,
            Goal(
                user_id=user_id,
                goal_key=monthly_goal_key(year, month),
                goal_type=GoalType.MONTHLY.value,
                target=self.DEFAULT_MONTHLY_TARGET,
                current=0.0,
                start_date=period.start,
                end_date=period.end,
                is_completed=False,
                month=month,
                year=year,
            ),
        )

    def get_or_create_seasonal_goal(
        self,
        db: Session,
        user_id: int,
        season: Season,
        year: int,
    ) -> Goal:
        """Return the seasonal goal for (user, season, year), creating it with the default target."""
        season = Season(season)
        period = season_range(season, year)
        return self._get_or_create_goal(
            db,
            Goal(
                user_id=user_id,
                goal_key=seasonal_goal_key(year, season),
                goal_type=GoalType.SEASONAL.value,
                target=self.DEFAULT_SEASONAL_TARGET,
                current=0.0,
                start_date=period.start,
                end_date=period.end,
                is_completed=False,
                season=season.value,
                year=year,
            ),
        )

    def _find_progress(self, db: Session, user_id: int) -> Optional[Progress]:
        return db.query(Progress).filter(Progress.user_id == user_id).first()

    def _save_snapshot(self, db: Session, user_id: int, values: dict) -> Progress:
        """
        Overwrite the user's snapshot row with ``values``, inserting it when absent.

        If a concurrent caller inserts the first snapshot between our lookup and
        commit, the unique constraint rejects our insert; the values are then
        written over the winner's row.
        """
        progress = self._find_progress(db, user_id)
        if progress is None:
            progress = Progress(user_id=user_id, **values)
            db.add(progress)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info(f"Progress for user {user_id} was created concurrently, overwriting")
                progress = self._find_progress(db, user_id)
                if progress is None:
                    raise
            else:
                db.refresh(progress)
                return progress

        for field, value in values.items():
            setattr(progress, field, value)
        db.commit()
        db.refresh(progress)
        return progress

    def _find_goal(self, db: Session, user_id: int, goal_key: str) -> Optional[Goal]:
        return (
            db.query(Goal)
            .filter(Goal.user_id == user_id, Goal.goal_key == goal_key)
            .first()
        )

    def _get_or_create_goal(self, db: Session, default_goal: Goal) -> Goal:
        """
        Look up a goal by its key, persisting ``default_goal`` when absent.

        An existing goal is returned untouched. If a concurrent caller creates
        the same key first, the unique constraint rejects our insert and the
        winner's row is returned instead.
        """
        user_id = default_goal.user_id
        goal_key = default_goal.goal_key

        try:
            existing = self._find_goal(db, user_id, goal_key)
            if existing is not None:
                logger.debug(f"Found goal {goal_key} for user {user_id}")
                return existing

            now = datetime.utcnow()
            default_goal.created_at = now
            default_goal.updated_at = now
            db.add(default_goal)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info(f"Goal {goal_key} for user {user_id} was created concurrently")
                existing = self._find_goal(db, user_id, goal_key)
                if existing is None:
                    raise
                return existing

            db.refresh(default_goal)
            logger.info(
                f"Created {default_goal.goal_type} goal {goal_key} for user {user_id} "
                f"with target {default_goal.target}"
            )
            return default_goal

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating goal {goal_key} for user {user_id}: {e}")
            raise ProgressStoreError(f"Failed to create {default_goal.goal_type} goal") from e


# Shared instance; the service holds no per-request state
progress_service = ProgressService()
