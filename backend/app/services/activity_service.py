"""
Activity management service.

Handles listing, editing and deleting a user's activities, converting Strava
activity payloads into normalized miles/minutes records, and syncing new
activities from Strava. Every mutation recomputes the user's progress.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.models.activity import Activity, TRACKED_ACTIVITY_TYPES
from app.models.user import User
from app.services.periods import parse_iso_datetime
from app.services.progress_service import ProgressService, progress_service
from app.services.strava_service import StravaAPIError, StravaService, strava_service

logger = logging.getLogger(__name__)

METERS_TO_MILES = 0.000621371
METERS_TO_FEET = 3.28084

# Fields a user may change on an existing activity
EDITABLE_FIELDS = ("name", "activity_type", "distance", "duration", "pace", "elevation", "calories")
# Editable fields that cannot be cleared
REQUIRED_FIELDS = ("name", "activity_type", "distance", "duration")


class ActivityNotFoundError(Exception):
    """Exception raised when an activity does not exist for the user."""

    def __init__(self, activity_id: int):
        self.activity_id = activity_id
        super().__init__(f"Activity with id {activity_id} not found")


def meters_to_miles(meters: float) -> float:
    return meters * METERS_TO_MILES


def seconds_to_minutes(seconds: float) -> float:
    return seconds / 60


def calculate_pace(distance_miles: float, duration_minutes: float) -> float:
    """Minutes per mile, 0 when no distance was covered."""
    return duration_minutes / distance_miles if distance_miles > 0 else 0.0


def convert_strava_activity(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Convert a Strava activity summary into Activity column values.

    Args:
        raw: Activity summary from the Strava athlete activities endpoint

    Returns:
        Dict of Activity fields (miles, minutes, feet)
    """
    distance = meters_to_miles(raw.get("distance") or 0)
    duration = seconds_to_minutes(raw.get("moving_time") or 0)
    elevation_gain = raw.get("total_elevation_gain")

    return {
        "id": raw["id"],
        "name": raw.get("name", "Unnamed Activity"),
        "activity_type": raw.get("type", "Run"),
        "date": parse_iso_datetime(raw["start_date"]),
        "distance": distance,
        "duration": duration,
        "pace": calculate_pace(distance, duration),
        "elevation": elevation_gain * METERS_TO_FEET if elevation_gain is not None else None,
        "calories": raw.get("calories"),
        "route": (raw.get("map") or {}).get("summary_polyline"),
    }


class ActivityService:
    """CRUD and Strava sync for user activities."""

    SYNC_PAGE_SIZE = 200

    def __init__(
        self,
        strava: Optional[StravaService] = None,
        progress: Optional[ProgressService] = None,
    ):
        self.strava = strava or strava_service
        self.progress = progress or progress_service

    def list_activities(
        self,
        db: Session,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        activity_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[Activity]:
        """List a page of activities, newest first."""
        query = db.query(Activity).filter(Activity.user_id == user_id)

        if activity_type:
            query = query.filter(Activity.activity_type == activity_type)
        if start_date:
            query = query.filter(Activity.date >= start_date)
        if end_date:
            query = query.filter(Activity.date <= end_date)

        return query.order_by(Activity.date.desc()).offset(offset).limit(limit).all()

    def get_activity(self, db: Session, user_id: int, activity_id: int) -> Optional[Activity]:
        return (
            db.query(Activity)
            .filter(Activity.id == activity_id, Activity.user_id == user_id)
            .first()
        )

    def update_activity(
        self,
        db: Session,
        user_id: int,
        activity_id: int,
        updates: dict[str, Any],
    ) -> Activity:
        """
        Apply user edits to an activity and recompute progress.

        Only EDITABLE_FIELDS are applied; anything else in ``updates`` is ignored,
        as are attempts to null out a REQUIRED_FIELDS entry.

        Raises:
            ActivityNotFoundError: If the activity does not belong to the user
        """
        activity = self.get_activity(db, user_id, activity_id)
        if activity is None:
            raise ActivityNotFoundError(activity_id)

        for field in EDITABLE_FIELDS:
            if field not in updates:
                continue
            if updates[field] is None and field in REQUIRED_FIELDS:
                continue
            setattr(activity, field, updates[field])
        activity.updated_at = datetime.utcnow()
        db.commit()

        logger.info(f"Updated activity {activity_id} for user {user_id}")
        self.progress.update_progress(db, user_id)

        db.refresh(activity)
        return activity

    def delete_activity(self, db: Session, user_id: int, activity_id: int) -> None:
        """
        Delete an activity and recompute progress.

        Raises:
            ActivityNotFoundError: If the activity does not belong to the user
        """
        activity = self.get_activity(db, user_id, activity_id)
        if activity is None:
            raise ActivityNotFoundError(activity_id)

        db.delete(activity)
        db.commit()

        logger.info(f"Deleted activity {activity_id} for user {user_id}")
        self.progress.update_progress(db, user_id)

    async def ensure_fresh_token(self, db: Session, user: User) -> str:
        """Return a valid Strava access token, refreshing it when expired."""
        if not user.is_token_expired and user.strava_access_token:
            return user.strava_access_token

        if not user.strava_refresh_token:
            raise StravaAPIError("No Strava refresh token available", status_code=401)

        logger.info(f"Refreshing Strava token for user {user.id}")
        tokens = await self.strava.refresh_tokens(user.strava_refresh_token)
        user.strava_access_token = tokens["access_token"]
        user.strava_refresh_token = tokens.get("refresh_token", user.strava_refresh_token)
        user.strava_token_expires_at = tokens.get("expires_at")
        db.commit()
        return user.strava_access_token

    async def sync_activities(self, db: Session, user: User) -> dict[str, int]:
        """
        Import new run/walk/hike activities from Strava and recompute progress.

        Existing activities are left untouched.

        Returns:
            {"synced": new activities stored, "total": activities returned by Strava}

        Raises:
            StravaAPIError: If the Strava API request fails
        """
        access_token = await self.ensure_fresh_token(db, user)
        raw_activities = await self.strava.get_activities(
            access_token=access_token,
            page=1,
            per_page=self.SYNC_PAGE_SIZE,
        )

        synced = 0
        for raw in raw_activities:
            if raw.get("type") not in TRACKED_ACTIVITY_TYPES:
                continue
            if db.get(Activity, raw["id"]) is not None:
                continue

            db.add(Activity(user_id=user.id, synced_at=datetime.utcnow(), **convert_strava_activity(raw)))
            synced += 1

        user.last_activity_sync = datetime.utcnow()
        db.commit()

        logger.info(f"Sync complete for user {user.id}: {synced} new of {len(raw_activities)} fetched")
        self.progress.update_progress(db, user.id)

        return {"synced": synced, "total": len(raw_activities)}


activity_service = ActivityService()
