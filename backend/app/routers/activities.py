"""Activities API router for managing run/walk/hike activities."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.activity import Activity
from app.models.user import User
from app.schemas.activity import ActivityResponse, ActivitySyncResponse, ActivityUpdate
from app.services.activity_service import ActivityNotFoundError, activity_service
from app.services.auth_service import get_target_user
from app.services.progress_service import ProgressError
from app.services.strava_service import StravaAPIError

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_found(activity_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Activity with id {activity_id} not found",
    )


def _progress_failed(e: ProgressError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=e.message,
    )


@router.get("/", response_model=List[ActivityResponse])
async def list_activities(
    limit: int = Query(50, ge=1, le=200, description="Maximum number of records to return"),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    activity_type: Optional[str] = Query(None, alias="type", description="Filter by activity type (e.g., Run, Walk)"),
    start_date: Optional[datetime] = Query(None, description="Filter activities from this date"),
    end_date: Optional[datetime] = Query(None, description="Filter activities up to this date"),
    user: User = Depends(get_target_user),
    db: Session = Depends(get_db),
) -> List[Activity]:
    """
    List activities for the current user, newest first.

    Args:
        limit: Maximum number of records to return
        offset: Number of records to skip for pagination
        activity_type: Optional filter by activity type
        start_date: Optional filter for activities on or after this date
        end_date: Optional filter for activities on or before this date
        user: The authenticated user, or the admin-selected target user
        db: Database session

    Returns:
        List of activities
    """
    return activity_service.list_activities(
        db,
        user.id,
        limit=limit,
        offset=offset,
        activity_type=activity_type,
        start_date=start_date,
        end_date=end_date,
    )


@router.post("/sync", response_model=ActivitySyncResponse)
async def sync_activities(
    user: User = Depends(get_target_user),
    db: Session = Depends(get_db),
) -> ActivitySyncResponse:
    """
    Import new run, walk and hike activities from Strava.

    Existing activities are not modified. Progress is recomputed afterwards.

    Returns:
        Counts of new and fetched activities
    """
    try:
        logger.info(f"Syncing activities for user {user.id}")
        result = await activity_service.sync_activities(db, user)
    except StravaAPIError as e:
        logger.error(f"Strava API error during sync: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to sync activities from Strava: {e.message}",
        )
    except ProgressError as e:
        raise _progress_failed(e)

    return ActivitySyncResponse(**result)


@router.get("/{activity_id}", response_model=ActivityResponse)
async def get_activity(
    activity_id: int,
    user: User = Depends(get_target_user),
    db: Session = Depends(get_db),
) -> Activity:
    """
    Get activity details by ID.

    Raises:
        HTTPException: 404 if activity not found or doesn't belong to user
    """
    activity = activity_service.get_activity(db, user.id, activity_id)
    if activity is None:
        raise _not_found(activity_id)
    return activity


@router.put("/{activity_id}", response_model=ActivityResponse)
async def update_activity(
    activity_id: int,
    payload: ActivityUpdate,
    user: User = Depends(get_target_user),
    db: Session = Depends(get_db),
) -> Activity:
    """
    Edit an activity's name, type, distance, duration, pace, elevation or calories.

    Raises:
        HTTPException: 404 if activity not found or doesn't belong to user
    """
    try:
        return activity_service.update_activity(
            db, user.id, activity_id, payload.model_dump(exclude_unset=True)
        )
    except ActivityNotFoundError:
        raise _not_found(activity_id)
    except ProgressError as e:
        raise _progress_failed(e)


@router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_activity(
    activity_id: int,
    user: User = Depends(get_target_user),
    db: Session = Depends(get_db),
) -> None:
    """
    Delete an activity.

    Note: This only deletes from the local database, not from Strava.

    Raises:
        HTTPException: 404 if activity not found or doesn't belong to user
    """
    try:
        activity_service.delete_activity(db, user.id, activity_id)
    except ActivityNotFoundError:
        raise _not_found(activity_id)
    except ProgressError as e:
        raise _progress_failed(e)
