"""Progress and goals API routers."""

import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.goal import Goal
from app.models.progress import Progress
from app.models.user import User
from app.schemas.progress import CurrentGoalsResponse, GoalResponse, ProgressResponse
from app.services.auth_service import get_target_user
from app.services.periods import season_for_date
from app.services.progress_service import ProgressError, ProgressInputError, progress_service

logger = logging.getLogger(__name__)

router = APIRouter()
goals_router = APIRouter()


def _to_http_exception(e: ProgressError) -> HTTPException:
    if isinstance(e, ProgressInputError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)


@router.get("/", response_model=ProgressResponse)
async def get_progress(
    user: User = Depends(get_target_user),
    db: Session = Depends(get_db),
) -> Progress:
    """
    Get the stored progress snapshot.

    The snapshot is computed on first access and afterwards only refreshed by
    an explicit update, an activity change or the nightly batch job.
    """
    try:
        return progress_service.get_progress(db, user.id)
    except ProgressError as e:
        raise _to_http_exception(e)


@router.post("/update", response_model=ProgressResponse)
async def update_progress(
    user: User = Depends(get_target_user),
    db: Session = Depends(get_db),
) -> Progress:
    """Recompute the progress snapshot from the user's current activities."""
    try:
        return progress_service.update_progress(db, user.id)
    except ProgressError as e:
        raise _to_http_exception(e)


@goals_router.get("/", response_model=List[GoalResponse])
async def list_goals(
    user: User = Depends(get_target_user),
    db: Session = Depends(get_db),
) -> List[Goal]:
    """List every goal the user has had, newest period first."""
    return (
        db.query(Goal)
        .filter(Goal.user_id == user.id)
        .order_by(Goal.start_date.desc(), Goal.goal_type)
        .all()
    )


@goals_router.get("/current", response_model=CurrentGoalsResponse)
async def get_current_goals(
    user: User = Depends(get_target_user),
    db: Session = Depends(get_db),
) -> CurrentGoalsResponse:
    """Get the monthly and seasonal goals for today, creating them if needed."""
    now = datetime.utcnow()
    season, season_year = season_for_date(now)

    try:
        monthly = progress_service.get_or_create_monthly_goal(db, user.id, now.month, now.year)
        seasonal = progress_service.get_or_create_seasonal_goal(db, user.id, season, season_year)
    except ProgressError as e:
        raise _to_http_exception(e)

    return CurrentGoalsResponse(
        monthly=GoalResponse.model_validate(monthly),
        seasonal=GoalResponse.model_validate(seasonal),
    )
