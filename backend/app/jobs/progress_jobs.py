"""
Batch jobs that refresh every active user's data.

Each user is processed in its own session. A failure for one user is logged
and counted; it never stops the remaining users from being processed.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models.user import User
from app.services.activity_service import ActivityService, activity_service
from app.services.progress_service import ProgressService, progress_service
from app.services.strava_service import StravaAPIError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def _active_user_ids(session_factory: SessionFactory, strava_only: bool = False) -> list[int]:
    db = session_factory()
    try:
        query = db.query(User.id).filter(User.is_active.is_(True))
        if strava_only:
            query = query.filter(User.strava_refresh_token.isnot(None))
        return [row.id for row in query.order_by(User.id).all()]
    finally:
        db.close()


def refresh_all_progress(
    now: Optional[datetime] = None,
    session_factory: SessionFactory = SessionLocal,
    service: Optional[ProgressService] = None,
) -> dict[str, int]:
    """
    Recompute the progress snapshot of every active user.

    Args:
        now: Reference instant shared by all users (defaults to current UTC time)
        session_factory: Callable returning a new database session
        service: Progress service to use

    Returns:
        {"succeeded": count, "failed": count}
    """
    service = service or progress_service
    now = now or datetime.utcnow()
    user_ids = _active_user_ids(session_factory)

    logger.info(f"Refreshing progress for {len(user_ids)} active users")

    succeeded = 0
    failed = 0
    for user_id in user_ids:
        db = session_factory()
        try:
            service.update_progress(db, user_id, now=now)
            succeeded += 1
        except Exception as e:
            logger.error(f"Progress refresh failed for user {user_id}: {e}")
            failed += 1
        finally:
            db.close()

    logger.info(f"Progress refresh complete: {succeeded} succeeded, {failed} failed")
    return {"succeeded": succeeded, "failed": failed}


async def sync_all_activities(
    session_factory: SessionFactory = SessionLocal,
    service: Optional[ActivityService] = None,
) -> dict[str, int]:
    """
    Import new Strava activities for every active user with a Strava connection.

    Returns:
        {"succeeded": count, "failed": count, "synced": new activities stored}
    """
    service = service or activity_service
    user_ids = _active_user_ids(session_factory, strava_only=True)

    if not user_ids:
        logger.info("No active users with Strava connected found")
        return {"succeeded": 0, "failed": 0, "synced": 0}

    succeeded = 0
    failed = 0
    synced = 0
    for user_id in user_ids:
        db = session_factory()
        try:
            user = db.get(User, user_id)
            result = await service.sync_activities(db, user)
            synced += result["synced"]
            succeeded += 1
        except StravaAPIError as e:
            logger.error(f"Strava sync failed for user {user_id}: {e.message}")
            failed += 1
        except Exception as e:
            logger.error(f"Activity sync failed for user {user_id}: {e}")
            failed += 1
        finally:
            db.close()

    logger.info(f"Sync completed: {succeeded} successful, {failed} failed, {synced} new activities")
    return {"succeeded": succeeded, "failed": failed, "synced": synced}
