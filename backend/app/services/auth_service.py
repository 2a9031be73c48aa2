"""
Bearer-token authentication for the API.

Access tokens are HS256 JWTs whose ``sub`` claim is the user id. Routes act on
the caller's own data unless an admin names another user with ``?user_id=``.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ACCESS_TOKEN_TYPE = "access"


class AuthenticationError(Exception):
    """Token could not be verified."""
    pass


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Issue an access token for ``user_id``, valid for ``expires_delta`` or the configured lifetime."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> int:
    """
    Decode an access token and return its user id.

    Raises:
        AuthenticationError: Bad signature, expired, wrong type or bad subject
    """
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise AuthenticationError(f"Invalid token: {e}")

    subject = claims.get("sub")
    if subject is None:
        raise AuthenticationError("Invalid token: missing subject")
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthenticationError("Invalid token type")

    try:
        return int(subject)
    except ValueError:
        raise AuthenticationError("Invalid token: malformed subject")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from the bearer token.

    Raises:
        HTTPException: 401 for a missing or invalid token, or a deactivated account
        HTTPException: 404 if the token names a user that no longer exists
    """
    if credentials is None:
        raise _unauthorized()

    try:
        user_id = verify_token(credentials.credentials)
    except AuthenticationError as e:
        logger.warning(f"Authentication failed: {e}")
        raise _unauthorized()

    user = db.get(User, user_id)
    if user is None:
        logger.warning(f"Token for unknown user {user_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if not user.is_active:
        logger.warning(f"Inactive user {user_id} attempted access")
        raise _unauthorized()

    return user


async def get_target_user(
    user_id: Optional[int] = Query(None, description="Target user ID (admin only)"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    """
    FastAPI dependency resolving the user a request acts on.

    Defaults to the authenticated caller. Admins may pass ``user_id`` to act on
    another user's data.

    Raises:
        HTTPException: 403 if a non-admin targets another user
        HTTPException: 404 if the target user does not exist
    """
    if user_id is None or user_id == current_user.id:
        return current_user

    if not current_user.is_admin:
        logger.warning(f"User {current_user.id} attempted to access data of user {user_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    target = db.query(User).filter(User.id == user_id).first()
    if target is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found",
        )

    logger.info(f"Admin {current_user.id} acting on user {user_id}")
    return target
