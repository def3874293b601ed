"""Authentication and role dependencies for FastAPI."""
import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session as DbSession

from assessment_api.database import get_db
from assessment_api.exceptions import NotAuthorized
from assessment_api.models.db.user import User
from assessment_api.services.auth_service import (
    extend_session,
    get_active_session,
    get_user_by_id,
    verify_token,
)
from assessment_api.services.course_directory import CourseDirectory, SqlCourseDirectory

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for JWT
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[DbSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user.

    Raises:
        HTTPException: 401 if not authenticated or token is invalid.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    # Check if session is still active
    jti = payload.get("jti")
    if jti:
        session = get_active_session(db, jti)
        if session is None:
            raise _unauthorized("Session expired or invalidated")
        # Extend session on activity
        extend_session(db, session)

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized("Invalid token payload")

    user = get_user_by_id(db, int(user_id))
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("User is inactive")

    return user


async def require_verified_teacher(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Verified teachers and admins may author tests."""
    if user.is_admin:
        return user
    if user.is_teacher and user.is_verified:
        return user
    logger.warning(f"User {user.id} ({user.role}) denied test authoring")
    raise NotAuthorized("Only verified teachers can manage tests")


async def require_student(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Students take tests; admins may too."""
    if user.is_student or user.is_admin:
        return user
    logger.warning(f"User {user.id} ({user.role}) denied taking a test")
    raise NotAuthorized("Only students can take tests")


def get_course_directory(
    db: Annotated[DbSession, Depends(get_db)],
) -> CourseDirectory:
    """Course ownership and enrollment lookups backed by the database."""
    return SqlCourseDirectory(db)
