"""Test management endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session as DbSession

from assessment_api.database import get_db
from assessment_api.dependencies.auth import (
    get_course_directory,
    get_current_user,
    require_student,
    require_verified_teacher,
)
from assessment_api.exceptions import NotAuthorized
from assessment_api.models import (
    AttemptSummary,
    MessageResponse,
    StartAttemptResponse,
    TestCreate,
    TestResponse,
    TestStatisticsResponse,
    TestSummary,
    TestUpdate,
)
from assessment_api.models.db.user import User
from assessment_api.services import attempt_service, test_service
from assessment_api.services.course_directory import CourseDirectory
from assessment_api.services.stats_service import get_test_statistics
from assessment_api.utils import validate_id

router = APIRouter(prefix="/api/tests", tags=["tests"])


@router.post("", response_model=TestResponse, status_code=status.HTTP_201_CREATED)
def create_test(
    payload: TestCreate,
    current_user: Annotated[User, Depends(require_verified_teacher)],
    db: Annotated[DbSession, Depends(get_db)],
    directory: Annotated[CourseDirectory, Depends(get_course_directory)],
) -> dict[str, object]:
    """Create a test for one of the caller's courses."""
    test = test_service.create_test(db, directory, current_user, payload)
    return test_service.serialize_test(test)


@router.get("/course/{course_id}", response_model=list[TestSummary])
def list_course_tests(
    course_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
    directory: Annotated[CourseDirectory, Depends(get_course_directory)],
    published: bool | None = Query(None),
) -> list[dict[str, object]]:
    """List tests of a course, newest first."""
    course_id = validate_id("courseId", course_id)
    tests = test_service.list_course_tests(
        db, directory, current_user, course_id, published=published
    )
    return [test_service.serialize_summary(test) for test in tests]


@router.get("/{test_id}", response_model=None)
def get_test(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
    directory: Annotated[CourseDirectory, Depends(get_course_directory)],
) -> dict[str, object]:
    """Full test for its owner or an admin; a summary for enrolled students."""
    test_id = validate_id("testId", test_id)
    test = test_service.get_test(db, test_id)
    test_service.ensure_can_view(test, current_user, directory)

    if test_service.can_manage_test(test, current_user):
        return test_service.serialize_test(test)
    return test_service.serialize_summary(test)


@router.patch("/{test_id}", response_model=TestResponse)
def update_test(
    test_id: str,
    payload: TestUpdate,
    current_user: Annotated[User, Depends(require_verified_teacher)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Update content, settings or flags of a test."""
    test_id = validate_id("testId", test_id)
    test = test_service.update_test(db, current_user, test_id, payload)
    return test_service.serialize_test(test)


@router.delete("/{test_id}", response_model=MessageResponse)
def delete_test(
    test_id: str,
    current_user: Annotated[User, Depends(require_verified_teacher)],
    db: Annotated[DbSession, Depends(get_db)],
) -> MessageResponse:
    """Delete a test with its questions and attempts."""
    test_id = validate_id("testId", test_id)
    test_service.delete_test(db, current_user, test_id)
    return MessageResponse(message="Test deleted successfully")


@router.post(
    "/{test_id}/start",
    response_model=StartAttemptResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_attempt(
    test_id: str,
    current_user: Annotated[User, Depends(require_student)],
    db: Annotated[DbSession, Depends(get_db)],
    directory: Annotated[CourseDirectory, Depends(get_course_directory)],
) -> dict[str, object]:
    """Start a new attempt and return the questions without answers."""
    test_id = validate_id("testId", test_id)
    attempt, test = attempt_service.start_attempt(db, directory, current_user, test_id)
    return {
        "attemptId": attempt.id,
        "attempt": attempt_service.serialize_attempt_summary(attempt),
        "test": test_service.serialize_student_view(test, seed=attempt.id),
    }


@router.get("/{test_id}/attempts", response_model=list[AttemptSummary])
def list_attempts(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
    directory: Annotated[CourseDirectory, Depends(get_course_directory)],
) -> list[dict[str, object]]:
    """All attempts for the owner; the caller's own attempts otherwise."""
    test_id = validate_id("testId", test_id)
    attempts = attempt_service.list_test_attempts(db, directory, current_user, test_id)
    return [attempt_service.serialize_attempt_summary(attempt) for attempt in attempts]


@router.get("/{test_id}/statistics", response_model=TestStatisticsResponse)
def get_statistics(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Cached statistics and per-question breakdown for the owner."""
    test_id = validate_id("testId", test_id)
    test = test_service.get_test(db, test_id)
    if not test_service.can_manage_test(test, current_user):
        raise NotAuthorized("Not authorized to view test statistics")
    return get_test_statistics(db, test)
