"""Typed errors raised by the service layer.

Every error carries an HTTP status, a stable ``error_code`` and optional
details. Routes let them propagate; ``app.py`` renders them uniformly.
"""
from typing import Any

from fastapi import status


class AppError(Exception):
    """Base application error with structured information."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Validation
class ValidationError(AppError):
    """Malformed or out-of-range input. Carries every violation found."""

    def __init__(self, errors: list[dict[str, str]], message: str = "Validation failed"):
        self.errors = errors
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            details={"errors": errors},
        )


# Authorization
class AuthorizationError(AppError):
    """Role or ownership mismatch."""

    def __init__(
        self,
        message: str = "Access denied",
        error_code: str = "NOT_AUTHORIZED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=error_code,
            details=details,
        )


class NotAuthorized(AuthorizationError):
    def __init__(self, message: str = "Not authorized") -> None:
        super().__init__(message=message, error_code="NOT_AUTHORIZED")


class NotOwner(AuthorizationError):
    def __init__(self, message: str = "Attempt belongs to another student") -> None:
        super().__init__(message=message, error_code="NOT_OWNER")


class NotEnrolled(AuthorizationError):
    def __init__(
        self, message: str = "You must be enrolled in the course to take this test"
    ) -> None:
        super().__init__(message=message, error_code="NOT_ENROLLED")


# Not found
class NotFoundError(AppError):
    """Referenced entity is absent."""

    def __init__(self, resource: str, resource_id: object, error_code: str) -> None:
        super().__init__(
            message=f"{resource} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code,
            details={"id": str(resource_id)},
        )


class TestNotFound(NotFoundError):
    __test__ = False  # not a pytest test class

    def __init__(self, test_id: str) -> None:
        super().__init__("Test", test_id, "TEST_NOT_FOUND")


class AttemptNotFound(NotFoundError):
    def __init__(self, attempt_id: str) -> None:
        super().__init__("Test attempt", attempt_id, "ATTEMPT_NOT_FOUND")


class QuestionNotFound(NotFoundError):
    def __init__(self, question_id: int) -> None:
        super().__init__("Question", question_id, "QUESTION_NOT_FOUND")


class CourseNotFound(NotFoundError):
    def __init__(self, course_id: str) -> None:
        super().__init__("Course", course_id, "COURSE_NOT_FOUND")


# Business-rule rejections
class StateConflict(AppError):
    """Operation rejected by the attempt state machine or its limits."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class NotAvailable(StateConflict):
    def __init__(self) -> None:
        super().__init__(
            "Test is not available",
            "NOT_AVAILABLE",
            status_code=status.HTTP_403_FORBIDDEN,
        )


class AttemptInProgress(StateConflict):
    def __init__(self, attempt_id: str) -> None:
        super().__init__(
            "You already have an in-progress attempt for this test",
            "ATTEMPT_IN_PROGRESS",
            details={"attemptId": attempt_id},
        )


class AttemptLimitExceeded(StateConflict):
    def __init__(self, max_attempts: int) -> None:
        super().__init__(
            "Maximum attempts reached for this test",
            "ATTEMPT_LIMIT_EXCEEDED",
            details={"maxAttempts": max_attempts},
        )


class NotInProgress(StateConflict):
    def __init__(self, current_status: str) -> None:
        super().__init__(
            "Test attempt is not in progress",
            "NOT_IN_PROGRESS",
            details={"status": current_status},
        )


class InvalidState(StateConflict):
    def __init__(self, current_status: str) -> None:
        super().__init__(
            "Answers can only be submitted to an in-progress attempt",
            "INVALID_STATE",
            details={"status": current_status},
        )


class QuestionsLocked(StateConflict):
    def __init__(self, in_progress: int) -> None:
        super().__init__(
            "Questions cannot be replaced while attempts are in progress",
            "QUESTIONS_LOCKED",
            status_code=status.HTTP_409_CONFLICT,
            details={"inProgressAttempts": in_progress},
        )


class ConcurrentAttemptConflict(StateConflict):
    def __init__(self, message: str = "Attempt was modified by a concurrent request") -> None:
        super().__init__(
            message,
            "CONCURRENT_ATTEMPT_CONFLICT",
            status_code=status.HTTP_409_CONFLICT,
        )


# Infrastructure
class TransientStorageError(AppError):
    """Persistence round trip failed; safe to retry with backoff."""

    def __init__(self, message: str = "Storage temporarily unavailable") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="STORAGE_UNAVAILABLE",
            details={"retryable": True},
        )
