"""Database models."""
from assessment_api.models.db.user import User, Session, UserRole
from assessment_api.models.db.course import Course, Enrollment, EnrollmentStatus
from assessment_api.models.db.test import (
    Difficulty,
    GradingMethod,
    Question,
    QuestionType,
    TestDefinition,
)
from assessment_api.models.db.attempt import Attempt, AttemptAnswer, AttemptStatus

__all__ = [
    "User",
    "Session",
    "UserRole",
    "Course",
    "Enrollment",
    "EnrollmentStatus",
    "Difficulty",
    "GradingMethod",
    "Question",
    "QuestionType",
    "TestDefinition",
    "Attempt",
    "AttemptAnswer",
    "AttemptStatus",
]
