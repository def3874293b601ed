"""Course and enrollment facts consumed by the testing services."""
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from assessment_api.models.db.course import Course, Enrollment, EnrollmentStatus


class CourseDirectory(Protocol):
    """Read-only view of course ownership and enrollment."""

    def get_course_instructor(self, course_id: str) -> int | None:
        """Return the instructor id, or None when the course does not exist."""
        ...

    def is_enrolled(self, student_id: int, course_id: str) -> bool:
        """Check whether the student holds an active enrollment."""
        ...


class SqlCourseDirectory:
    """CourseDirectory backed by the ``courses`` and ``enrollments`` tables."""

    def __init__(self, db: DbSession) -> None:
        self.db = db

    def get_course_instructor(self, course_id: str) -> int | None:
        stmt = select(Course.instructor_id).where(Course.id == course_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def is_enrolled(self, student_id: int, course_id: str) -> bool:
        stmt = select(Enrollment.id).where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        return self.db.execute(stmt).first() is not None
