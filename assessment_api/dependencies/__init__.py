"""FastAPI dependencies."""
from assessment_api.dependencies.auth import (
    get_course_directory,
    get_current_user,
    require_student,
    require_verified_teacher,
)

__all__ = [
    "get_course_directory",
    "get_current_user",
    "require_student",
    "require_verified_teacher",
]
