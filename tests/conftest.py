from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session as DbSession, sessionmaker
from sqlalchemy.pool import StaticPool

import assessment_api.models.db  # noqa: F401
from assessment_api.app import app
from assessment_api.database import Base, get_db
from assessment_api.models.db.course import Course, Enrollment
from assessment_api.models.db.test import TestDefinition
from assessment_api.models.db.user import User, UserRole
from assessment_api.models.tests import TestCreate
from assessment_api.services import test_service
from assessment_api.services.auth_service import create_access_token, create_session
from assessment_api.services.course_directory import SqlCourseDirectory

COURSE_ID = "course-geo"


def default_questions() -> list[dict[str, object]]:
    return [
        {
            "question": "Capital of France?",
            "type": "multiple_choice",
            "options": [
                {"text": "Paris", "isCorrect": True},
                {"text": "London", "isCorrect": False},
            ],
            "points": 2,
            "difficulty": "easy",
        },
        {
            "question": "Capital of Australia?",
            "type": "short_answer",
            "correctAnswer": "Canberra",
            "points": 1,
            "difficulty": "hard",
        },
        {
            "question": "The Nile is in Africa.",
            "type": "true_false",
            "options": [
                {"text": "true", "isCorrect": True},
                {"text": "false", "isCorrect": False},
            ],
            "points": 1,
        },
    ]


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[DbSession]:
    session = session_factory()
    yield session
    session.close()


def _make_user(db: DbSession, username: str, role: UserRole, is_verified: bool = True) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password="not-a-real-hash",
        role=role.value,
        is_verified=is_verified,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def teacher(db: DbSession) -> User:
    return _make_user(db, "teacher", UserRole.TEACHER)


@pytest.fixture
def other_teacher(db: DbSession) -> User:
    return _make_user(db, "other_teacher", UserRole.TEACHER)


@pytest.fixture
def unverified_teacher(db: DbSession) -> User:
    return _make_user(db, "new_teacher", UserRole.TEACHER, is_verified=False)


@pytest.fixture
def admin(db: DbSession) -> User:
    return _make_user(db, "admin", UserRole.ADMIN)


@pytest.fixture
def student(db: DbSession, course: Course) -> User:
    user = _make_user(db, "student", UserRole.STUDENT, is_verified=False)
    db.add(Enrollment(course_id=course.id, student_id=user.id))
    db.commit()
    return user


@pytest.fixture
def outsider(db: DbSession, course: Course) -> User:
    """Student without an enrollment in the course."""
    return _make_user(db, "outsider", UserRole.STUDENT, is_verified=False)


@pytest.fixture
def course(db: DbSession, teacher: User) -> Course:
    course = Course(id=COURSE_ID, title="Geography", instructor_id=teacher.id)
    db.add(course)
    db.commit()
    return course


@pytest.fixture
def directory(db: DbSession) -> SqlCourseDirectory:
    return SqlCourseDirectory(db)


@pytest.fixture
def make_test(
    db: DbSession, course: Course, teacher: User, directory: SqlCourseDirectory
) -> Callable[..., TestDefinition]:
    """Create a published test; keyword arguments override settings."""

    def _make(
        questions: list[dict[str, object]] | None = None,
        is_published: bool = True,
        **settings: object,
    ) -> TestDefinition:
        payload = TestCreate(
            title="Geography basics",
            course=course.id,
            questions=questions if questions is not None else default_questions(),
            settings={"shuffleQuestions": False, "shuffleOptions": False, **settings},
            isPublished=is_published,
        )
        return test_service.create_test(db, directory, teacher, payload)

    return _make


@pytest.fixture
def client(session_factory: sessionmaker) -> TestClient:
    def _override_get_db() -> Iterator[DbSession]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db: DbSession) -> Callable[[User], dict[str, str]]:
    """Issue a bearer token with a live session for a user."""

    def _headers(user: User) -> dict[str, str]:
        token, jti = create_access_token(user.id, user.role)
        create_session(db, user.id, jti, datetime.now(timezone.utc) + timedelta(hours=1))
        return {"Authorization": f"Bearer {token}"}

    return _headers
