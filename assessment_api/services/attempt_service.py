"""Service layer for the attempt lifecycle.

Start, answer, finish, abandon and time out attempts. Every public function
commits once or rolls back; storage-level conflicts surface as
``ConcurrentAttemptConflict``.
"""
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session as DbSession, selectinload
from sqlalchemy.orm.exc import StaleDataError

from assessment_api.exceptions import (
    AttemptInProgress,
    AttemptLimitExceeded,
    AttemptNotFound,
    ConcurrentAttemptConflict,
    InvalidState,
    NotAuthorized,
    NotAvailable,
    NotEnrolled,
    NotInProgress,
    NotOwner,
    QuestionNotFound,
    TransientStorageError,
)
from assessment_api.models.db.attempt import (
    Attempt,
    AttemptAnswer,
    AttemptStatus,
)
from assessment_api.models.db.test import Question, TestDefinition
from assessment_api.models.db.user import User
from assessment_api.services.course_directory import CourseDirectory
from assessment_api.services.grading import (
    apply_score,
    complete_attempt,
    grade_answer,
)
from assessment_api.services.stats_service import recompute_test_statistics
from assessment_api.services.test_service import can_manage_test, get_test
from assessment_api.utils.time_utils import as_utc, utc_now

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: DbSession, action: str) -> Iterator[None]:
    """Run a block of mutations and commit it once, translating storage failures."""
    try:
        yield
        db.commit()
    except (IntegrityError, StaleDataError) as e:
        db.rollback()
        logger.warning(f"Concurrent modification while trying to {action}: {e}")
        raise ConcurrentAttemptConflict() from e
    except OperationalError as e:
        db.rollback()
        logger.error(f"Storage failure while trying to {action}: {e}")
        raise TransientStorageError() from e
    except Exception:
        db.rollback()
        raise


def get_attempt(db: DbSession, attempt_id: str) -> Attempt:
    """Load an attempt with its answers and test, or raise AttemptNotFound."""
    attempt = db.execute(
        select(Attempt)
        .options(
            selectinload(Attempt.answers),
            selectinload(Attempt.test).selectinload(TestDefinition.questions),
        )
        .where(Attempt.id == attempt_id)
    ).scalar_one_or_none()
    if attempt is None:
        raise AttemptNotFound(attempt_id)
    return attempt


def _get_owned_attempt(db: DbSession, student: User, attempt_id: str) -> Attempt:
    attempt = get_attempt(db, attempt_id)
    if attempt.student_id != student.id:
        logger.warning(f"User {student.id} tried to modify attempt {attempt_id}")
        raise NotOwner()
    return attempt


def count_attempts(db: DbSession, student_id: int, test_id: str) -> int:
    """Count attempts of any status for a student and test."""
    return db.execute(
        select(func.count(Attempt.id)).where(
            Attempt.student_id == student_id,
            Attempt.test_id == test_id,
        )
    ).scalar() or 0


def find_in_progress(db: DbSession, student_id: int, test_id: str) -> Attempt | None:
    """Get the in-progress attempt of a student for a test, if any."""
    return db.execute(
        select(Attempt).where(
            Attempt.student_id == student_id,
            Attempt.test_id == test_id,
            Attempt.status == AttemptStatus.IN_PROGRESS.value,
        )
    ).scalar_one_or_none()


def deadline(attempt: Attempt, test: TestDefinition) -> datetime | None:
    """When the attempt runs out of time, or None without a time limit."""
    if test.time_limit <= 0:
        return None
    return as_utc(attempt.started_at) + timedelta(minutes=test.time_limit)


def is_overdue(attempt: Attempt, test: TestDefinition, now: datetime | None = None) -> bool:
    limit = deadline(attempt, test)
    if limit is None or not attempt.is_in_progress:
        return False
    return (now or utc_now()) > limit


def _expire(db: DbSession, attempt: Attempt, test: TestDefinition, now: datetime) -> None:
    apply_score(attempt)
    complete_attempt(attempt, AttemptStatus.TIMEOUT, now)
    recompute_test_statistics(db, test)
    logger.info(
        f"Attempt {attempt.id} of student {attempt.student_id} timed out "
        f"with score {attempt.score}"
    )


def start_attempt(
    db: DbSession,
    directory: CourseDirectory,
    student: User,
    test_id: str,
) -> tuple[Attempt, TestDefinition]:
    """
    Start a new attempt.

    Raises TestNotFound, NotAvailable, NotEnrolled, AttemptLimitExceeded,
    AttemptInProgress or ConcurrentAttemptConflict.
    """
    test = get_test(db, test_id)
    now = utc_now()

    current = find_in_progress(db, student.id, test.id)
    if current is not None and is_overdue(current, test, now):
        with unit_of_work(db, "expire an overdue attempt"):
            _expire(db, current, test, now)
        current = None

    if not test.is_available(now):
        raise NotAvailable()

    if not directory.is_enrolled(student.id, test.course_id):
        logger.warning(f"Student {student.id} is not enrolled in course {test.course_id}")
        raise NotEnrolled()

    existing = count_attempts(db, student.id, test.id)
    if existing >= test.max_attempts:
        raise AttemptLimitExceeded(test.max_attempts)

    if current is not None:
        raise AttemptInProgress(current.id)

    attempt = Attempt(
        id=uuid.uuid4().hex,
        test_id=test.id,
        student_id=student.id,
        course_id=test.course_id,
        attempt_number=existing + 1,
        status=AttemptStatus.IN_PROGRESS.value,
        started_at=now,
        updated_at=now,
        question_count=len(test.questions),
    )
    apply_score(attempt)
    with unit_of_work(db, "start an attempt"):
        db.add(attempt)
        recompute_test_statistics(db, test)
    db.refresh(attempt)

    logger.info(
        f"Student {student.id} started attempt #{attempt.attempt_number} "
        f"({attempt.id}) of test {test.id}"
    )
    return attempt, test


def submit_answer(
    db: DbSession,
    student: User,
    attempt_id: str,
    question_id: int,
    answer: str,
    time_spent: int = 0,
) -> dict[str, Any]:
    """
    Grade and store an answer. Resubmission replaces the stored answer.

    The attempt's status is never changed here.
    """
    attempt = _get_owned_attempt(db, student, attempt_id)
    test = attempt.test
    now = utc_now()

    if is_overdue(attempt, test, now):
        with unit_of_work(db, "expire an overdue attempt"):
            _expire(db, attempt, test, now)
        raise InvalidState(attempt.status)

    if not attempt.is_in_progress:
        raise InvalidState(attempt.status)

    question = test.find_question(question_id)
    if question is None:
        raise QuestionNotFound(question_id)

    grade = grade_answer(question, answer)

    with unit_of_work(db, "submit an answer"):
        stored = attempt.find_answer(question_id)
        if stored is None:
            stored = AttemptAnswer(question_id=question_id)
            attempt.answers.append(stored)
        stored.answer = answer
        stored.is_correct = grade.is_correct
        stored.points = grade.points
        stored.max_points = question.points
        stored.difficulty = question.difficulty
        stored.time_spent = time_spent
        stored.answered_at = now

        apply_score(attempt)
        attempt.updated_at = now

    logger.debug(
        f"Attempt {attempt.id}: question {question_id} graded "
        f"{'correct' if grade.is_correct else 'incorrect'}, score {attempt.score}"
    )
    return {
        "isCorrect": grade.is_correct,
        "points": grade.points,
        "totalScore": attempt.score,
        "earnedPoints": attempt.earned_points,
        "totalPoints": attempt.total_points,
    }


def finish_attempt(
    db: DbSession, student: User, attempt_id: str
) -> tuple[Attempt, TestDefinition, bool]:
    """Complete an attempt and refresh the test statistics."""
    attempt = _get_owned_attempt(db, student, attempt_id)
    test = attempt.test

    if not attempt.is_in_progress:
        raise NotInProgress(attempt.status)

    with unit_of_work(db, "finish an attempt"):
        apply_score(attempt)
        complete_attempt(attempt, AttemptStatus.COMPLETED)
        recompute_test_statistics(db, test)

    is_passed = attempt.score >= test.passing_score
    logger.info(
        f"Student {student.id} completed attempt {attempt.id} of test {test.id}: "
        f"score {attempt.score}, passed={is_passed}"
    )
    return attempt, test, is_passed


def abandon_attempt(db: DbSession, student: User, attempt_id: str) -> Attempt:
    """Give up an in-progress attempt. It still counts towards maxAttempts."""
    attempt = _get_owned_attempt(db, student, attempt_id)
    if not attempt.is_in_progress:
        raise NotInProgress(attempt.status)

    with unit_of_work(db, "abandon an attempt"):
        apply_score(attempt)
        complete_attempt(attempt, AttemptStatus.ABANDONED)
        recompute_test_statistics(db, attempt.test)

    logger.info(f"Student {student.id} abandoned attempt {attempt.id}")
    return attempt


def expire_overdue_attempts(db: DbSession, now: datetime | None = None) -> int:
    """Move every overdue in-progress attempt to timeout."""
    now = now or utc_now()
    candidates = db.execute(
        select(Attempt)
        .join(TestDefinition, TestDefinition.id == Attempt.test_id)
        .options(selectinload(Attempt.answers), selectinload(Attempt.test))
        .where(
            Attempt.status == AttemptStatus.IN_PROGRESS.value,
            TestDefinition.time_limit > 0,
        )
    ).scalars().all()

    overdue = [attempt for attempt in candidates if is_overdue(attempt, attempt.test, now)]
    if not overdue:
        return 0

    touched: dict[str, TestDefinition] = {}
    with unit_of_work(db, "expire overdue attempts"):
        for attempt in overdue:
            apply_score(attempt)
            complete_attempt(attempt, AttemptStatus.TIMEOUT, now)
            touched[attempt.test_id] = attempt.test
        for test in touched.values():
            recompute_test_statistics(db, test)

    expired = len(overdue)
    logger.info(f"Timed out {expired} attempts across {len(touched)} tests")
    return expired


def list_test_attempts(
    db: DbSession,
    directory: CourseDirectory,
    user: User,
    test_id: str,
) -> list[Attempt]:
    """Owner and admin see every attempt; enrolled students only their own."""
    test = get_test(db, test_id)
    query = (
        select(Attempt)
        .options(selectinload(Attempt.test))
        .where(Attempt.test_id == test.id)
    )

    if not can_manage_test(test, user):
        if not directory.is_enrolled(user.id, test.course_id):
            raise NotAuthorized("Not authorized to view test attempts")
        query = query.where(Attempt.student_id == user.id)

    query = query.order_by(Attempt.started_at.desc(), Attempt.attempt_number.desc())
    return list(db.execute(query).scalars().all())


def serialize_attempt_summary(attempt: Attempt) -> dict[str, Any]:
    """Attempt summary, passed against the test's own passing score."""
    return {
        "id": attempt.id,
        "test": attempt.test_id,
        "student": attempt.student_id,
        "attemptNumber": attempt.attempt_number,
        "score": attempt.score,
        "totalPoints": attempt.total_points,
        "earnedPoints": attempt.earned_points,
        "status": attempt.status,
        "startedAt": attempt.started_at,
        "completedAt": attempt.completed_at,
        "timeSpent": attempt.time_spent,
        "results": attempt.results,
        "isPassed": attempt.is_terminal and attempt.score >= attempt.test.passing_score,
    }


def get_attempt_result(db: DbSession, user: User, attempt_id: str) -> dict[str, Any]:
    """
    Detailed results for review.

    Students see correctness only after the attempt ends and only as far as
    the test's review settings allow.
    """
    attempt = get_attempt(db, attempt_id)
    test = attempt.test

    if can_manage_test(test, user):
        reveal = show_answers = show_explanations = True
    elif attempt.student_id == user.id:
        reveal = attempt.is_terminal and test.allow_review
        show_answers = reveal and test.show_correct_answers
        show_explanations = reveal and test.show_explanations
    else:
        raise NotOwner("Not authorized to view this attempt")

    answers = []
    for stored in attempt.answers:
        question = test.find_question(stored.question_id)
        view: dict[str, Any] = {
            "questionId": stored.question_id,
            "question": question.text if question else None,
            "answer": stored.answer,
            "timeSpent": stored.time_spent,
            "answeredAt": stored.answered_at,
        }
        if reveal:
            view["isCorrect"] = stored.is_correct
            view["points"] = stored.points
        if show_answers and question is not None:
            view["correctAnswer"] = _correct_answer_text(question)
        if show_explanations and question is not None:
            view["explanation"] = question.explanation
        answers.append(view)

    return {"summary": serialize_attempt_summary(attempt), "answers": answers}


def _correct_answer_text(question: Question) -> str | None:
    if question.correct_answer:
        return question.correct_answer
    correct = [str(option.get("text", "")) for option in question.correct_options]
    return ", ".join(correct) if correct else None
