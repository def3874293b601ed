"""Service layer for test statistics calculation."""
import logging

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session as DbSession

from assessment_api import config
from assessment_api.models.db.attempt import Attempt, AttemptAnswer, AttemptStatus
from assessment_api.models.db.test import TestDefinition
from assessment_api.services.grading import round_half_up

logger = logging.getLogger(__name__)


def compute_statistics(scores: list[int], passing_score: int) -> dict[str, int]:
    """Aggregate attempt scores into totalAttempts/averageScore/passRate."""
    if not scores:
        return {"totalAttempts": 0, "averageScore": 0, "passRate": 0}

    total = len(scores)
    passed = sum(1 for score in scores if score >= passing_score)
    return {
        "totalAttempts": total,
        "averageScore": round_half_up(sum(scores) / total),
        "passRate": round_half_up(passed / total * 100),
    }


def load_attempt_scores(
    db: DbSession, test_id: str, include_in_progress: bool | None = None
) -> list[int]:
    """Load scores of every attempt of a test."""
    if include_in_progress is None:
        include_in_progress = config.STATS_INCLUDE_IN_PROGRESS

    query = select(Attempt.score).where(Attempt.test_id == test_id)
    if not include_in_progress:
        query = query.where(Attempt.status != AttemptStatus.IN_PROGRESS.value)

    return list(db.execute(query).scalars().all())


def recompute_test_statistics(
    db: DbSession,
    test: TestDefinition,
    include_in_progress: bool | None = None,
) -> dict[str, int]:
    """
    Recompute cached statistics of a test from the attempt ledger.

    The caller owns the transaction; this only flushes.
    """
    db.flush()
    scores = load_attempt_scores(db, test.id, include_in_progress)
    stats = compute_statistics(scores, test.passing_score)

    test.total_attempts = stats["totalAttempts"]
    test.average_score = stats["averageScore"]
    test.pass_rate = stats["passRate"]
    db.flush()

    logger.debug(f"Recomputed statistics for test {test.id}: {stats}")
    return stats


def question_breakdown(db: DbSession, test: TestDefinition) -> list[dict[str, object]]:
    """Per-question answer and correctness counts across all attempts."""
    rows = db.execute(
        select(
            AttemptAnswer.question_id,
            func.count(AttemptAnswer.id),
            func.sum(case((AttemptAnswer.is_correct == True, 1), else_=0)),  # noqa: E712
            func.avg(AttemptAnswer.time_spent),
        )
        .join(Attempt, Attempt.id == AttemptAnswer.attempt_id)
        .where(Attempt.test_id == test.id)
        .group_by(AttemptAnswer.question_id)
    ).all()
    counts = {
        question_id: (answered, int(correct or 0), float(avg_time or 0))
        for question_id, answered, correct, avg_time in rows
    }

    breakdown = []
    for question in test.questions:
        answered, correct, avg_time = counts.get(question.id, (0, 0, 0.0))
        breakdown.append(
            {
                "questionId": question.id,
                "position": question.position,
                "difficulty": question.difficulty,
                "answeredCount": answered,
                "correctCount": correct,
                "correctRate": round_half_up(correct / answered * 100) if answered else 0,
                "avgTimeSpent": avg_time,
            }
        )
    return breakdown


def get_test_statistics(db: DbSession, test: TestDefinition) -> dict[str, object]:
    """Cached statistics plus status counts and per-question breakdown."""
    status_rows = db.execute(
        select(Attempt.status, func.count(Attempt.id))
        .where(Attempt.test_id == test.id)
        .group_by(Attempt.status)
    ).all()
    by_status = {status.value: 0 for status in AttemptStatus}
    by_status.update({status: count for status, count in status_rows})

    return {
        "testId": test.id,
        "totalAttempts": test.total_attempts,
        "averageScore": test.average_score,
        "passRate": test.pass_rate,
        "passingScore": test.passing_score,
        "attemptsByStatus": by_status,
        "questions": question_breakdown(db, test),
    }
