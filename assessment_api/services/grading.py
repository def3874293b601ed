"""Grading of submitted answers and score recomputation for attempts.

Nothing in this module touches the database or changes an attempt's status:
``grade_answer`` and ``calculate_score`` are pure, ``apply_score`` only writes
the computed numbers onto the attempt, and ``complete_attempt`` is the one
explicit terminal transition.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from assessment_api.exceptions import NotInProgress
from assessment_api.models.db.attempt import (
    TERMINAL_STATUSES,
    Attempt,
    AttemptAnswer,
    AttemptStatus,
    empty_results,
)
from assessment_api.models.db.test import Question, QuestionType
from assessment_api.utils.time_utils import minutes_between, utc_now

TRUE_FALSE_LITERALS = {"true", "false"}


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class GradeResult:
    """Outcome of grading one answer."""

    is_correct: bool
    points: int


@dataclass
class ScoreSummary:
    """Score of an attempt recomputed from its answers."""

    score: int = 0
    total_points: int = 0
    earned_points: int = 0
    results: dict[str, Any] = field(default_factory=empty_results)


def _is_correct(question: Question, answer: str) -> bool:
    if question.type == QuestionType.MULTIPLE_CHOICE.value:
        return any(option.get("text") == answer for option in question.correct_options)

    if question.type == QuestionType.TRUE_FALSE.value:
        normalized = answer.strip().lower()
        if normalized not in TRUE_FALSE_LITERALS:
            return False
        return any(
            str(option.get("text", "")).strip().lower() == normalized
            for option in question.correct_options
        )

    if question.type in {QuestionType.FILL_BLANK.value, QuestionType.SHORT_ANSWER.value}:
        if question.correct_answer is None:
            return False
        return answer.strip().lower() == question.correct_answer.strip().lower()

    return False


def grade_answer(question: Question, answer: str) -> GradeResult:
    """Grade a submitted answer. No partial credit."""
    is_correct = _is_correct(question, answer or "")
    return GradeResult(is_correct=is_correct, points=question.points if is_correct else 0)


def calculate_score(
    answers: Iterable[AttemptAnswer], question_count: int = 0
) -> ScoreSummary:
    """
    Recompute score and results breakdown from stored answers.

    Questions of the attempt with no stored answer count as unanswered.
    """
    summary = ScoreSummary()
    results = summary.results
    answered = 0

    for answer in answers:
        answered += 1
        summary.total_points += answer.max_points

        if answer.is_correct:
            summary.earned_points += answer.points
            results["correctAnswers"] += 1
        elif answer.answer and answer.answer.strip():
            results["incorrectAnswers"] += 1
        else:
            results["unansweredQuestions"] += 1

        bucket = results["questionsByDifficulty"].get(answer.difficulty)
        if bucket is not None:
            bucket["total"] += 1
            if answer.is_correct:
                bucket["correct"] += 1

    results["unansweredQuestions"] += max(0, question_count - answered)

    if summary.total_points > 0:
        summary.score = round_half_up(100 * summary.earned_points / summary.total_points)
    return summary


def apply_score(attempt: Attempt) -> ScoreSummary:
    """Write the recomputed score onto the attempt. Status is left untouched."""
    summary = calculate_score(attempt.answers, attempt.question_count)
    attempt.score = summary.score
    attempt.total_points = summary.total_points
    attempt.earned_points = summary.earned_points
    attempt.results = summary.results
    return summary


def complete_attempt(
    attempt: Attempt,
    status: AttemptStatus = AttemptStatus.COMPLETED,
    now: datetime | None = None,
) -> Attempt:
    """Move an in-progress attempt to a terminal status."""
    if status.value not in TERMINAL_STATUSES:
        raise ValueError(f"{status.value} is not a terminal status")
    if not attempt.is_in_progress:
        raise NotInProgress(attempt.status)

    now = now or utc_now()
    attempt.status = status.value
    attempt.completed_at = now
    attempt.updated_at = now
    attempt.time_spent = minutes_between(attempt.started_at, now)
    return attempt
