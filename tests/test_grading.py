from datetime import datetime, timedelta, timezone

import pytest

from assessment_api.exceptions import NotInProgress
from assessment_api.models.db.attempt import Attempt, AttemptAnswer, AttemptStatus
from assessment_api.models.db.test import Question
from assessment_api.services.grading import (
    apply_score,
    calculate_score,
    complete_attempt,
    grade_answer,
    round_half_up,
)


def _choice_question(points: int = 2) -> Question:
    question = Question(id=1, position=0, text="Capital of France?", type="multiple_choice", points=points)
    question.options = [
        {"text": "Paris", "isCorrect": True},
        {"text": "London", "isCorrect": False},
    ]
    return question


def _answer(question_id: int, answer: str, is_correct: bool, points: int, max_points: int, difficulty: str = "medium") -> AttemptAnswer:
    return AttemptAnswer(
        question_id=question_id,
        answer=answer,
        is_correct=is_correct,
        points=points,
        max_points=max_points,
        difficulty=difficulty,
    )


def test_multiple_choice_correct_answer_earns_points() -> None:
    question = _choice_question()
    grade = grade_answer(question, "Paris")
    assert grade.is_correct is True
    assert grade.points == 2

    attempt = Attempt(status=AttemptStatus.IN_PROGRESS.value, question_count=1)
    attempt.answers.append(_answer(1, "Paris", grade.is_correct, grade.points, question.points))
    apply_score(attempt)
    assert attempt.score == 100


def test_multiple_choice_wrong_answer_scores_zero() -> None:
    question = _choice_question()
    grade = grade_answer(question, "London")
    assert grade.is_correct is False
    assert grade.points == 0

    attempt = Attempt(status=AttemptStatus.IN_PROGRESS.value, question_count=1)
    attempt.answers.append(_answer(1, "London", grade.is_correct, grade.points, question.points))
    apply_score(attempt)
    assert attempt.score == 0
    assert attempt.results["incorrectAnswers"] == 1


def test_multiple_choice_is_case_sensitive() -> None:
    assert grade_answer(_choice_question(), "paris").is_correct is False


def test_short_answer_ignores_case_and_whitespace() -> None:
    question = Question(id=2, position=0, text="Capital of Australia?", type="short_answer", correct_answer="Canberra", points=1)
    assert grade_answer(question, " canberra ").is_correct is True
    assert grade_answer(question, "Sydney").is_correct is False


def test_fill_blank_without_correct_answer_is_never_correct() -> None:
    question = Question(id=3, position=0, text="___ is blue", type="fill_blank", correct_answer=None, points=1)
    assert grade_answer(question, "sky").is_correct is False


def test_true_false_accepts_literals_only() -> None:
    question = Question(id=4, position=0, text="Water is wet", type="true_false", points=1)
    question.options = [
        {"text": "true", "isCorrect": True},
        {"text": "false", "isCorrect": False},
    ]
    assert grade_answer(question, "TRUE").is_correct is True
    assert grade_answer(question, "false").is_correct is False
    assert grade_answer(question, "yes").is_correct is False


def test_true_false_ignores_surrounding_whitespace() -> None:
    question = Question(id=5, position=0, text="Ice floats", type="true_false", points=1)
    question.options = [
        {"text": "True ", "isCorrect": True},
        {"text": " False", "isCorrect": False},
    ]
    assert [grade_answer(question, answer).is_correct for answer in ("true", "True", "True ")] == [
        True,
        True,
        True,
    ]
    assert grade_answer(question, "false").is_correct is False


def test_grading_is_deterministic() -> None:
    question = _choice_question()
    assert {grade_answer(question, "Paris") for _ in range(5)} == {grade_answer(question, "Paris")}


def test_calculate_score_breakdown() -> None:
    answers = [
        _answer(1, "Paris", True, 2, 2, "easy"),
        _answer(2, "Sydney", False, 0, 1, "hard"),
        _answer(3, "  ", False, 0, 1, "medium"),
    ]
    summary = calculate_score(answers, question_count=5)

    assert summary.total_points == 4
    assert summary.earned_points == 2
    assert summary.score == 50
    assert summary.results["correctAnswers"] == 1
    assert summary.results["incorrectAnswers"] == 1
    # one blank answer plus two questions never answered
    assert summary.results["unansweredQuestions"] == 3
    assert summary.results["questionsByDifficulty"]["easy"] == {"total": 1, "correct": 1}
    assert summary.results["questionsByDifficulty"]["hard"] == {"total": 1, "correct": 0}


def test_calculate_score_rounds_half_up() -> None:
    answers = [
        _answer(1, "a", True, 1, 1),
        _answer(2, "b", False, 0, 1),
        _answer(3, "c", False, 0, 6),
    ]
    # 1 / 8 = 12.5 %
    assert calculate_score(answers).score == 13
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4) == 2


def test_score_is_zero_without_points() -> None:
    summary = calculate_score([], question_count=3)
    assert summary.score == 0
    assert summary.total_points == 0
    assert summary.results["unansweredQuestions"] == 3


def test_score_stays_within_bounds() -> None:
    answers = [_answer(i, "x", True, 3, 3) for i in range(4)]
    assert calculate_score(answers).score == 100
    answers = [_answer(i, "x", False, 0, 3) for i in range(4)]
    assert calculate_score(answers).score == 0


def test_apply_score_leaves_status_alone() -> None:
    attempt = Attempt(status=AttemptStatus.IN_PROGRESS.value, question_count=1)
    attempt.answers.append(_answer(1, "Paris", True, 2, 2))
    apply_score(attempt)
    assert attempt.status == AttemptStatus.IN_PROGRESS.value
    assert attempt.completed_at is None


def test_complete_attempt_sets_terminal_fields() -> None:
    started = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)
    attempt = Attempt(status=AttemptStatus.IN_PROGRESS.value, started_at=started)
    complete_attempt(attempt, AttemptStatus.COMPLETED, started + timedelta(minutes=12, seconds=40))

    assert attempt.status == AttemptStatus.COMPLETED.value
    assert attempt.completed_at == started + timedelta(minutes=12, seconds=40)
    assert attempt.time_spent == 13


def test_complete_attempt_rejects_terminal_attempts() -> None:
    attempt = Attempt(status=AttemptStatus.ABANDONED.value)
    with pytest.raises(NotInProgress):
        complete_attempt(attempt)

    with pytest.raises(ValueError):
        complete_attempt(Attempt(status=AttemptStatus.IN_PROGRESS.value), AttemptStatus.IN_PROGRESS)
