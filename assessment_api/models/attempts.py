"""Attempt-related Pydantic models."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from assessment_api.models.tests import StudentTestView


class AnswerSubmitRequest(BaseModel):
    """Model for submitting an answer to one question."""

    questionId: int
    answer: str = Field(..., min_length=1)
    timeSpent: int = Field(0, ge=0)


class AnswerSubmitResponse(BaseModel):
    """Grading outcome of a submitted answer."""

    isCorrect: bool
    points: int
    totalScore: int
    earnedPoints: int
    totalPoints: int


class AttemptSummary(BaseModel):
    """Attempt summary."""

    id: str
    test: str
    student: int
    attemptNumber: int
    score: int
    totalPoints: int
    earnedPoints: int
    status: str
    startedAt: datetime
    completedAt: datetime | None
    timeSpent: int
    results: dict[str, Any]
    isPassed: bool


class StartAttemptResponse(BaseModel):
    """Model for a started attempt."""

    attemptId: str
    attempt: AttemptSummary
    test: StudentTestView


class FinishAttemptResponse(BaseModel):
    """Model for attempt completion response."""

    attempt: AttemptSummary
    isPassed: bool


class AttemptAnswerView(BaseModel):
    """Stored answer, with correctness only when review allows it."""

    questionId: int
    question: str | None = None
    answer: str
    isCorrect: bool | None = None
    points: int | None = None
    correctAnswer: str | None = None
    explanation: str | None = None
    timeSpent: int
    answeredAt: datetime


class AttemptResultResponse(BaseModel):
    """Detailed attempt results for review."""

    summary: AttemptSummary
    answers: list[AttemptAnswerView]
