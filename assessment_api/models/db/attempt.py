"""
Attempt and AttemptAnswer database models (the attempt ledger).
"""

from __future__ import annotations

import enum
import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_api.database import Base

if TYPE_CHECKING:
    from assessment_api.models.db.test import TestDefinition
    from assessment_api.models.db.user import User


class AttemptStatus(str, enum.Enum):
    """Status of a test attempt."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    TIMEOUT = "timeout"


TERMINAL_STATUSES = {
    AttemptStatus.COMPLETED.value,
    AttemptStatus.ABANDONED.value,
    AttemptStatus.TIMEOUT.value,
}


def empty_results() -> dict[str, Any]:
    """Results breakdown of an attempt with no answers."""
    return {
        "correctAnswers": 0,
        "incorrectAnswers": 0,
        "unansweredQuestions": 0,
        "questionsByDifficulty": {
            "easy": {"total": 0, "correct": 0},
            "medium": {"total": 0, "correct": 0},
            "hard": {"total": 0, "correct": 0},
        },
    }


class Attempt(Base):
    """
    Test attempt record.
    One row per (student, test, attempt number).
    """

    __tablename__ = "attempts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)

    # References
    test_id: Mapped[str] = mapped_column(
        ForeignKey("tests.id", ondelete="CASCADE"), index=True, nullable=False
    )
    student_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    course_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    attempt_number: Mapped[int] = mapped_column(nullable=False)

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    time_spent: Mapped[int] = mapped_column(default=0, nullable=False)  # minutes

    # Status and results
    status: Mapped[str] = mapped_column(
        String(20), default=AttemptStatus.IN_PROGRESS.value, nullable=False
    )
    question_count: Mapped[int] = mapped_column(default=0, nullable=False)
    score: Mapped[int] = mapped_column(default=0, nullable=False)
    total_points: Mapped[int] = mapped_column(default=0, nullable=False)
    earned_points: Mapped[int] = mapped_column(default=0, nullable=False)
    results_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Optimistic lock
    version: Mapped[int] = mapped_column(default=1, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "student_id", "test_id", "attempt_number", name="uq_attempt_number"
        ),
        Index(
            "uq_attempt_in_progress",
            "student_id",
            "test_id",
            unique=True,
            sqlite_where=sa.text("status = 'in_progress'"),
            postgresql_where=sa.text("status = 'in_progress'"),
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    test: Mapped["TestDefinition"] = relationship("TestDefinition", back_populates="attempts")
    student: Mapped["User"] = relationship("User", foreign_keys=[student_id])
    answers: Mapped[list["AttemptAnswer"]] = relationship(
        "AttemptAnswer",
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="AttemptAnswer.id",
    )

    @property
    def results(self) -> dict[str, Any]:
        """Parse results breakdown from JSON."""
        if not self.results_json:
            return empty_results()
        try:
            return json.loads(self.results_json)
        except (json.JSONDecodeError, TypeError):
            return empty_results()

    @results.setter
    def results(self, value: dict[str, Any]) -> None:
        """Serialize results breakdown to JSON."""
        self.results_json = json.dumps(value) if value else None

    @property
    def is_in_progress(self) -> bool:
        return self.status == AttemptStatus.IN_PROGRESS.value

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def find_answer(self, question_id: int) -> AttemptAnswer | None:
        """Find the stored answer for a question."""
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None


class AttemptAnswer(Base):
    """
    Answer to a single question within an attempt.
    Resubmitting overwrites the row for that question.
    """

    __tablename__ = "attempt_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[str] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[int] = mapped_column(nullable=False)

    answer: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_correct: Mapped[bool] = mapped_column(default=False, nullable=False)
    points: Mapped[int] = mapped_column(default=0, nullable=False)  # awarded
    max_points: Mapped[int] = mapped_column(default=0, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(10), default="medium", nullable=False)
    time_spent: Mapped[int] = mapped_column(default=0, nullable=False)  # seconds
    answered_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Constraints
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    # Relationships
    attempt: Mapped["Attempt"] = relationship("Attempt", back_populates="answers")
