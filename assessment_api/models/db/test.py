"""
TestDefinition and Question database models.
"""

from __future__ import annotations

import enum
import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_api.database import Base
from assessment_api.utils.time_utils import as_utc

if TYPE_CHECKING:
    from assessment_api.models.db.attempt import Attempt


class QuestionType(str, enum.Enum):
    """Supported question types."""

    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    SHORT_ANSWER = "short_answer"


class Difficulty(str, enum.Enum):
    """Question difficulty."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class GradingMethod(str, enum.Enum):
    """How a test is graded."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"
    HYBRID = "hybrid"


OPTION_QUESTION_TYPES = {QuestionType.MULTIPLE_CHOICE.value, QuestionType.TRUE_FALSE.value}
TEXT_QUESTION_TYPES = {QuestionType.FILL_BLANK.value, QuestionType.SHORT_ANSWER.value}


def _load_json_list(raw: str | None) -> list[Any]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return value if isinstance(value, list) else []


class TestDefinition(Base):
    """
    Authored assessment for one course.
    Holds the question bank, grading/timing settings and cached statistics.
    """

    __tablename__ = "tests"
    __test__ = False  # not a pytest test class

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    course_id: Mapped[str] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    instructor_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    grading_method: Mapped[str] = mapped_column(
        String(20), default=GradingMethod.AUTOMATIC.value, nullable=False
    )
    categories_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Settings
    duration: Mapped[int] = mapped_column(default=60, nullable=False)  # minutes
    passing_score: Mapped[int] = mapped_column(default=60, nullable=False)  # percent
    max_attempts: Mapped[int] = mapped_column(default=3, nullable=False)
    shuffle_questions: Mapped[bool] = mapped_column(default=True, nullable=False)
    shuffle_options: Mapped[bool] = mapped_column(default=True, nullable=False)
    show_correct_answers: Mapped[bool] = mapped_column(default=True, nullable=False)
    show_explanations: Mapped[bool] = mapped_column(default=True, nullable=False)
    allow_review: Mapped[bool] = mapped_column(default=True, nullable=False)
    time_limit: Mapped[int] = mapped_column(default=0, nullable=False)  # minutes, 0 = none

    # Publication and availability
    is_published: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    available_from: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    available_until: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # Cached statistics, written only by stats_service.recompute_test_statistics
    total_attempts: Mapped[int] = mapped_column(default=0, nullable=False)
    average_score: Mapped[int] = mapped_column(default=0, nullable=False)
    pass_rate: Mapped[int] = mapped_column(default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    attempts: Mapped[list["Attempt"]] = relationship(
        "Attempt", back_populates="test", cascade="all, delete-orphan"
    )

    @property
    def categories(self) -> list[str]:
        return _load_json_list(self.categories_json)

    @categories.setter
    def categories(self, value: list[str] | None) -> None:
        self.categories_json = json.dumps(value) if value else None

    @property
    def tags(self) -> list[str]:
        return _load_json_list(self.tags_json)

    @tags.setter
    def tags(self, value: list[str] | None) -> None:
        self.tags_json = json.dumps(value) if value else None

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    def find_question(self, question_id: int) -> Question | None:
        """Find a question of this test by its id."""
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def is_available(self, now: datetime | None = None) -> bool:
        """Check publication flags and the optional availability window."""
        if not self.is_published or not self.is_active:
            return False

        now = now or datetime.now(timezone.utc)
        available_from = as_utc(self.available_from)
        available_until = as_utc(self.available_until)

        if available_from and now < available_from:
            return False
        if available_until and now > available_until:
            return False
        return True


class Question(Base):
    """
    Graded question owned by exactly one test.
    ``id`` is stable; ``position`` is the display order.
    """

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    test_id: Mapped[str] = mapped_column(
        ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), default=QuestionType.MULTIPLE_CHOICE.value, nullable=False
    )
    options_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    correct_answer: Mapped[str | None] = mapped_column(Text, nullable=True)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    points: Mapped[int] = mapped_column(default=1, nullable=False)
    difficulty: Mapped[str] = mapped_column(
        String(10), default=Difficulty.MEDIUM.value, nullable=False
    )
    time_limit: Mapped[int] = mapped_column(default=60, nullable=False)  # seconds

    # Relationships
    test: Mapped["TestDefinition"] = relationship(
        "TestDefinition", back_populates="questions"
    )

    @property
    def options(self) -> list[dict[str, Any]]:
        """Parse options from JSON."""
        return _load_json_list(self.options_json)

    @options.setter
    def options(self, value: list[dict[str, Any]] | None) -> None:
        """Serialize options to JSON."""
        self.options_json = json.dumps(value) if value else None

    @property
    def correct_options(self) -> list[dict[str, Any]]:
        return [option for option in self.options if option.get("isCorrect")]
