"""Statistics response models."""
from pydantic import BaseModel


class QuestionStatistics(BaseModel):
    """Answer counts of one question across all attempts."""

    questionId: int
    position: int
    difficulty: str
    answeredCount: int
    correctCount: int
    correctRate: int
    avgTimeSpent: float


class TestStatisticsResponse(BaseModel):
    """Cached test statistics with a per-question breakdown."""

    __test__ = False  # not a pytest test class

    testId: str
    totalAttempts: int
    averageScore: int
    passRate: int
    passingScore: int
    attemptsByStatus: dict[str, int]
    questions: list[QuestionStatistics]
