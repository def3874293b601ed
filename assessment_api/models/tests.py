"""Test-related Pydantic models."""
from datetime import datetime

from pydantic import BaseModel, Field

from assessment_api.models.db.test import Difficulty, GradingMethod, QuestionType


class QuestionOption(BaseModel):
    """Answer option of a choice question."""

    text: str = Field(..., min_length=1)
    isCorrect: bool = False


class QuestionCreate(BaseModel):
    """Question as authored by an instructor."""

    question: str
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: list[QuestionOption] = Field(default_factory=list)
    correctAnswer: str | None = None
    explanation: str | None = None
    points: int = Field(1, ge=1)
    difficulty: Difficulty = Difficulty.MEDIUM
    timeLimit: int = Field(60, ge=0)


class TestSettings(BaseModel):
    """Grading and timing settings of a test."""

    __test__ = False  # not a pytest test class

    duration: int = Field(60, ge=1)
    passingScore: int = Field(60, ge=0, le=100)
    maxAttempts: int = Field(3, ge=1)
    shuffleQuestions: bool = True
    shuffleOptions: bool = True
    showCorrectAnswers: bool = True
    showExplanations: bool = True
    allowReview: bool = True
    timeLimit: int = Field(0, ge=0)


class TestCreate(BaseModel):
    """Model for creating a new test."""

    __test__ = False  # not a pytest test class

    title: str = Field(..., min_length=5, max_length=100)
    description: str | None = Field(None, max_length=500)
    course: str = Field(..., min_length=1)
    questions: list[QuestionCreate]
    settings: TestSettings = Field(default_factory=TestSettings)
    isPublished: bool = False
    isActive: bool = True
    availableFrom: datetime | None = None
    availableUntil: datetime | None = None
    gradingMethod: GradingMethod = GradingMethod.AUTOMATIC
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class TestUpdate(BaseModel):
    """Model for updating a test. Statistics are not writable."""

    __test__ = False  # not a pytest test class

    title: str | None = Field(None, min_length=5, max_length=100)
    description: str | None = Field(None, max_length=500)
    questions: list[QuestionCreate] | None = None
    settings: TestSettings | None = None
    isPublished: bool | None = None
    isActive: bool | None = None
    availableFrom: datetime | None = None
    availableUntil: datetime | None = None
    gradingMethod: GradingMethod | None = None
    categories: list[str] | None = None
    tags: list[str] | None = None


class StudentOption(BaseModel):
    """Option as shown to a student taking the test."""

    text: str


class StudentQuestion(BaseModel):
    """Question without correctness data."""

    id: int
    question: str
    type: str
    options: list[StudentOption]
    points: int
    difficulty: str
    timeLimit: int


class TestSummary(BaseModel):
    """Test summary for students."""

    __test__ = False  # not a pytest test class

    id: str
    title: str
    description: str | None
    duration: int
    passingScore: int
    maxAttempts: int
    timeLimit: int
    totalQuestions: int
    totalPoints: int
    isPublished: bool
    isActive: bool
    availableFrom: datetime | None
    availableUntil: datetime | None


class StudentTestView(TestSummary):
    """Summary plus the questions a student answers."""

    questions: list[StudentQuestion]


class QuestionResponse(BaseModel):
    """Full question as seen by its instructor."""

    id: int
    position: int
    question: str
    type: str
    options: list[QuestionOption]
    correctAnswer: str | None
    explanation: str | None
    points: int
    difficulty: str
    timeLimit: int


class TestResponse(BaseModel):
    """Full test as seen by its instructor or an admin."""

    __test__ = False  # not a pytest test class

    id: str
    title: str
    description: str | None
    course: str
    instructor: int
    questions: list[QuestionResponse]
    settings: TestSettings
    isPublished: bool
    isActive: bool
    availableFrom: datetime | None
    availableUntil: datetime | None
    gradingMethod: str
    categories: list[str]
    tags: list[str]
    totalAttempts: int
    averageScore: int
    passRate: int
    createdAt: datetime
    updatedAt: datetime
