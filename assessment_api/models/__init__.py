"""Pydantic models."""
from assessment_api.models.attempts import (
    AnswerSubmitRequest,
    AnswerSubmitResponse,
    AttemptResultResponse,
    AttemptSummary,
    FinishAttemptResponse,
    StartAttemptResponse,
)
from assessment_api.models.auth import (
    MessageResponse,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from assessment_api.models.statistics import TestStatisticsResponse
from assessment_api.models.tests import (
    StudentTestView,
    TestCreate,
    TestResponse,
    TestSummary,
    TestUpdate,
)

__all__ = [
    "AnswerSubmitRequest",
    "AnswerSubmitResponse",
    "AttemptResultResponse",
    "AttemptSummary",
    "FinishAttemptResponse",
    "MessageResponse",
    "StartAttemptResponse",
    "StudentTestView",
    "TestCreate",
    "TestResponse",
    "TestStatisticsResponse",
    "TestSummary",
    "TestUpdate",
    "TokenResponse",
    "UserLogin",
    "UserRegister",
    "UserResponse",
]
