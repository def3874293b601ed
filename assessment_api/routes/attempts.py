"""Attempt endpoints: answering, finishing, abandoning and reviewing."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from assessment_api.database import get_db
from assessment_api.dependencies.auth import get_current_user, require_student
from assessment_api.models import (
    AnswerSubmitRequest,
    AnswerSubmitResponse,
    AttemptResultResponse,
    AttemptSummary,
    FinishAttemptResponse,
)
from assessment_api.models.db.user import User
from assessment_api.services import attempt_service
from assessment_api.utils import validate_id

router = APIRouter(prefix="/api/attempts/{attempt_id}", tags=["attempts"])


@router.post("/answers", response_model=AnswerSubmitResponse)
def submit_answer(
    attempt_id: str,
    payload: AnswerSubmitRequest,
    current_user: Annotated[User, Depends(require_student)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Grade and store an answer. Resubmitting replaces the previous one."""
    attempt_id = validate_id("attemptId", attempt_id)
    return attempt_service.submit_answer(
        db,
        current_user,
        attempt_id,
        payload.questionId,
        payload.answer,
        payload.timeSpent,
    )


@router.post("/finish", response_model=FinishAttemptResponse)
def finish_attempt(
    attempt_id: str,
    current_user: Annotated[User, Depends(require_student)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Complete an attempt."""
    attempt_id = validate_id("attemptId", attempt_id)
    attempt, _test, is_passed = attempt_service.finish_attempt(db, current_user, attempt_id)
    return {
        "attempt": attempt_service.serialize_attempt_summary(attempt),
        "isPassed": is_passed,
    }


@router.post("/abandon", response_model=AttemptSummary)
def abandon_attempt(
    attempt_id: str,
    current_user: Annotated[User, Depends(require_student)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Give up an attempt. It still counts towards the attempt limit."""
    attempt_id = validate_id("attemptId", attempt_id)
    attempt = attempt_service.abandon_attempt(db, current_user, attempt_id)
    return attempt_service.serialize_attempt_summary(attempt)


@router.get("", response_model=AttemptResultResponse)
def get_attempt_result(
    attempt_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Detailed results, revealing correctness as the test's review settings allow."""
    attempt_id = validate_id("attemptId", attempt_id)
    return attempt_service.get_attempt_result(db, current_user, attempt_id)
