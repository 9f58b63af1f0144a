"""
Quiz attempt API endpoints: start, answer, submit, proctoring and invalidation
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from app.config import settings
from app.database import get_db
from app.models import AttemptStatus
from app.schemas.attempt import (
    StartAttemptRequest,
    StartAttemptResponse,
    AnswerRequest,
    AnswerResponse,
    SubmitRequest,
    SubmissionResponse,
    WarningRequest,
    WarningResponse,
    InvalidateRequest,
    InvalidateResponse,
    AttemptView,
    AvailableQuiz,
    FinalizeExpiredResponse,
)
from app.services.attempt_service import attempt_service


router = APIRouter(prefix="/api", tags=["attempts"])
logger = logging.getLogger(__name__)


@router.post("/quizzes/{quiz_id}/attempts", response_model=StartAttemptResponse, status_code=201)
async def start_attempt(
    quiz_id: UUID, payload: StartAttemptRequest, request: Request, db: Session = Depends(get_db)
):
    """
    Start the student's single attempt at a quiz

    - Quiz must be active, published and inside its schedule window
    - Student must be assigned to the quiz
    - A second start for the same student fails with 409
    """
    return attempt_service.start_attempt(
        db,
        quiz_id=quiz_id,
        student_id=payload.student_id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.put("/attempts/{attempt_id}/answers", response_model=AnswerResponse)
async def record_answer(attempt_id: UUID, payload: AnswerRequest, db: Session = Depends(get_db)):
    """
    Save (or replace) the answer to one question

    Returns 410 once the attempt's time is up; the attempt is then
    auto-submitted with the answers saved so far.
    """
    return attempt_service.record_answer(
        db,
        attempt_id=attempt_id,
        question_id=payload.question_id,
        selected_option=payload.selected_option,
    )


@router.post("/attempts/{attempt_id}/submit", response_model=SubmissionResponse)
async def submit_attempt(attempt_id: UUID, payload: SubmitRequest, db: Session = Depends(get_db)):
    """
    Submit and score an attempt

    A manual submit after the deadline is recorded as auto-submitted.
    Repeating a submit returns the stored outcome.
    """
    return attempt_service.submit_attempt(db, attempt_id=attempt_id, mode=payload.mode)


@router.post("/attempts/{attempt_id}/warnings", response_model=WarningResponse)
async def record_warning(attempt_id: UUID, payload: WarningRequest, db: Session = Depends(get_db)):
    """
    Record a proctoring event (tab switch, focus loss, ...)

    When AUTO_SUBMIT_TAB_SWITCH_LIMIT is set and reached, the in-progress
    attempt is auto-submitted.
    """
    outcome = attempt_service.record_warning(
        db, attempt_id=attempt_id, kind=payload.kind, message=payload.message
    )

    limit = settings.AUTO_SUBMIT_TAB_SWITCH_LIMIT
    auto_submitted = False
    if (
        limit > 0
        and outcome["tab_switch_count"] >= limit
        and outcome["status"] == AttemptStatus.IN_PROGRESS.value
    ):
        logger.warning(f"Attempt {attempt_id} reached tab switch limit ({limit}); auto-submitting")
        submission = attempt_service.submit_attempt(db, attempt_id=attempt_id, mode="auto")
        outcome["status"] = submission["status"]
        auto_submitted = True

    return WarningResponse(auto_submitted=auto_submitted, **outcome)


@router.post("/attempts/{attempt_id}/invalidate", response_model=InvalidateResponse)
async def invalidate_attempt(attempt_id: UUID, payload: InvalidateRequest, db: Session = Depends(get_db)):
    """Administratively void an attempt and remove its Result"""
    return attempt_service.invalidate_attempt(
        db, attempt_id=attempt_id, reason=payload.reason, admin_id=payload.admin_id
    )


@router.post("/attempts/finalize-expired", response_model=FinalizeExpiredResponse)
async def finalize_expired(db: Session = Depends(get_db)):
    """Auto-submit every in-progress attempt whose time has run out"""
    finalized = attempt_service.finalize_expired(db)
    return FinalizeExpiredResponse(finalized=len(finalized), attempt_ids=finalized)


@router.get("/attempts/{attempt_id}", response_model=AttemptView)
async def get_attempt(attempt_id: UUID, db: Session = Depends(get_db)):
    return attempt_service.get_attempt(db, attempt_id)


@router.get("/students/{student_id}/quizzes", response_model=List[AvailableQuiz])
async def list_available_quizzes(student_id: UUID, db: Session = Depends(get_db)):
    """Assigned quizzes that are active, published and open right now"""
    return attempt_service.list_available_quizzes(db, student_id)


@router.get("/students/{student_id}/attempts", response_model=List[AttemptView])
async def list_student_attempts(student_id: UUID, db: Session = Depends(get_db)):
    return attempt_service.list_student_attempts(db, student_id)


@router.get("/quizzes/{quiz_id}/attempts", response_model=List[AttemptView])
async def list_quiz_attempts(quiz_id: UUID, db: Session = Depends(get_db)):
    return attempt_service.list_quiz_attempts(db, quiz_id)
