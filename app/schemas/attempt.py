"""
Pydantic schemas for the attempt lifecycle endpoints
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from uuid import UUID
from datetime import datetime


class StartAttemptRequest(BaseModel):
    student_id: UUID


class AttemptQuestion(BaseModel):
    """Question as shown to a student (no answer key)"""
    question_id: UUID
    question_text: str
    options: Dict[str, str]
    marks: float
    order_index: int


class StartAttemptResponse(BaseModel):
    attempt_id: UUID
    quiz_id: UUID
    started_at: datetime
    duration: int
    end_of_window: datetime
    deadline: datetime
    time_limit_seconds: int
    questions: List[AttemptQuestion]


class AnswerRequest(BaseModel):
    question_id: UUID
    selected_option: Optional[str] = Field(None, max_length=1)


class AnswerResponse(BaseModel):
    accepted: bool
    question_id: UUID
    selected_option: Optional[str] = None


class SubmitRequest(BaseModel):
    mode: str = Field("manual", pattern="^(manual|auto)$")


class SubmissionResponse(BaseModel):
    """Scoring outcome of a submitted attempt"""
    attempt_id: UUID
    result_id: Optional[UUID] = None
    status: str
    total_score: float
    max_score: Optional[float] = None
    percentage: float
    is_passed: bool
    correct_answers: Optional[int] = None
    incorrect_answers: Optional[int] = None
    unanswered: Optional[int] = None
    time_taken: Optional[int] = None
    submitted_at: Optional[datetime] = None
    already_submitted: bool = False


class WarningRequest(BaseModel):
    kind: str = Field(..., min_length=1, max_length=50, description="e.g. tab-switch, visibility-hidden")
    message: Optional[str] = Field(None, max_length=500)


class WarningResponse(BaseModel):
    attempt_id: UUID
    status: str
    tab_switch_count: int
    warning_count: int
    auto_submitted: bool = False


class InvalidateRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
    admin_id: Optional[UUID] = None


class InvalidateResponse(BaseModel):
    accepted: bool
    attempt_id: UUID
    status: str


class AvailableQuiz(BaseModel):
    """Quiz open to the student now, with their attempt state"""
    quiz_id: UUID
    title: str
    description: Optional[str] = None
    subject: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration: int
    total_marks: float
    passing_marks: float
    has_attempted: bool
    attempt_status: Optional[str] = None


class AttemptAnswerView(BaseModel):
    question_id: UUID
    selected_option: Optional[str] = None
    is_correct: Optional[bool] = None
    marks_awarded: Optional[float] = None


class AttemptView(BaseModel):
    """Attempt with its effective status (expired in-progress reads as auto-submitted)"""
    attempt_id: UUID
    quiz_id: UUID
    student_id: UUID
    status: str
    stored_status: str
    started_at: datetime
    submitted_at: Optional[datetime] = None
    deadline: datetime
    time_remaining_seconds: int
    time_taken: Optional[int] = None
    total_score: float
    percentage: float
    is_passed: bool
    tab_switch_count: int
    warnings: List[Dict[str, Any]]
    answers: Optional[List[AttemptAnswerView]] = None


class FinalizeExpiredResponse(BaseModel):
    finalized: int
    attempt_ids: List[UUID]
