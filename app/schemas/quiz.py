"""
Pydantic schemas for quiz authoring requests and responses

Business rules (window ordering, marks bounds, option labels) are checked
by app.services.validation; these schemas only shape the payloads.
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Optional
from uuid import UUID
from datetime import datetime


class QuizCreate(BaseModel):
    """Request schema for quiz creation"""
    owner_id: UUID
    title: str = Field(..., max_length=200)
    description: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[str] = None
    subject: Optional[str] = None
    batch: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration: int = Field(..., description="Attempt duration in minutes")
    total_marks: float
    passing_marks: float
    is_active: bool = True
    is_published: bool = False


class QuizUpdate(BaseModel):
    """Partial quiz update"""
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[str] = None
    subject: Optional[str] = None
    batch: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    total_marks: Optional[float] = None
    passing_marks: Optional[float] = None


class QuizResponse(BaseModel):
    id: UUID
    owner_id: UUID
    title: str
    description: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[str] = None
    subject: Optional[str] = None
    batch: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration: int
    total_marks: float
    passing_marks: float
    is_active: bool
    is_published: bool

    class Config:
        from_attributes = True


class QuestionCreate(BaseModel):
    """Individual question with options keyed A-D"""
    question_text: str
    options: Dict[str, str]
    correct_option: str
    marks: float = 1.0


class QuestionUpdate(BaseModel):
    question_text: Optional[str] = None
    options: Optional[Dict[str, str]] = None
    correct_option: Optional[str] = None
    marks: Optional[float] = None
    order_index: Optional[int] = Field(None, ge=0)


class BulkQuestionsRequest(BaseModel):
    """Rows already parsed from a spreadsheet upload"""
    rows: List[QuestionCreate]


class QuestionResponse(BaseModel):
    id: UUID
    quiz_id: UUID
    question_text: str
    options: Dict[str, str]
    correct_option: str
    marks: float
    order_index: int

    class Config:
        from_attributes = True


class QuizDetailResponse(BaseModel):
    quiz: QuizResponse
    questions: List[QuestionResponse]
    total_questions: int
    question_marks: float


class AssignmentRequest(BaseModel):
    student_ids: List[UUID] = Field(..., min_length=1)


class AssignmentResponse(BaseModel):
    quiz_id: UUID
    assigned: int
    already_assigned: int


class UserCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255)
    role: str = Field(..., pattern="^(admin|coordinator|student)$")
    department: Optional[str] = None
    is_active: bool = True


class UserResponse(BaseModel):
    id: UUID
    full_name: str
    email: str
    role: str
    department: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class AssignedStudent(BaseModel):
    """Grant with directory details (None when the student is not registered)"""
    student_id: UUID
    assigned_at: Optional[datetime] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    department: Optional[str] = None
