"""
Pydantic schemas for analytics endpoints
"""
from pydantic import BaseModel
from typing import List, Dict, Optional
from uuid import UUID
from datetime import datetime


class QuizSummary(BaseModel):
    title: str
    department: Optional[str] = None
    semester: Optional[str] = None
    subject: Optional[str] = None
    total_marks: float
    passing_marks: float


class AttemptStats(BaseModel):
    total: int
    completed: int
    by_status: Dict[str, int]
    completion_rate: float


class ResultStats(BaseModel):
    total: int
    passed: int
    failed: int
    pass_rate: float


class ScoreStats(BaseModel):
    average: float
    highest: float
    lowest: float
    average_percentage: float


class ScoreBucket(BaseModel):
    range: str
    count: int


class TopPerformer(BaseModel):
    rank: int
    student_id: UUID
    attempt_id: UUID
    total_score: float
    percentage: float
    is_passed: bool
    time_taken: int


class QuizAnalytics(BaseModel):
    """Aggregates for one quiz"""
    quiz_id: UUID
    quiz: QuizSummary
    assignments: Dict[str, int]
    attempts: AttemptStats
    results: ResultStats
    scores: ScoreStats
    score_distribution: List[ScoreBucket]
    top_performers: List[TopPerformer]


class StudentResult(BaseModel):
    result_id: UUID
    quiz_id: UUID
    attempt_id: UUID
    total_score: float
    max_score: float
    percentage: float
    is_passed: bool
    submitted_at: datetime


class StudentAnalytics(BaseModel):
    """Aggregates for one student"""
    student_id: UUID
    total_attempts: int
    completed_attempts: int
    in_progress_attempts: int
    invalidated_attempts: int
    passed_quizzes: int
    failed_quizzes: int
    average_percentage: float
    results: List[StudentResult]


class DepartmentCount(BaseModel):
    department: str
    count: int


class SystemAnalytics(BaseModel):
    totals: Dict[str, int]
    role_distribution: Dict[str, int]
    quizzes_by_department: List[DepartmentCount]


class OwnerAnalytics(BaseModel):
    owner_id: UUID
    quizzes: Dict[str, int]
    assignments: Dict[str, int]
    attempts: Dict[str, int]
