"""
Result model - materialised scoring outcome of a submitted attempt
"""
from sqlalchemy import Column, Integer, Float, Boolean, TIMESTAMP, ForeignKey, Index, Uuid, func
from app.database import Base
import uuid


class Result(Base):
    """
    Results table - never outlives its attempt, never exists for a non-terminal one
    """
    __tablename__ = "results"
    __table_args__ = (
        Index("ix_results_quiz_score", "quiz_id", "total_score"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), nullable=False, index=True)
    student_id = Column(Uuid, nullable=False, index=True)
    attempt_id = Column(Uuid, ForeignKey("quiz_attempts.id"), nullable=False, unique=True)

    total_score = Column(Float, nullable=False, default=0.0)
    max_score = Column(Float, nullable=False)
    percentage = Column(Float, nullable=False, default=0.0)
    is_passed = Column(Boolean, nullable=False, default=False)
    passing_marks = Column(Float, nullable=False)

    correct_answers = Column(Integer, default=0, nullable=False)
    incorrect_answers = Column(Integer, default=0, nullable=False)
    unanswered = Column(Integer, default=0, nullable=False)

    time_taken = Column(Integer, nullable=False)  # seconds
    submitted_at = Column(TIMESTAMP, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        return f"<Result(attempt_id={self.attempt_id}, score={self.total_score}, passed={self.is_passed})>"
