"""
QuizAttempt model - one student's single attempt at one quiz
"""
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, TIMESTAMP, ForeignKey,
    UniqueConstraint, JSON, Uuid, func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from app.database import Base
import enum
import uuid


class AttemptStatus(str, enum.Enum):
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"
    AUTO_SUBMITTED = "auto-submitted"
    INVALIDATED = "invalidated"


SCOREABLE_STATUSES = (AttemptStatus.SUBMITTED.value, AttemptStatus.AUTO_SUBMITTED.value)


class QuizAttempt(Base):
    """
    Quiz attempts table - lifecycle state, score and proctoring counters

    The (quiz_id, student_id) unique constraint is the arbiter of the
    single-attempt rule; concurrent starts resolve through it.
    """
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("quiz_id", "student_id", name="uq_quiz_attempt_student"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), nullable=False, index=True)
    student_id = Column(Uuid, nullable=False, index=True)

    started_at = Column(TIMESTAMP, nullable=False)
    submitted_at = Column(TIMESTAMP)
    time_taken = Column(Integer)  # seconds

    total_score = Column(Float, default=0.0, nullable=False)
    percentage = Column(Float, default=0.0, nullable=False)
    is_passed = Column(Boolean, default=False, nullable=False)

    status = Column(String(20), default=AttemptStatus.IN_PROGRESS.value, nullable=False, index=True)

    # Proctoring
    tab_switch_count = Column(Integer, default=0, nullable=False)
    warnings = Column(JSON().with_variant(JSONB, "postgresql"), default=list)  # [{kind, message, timestamp}]

    # Request metadata
    ip_address = Column(String(64))
    user_agent = Column(String(512))

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    quiz = relationship("Quiz")
    answers = relationship(
        "AttemptAnswer",
        back_populates="attempt",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<QuizAttempt(id={self.id}, student_id={self.student_id}, status={self.status})>"


class AttemptAnswer(Base):
    """
    Attempt answers table - one row per (attempt, question), last write wins
    """
    __tablename__ = "attempt_answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_answer_question"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    attempt_id = Column(Uuid, ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("questions.id"), nullable=False)
    selected_option = Column(String(1))  # None = unanswered
    is_correct = Column(Boolean, default=False, nullable=False)
    marks_awarded = Column(Float, default=0.0, nullable=False)
    answered_at = Column(TIMESTAMP)

    attempt = relationship("QuizAttempt", back_populates="answers")

    def __repr__(self):
        return f"<AttemptAnswer(attempt_id={self.attempt_id}, question_id={self.question_id}, selected={self.selected_option})>"
