"""
QuizAssignment model - grants a student access to a quiz
"""
from sqlalchemy import Column, TIMESTAMP, ForeignKey, UniqueConstraint, Uuid, func
from app.database import Base
import uuid


class QuizAssignment(Base):
    __tablename__ = "quiz_assignments"
    __table_args__ = (
        UniqueConstraint("quiz_id", "student_id", name="uq_quiz_assignment"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, nullable=False, index=True)
    assigned_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        return f"<QuizAssignment(quiz_id={self.quiz_id}, student_id={self.student_id})>"
