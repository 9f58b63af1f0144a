"""
Quiz model - scheduled, scored assessment definitions
"""
from sqlalchemy import Column, String, Text, Integer, Float, Boolean, TIMESTAMP, Uuid, func
from sqlalchemy.orm import relationship
from app.database import Base
import uuid


class Quiz(Base):
    """
    Quizzes table - schedule window, marks and visibility flags
    """
    __tablename__ = "quizzes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    owner_id = Column(Uuid, nullable=False, index=True)

    # Scope tags (informational)
    department = Column(String(100), index=True)
    semester = Column(String(20))
    subject = Column(String(100))
    batch = Column(String(50))

    # Schedule
    start_time = Column(TIMESTAMP, nullable=False)
    end_time = Column(TIMESTAMP, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes

    # Marks
    total_marks = Column(Float, nullable=False)
    passing_marks = Column(Float, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_published = Column(Boolean, default=False, nullable=False)

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    questions = relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.order_index",
    )
    assignments = relationship("QuizAssignment", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, published={self.is_published})>"
