"""
Database models package
"""
from app.models.user import User
from app.models.quiz import Quiz
from app.models.question import Question
from app.models.quiz_assignment import QuizAssignment
from app.models.quiz_attempt import QuizAttempt, AttemptAnswer, AttemptStatus, SCOREABLE_STATUSES
from app.models.result import Result

__all__ = [
    "User",
    "Quiz",
    "Question",
    "QuizAssignment",
    "QuizAttempt",
    "AttemptAnswer",
    "AttemptStatus",
    "SCOREABLE_STATUSES",
    "Result",
]
