"""
Quiz authoring service: quizzes, questions, assignments and the user directory
"""
import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import DuplicateUser, NotFound, QuizHasAttempts, QuizLocked, ValidationFailed
from app.models import Question, Quiz, QuizAssignment, QuizAttempt, User
from app.services.audit_service import audit_service
from app.utils.cache import cache_service
from app.services.validation import (
    ensure_valid,
    normalize_question,
    validate_question,
    validate_question_rows,
    validate_quiz,
)
from app.utils.clock import to_naive_utc

logger = logging.getLogger(__name__)

QUIZ_FIELDS = (
    "title", "description", "department", "semester", "subject", "batch",
    "start_time", "end_time", "duration", "total_marks", "passing_marks",
    "is_active", "is_published",
)
USER_ROLES = ("admin", "coordinator", "student")


class QuizService:
    """Service for quiz definitions and their question keys"""

    def __init__(self, audit=audit_service, cache=cache_service):
        self.audit = audit
        self.cache = cache

    # Quizzes

    def create_quiz(self, db: Session, owner_id: UUID, data: Dict[str, Any]) -> Quiz:
        values = {k: data.get(k) for k in QUIZ_FIELDS if k in data}
        values["start_time"] = to_naive_utc(values.get("start_time"))
        values["end_time"] = to_naive_utc(values.get("end_time"))
        ensure_valid(validate_quiz(values))

        quiz = Quiz(owner_id=owner_id, **values)
        db.add(quiz)
        db.commit()
        db.refresh(quiz)

        logger.info(f"Quiz created: {quiz.id} by {owner_id}")
        self.audit.record(
            action="CREATE_QUIZ",
            resource="Quiz",
            resource_id=quiz.id,
            user_id=owner_id,
            details={"title": quiz.title, "department": quiz.department},
        )
        return quiz

    def get_quiz(self, db: Session, quiz_id: UUID) -> Quiz:
        quiz = db.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz not found")
        return quiz

    def list_quizzes(self, db: Session, **filters) -> List[Quiz]:
        query = db.query(Quiz)
        for name in ("department", "semester", "subject", "owner_id", "is_active", "is_published"):
            value = filters.get(name)
            if value is not None:
                query = query.filter(getattr(Quiz, name) == value)
        return query.order_by(Quiz.created_at.desc()).all()

    def update_quiz(self, db: Session, quiz_id: UUID, changes: Dict[str, Any]) -> Quiz:
        quiz = self.get_quiz(db, quiz_id)

        updates = {k: v for k, v in changes.items() if k in QUIZ_FIELDS}
        for key in ("start_time", "end_time"):
            if key in updates:
                updates[key] = to_naive_utc(updates[key])

        merged = {k: getattr(quiz, k) for k in QUIZ_FIELDS}
        merged.update(updates)
        ensure_valid(validate_quiz(merged))

        for key, value in updates.items():
            setattr(quiz, key, value)
        db.commit()
        db.refresh(quiz)
        self.cache.clear_quiz_analytics(quiz.id)

        logger.info(f"Quiz updated: {quiz.id} fields={sorted(updates)}")
        self.audit.record(
            action="UPDATE_QUIZ", resource="Quiz", resource_id=quiz.id,
            details={"fields": sorted(updates)},
        )
        return quiz

    def toggle_flag(self, db: Session, quiz_id: UUID, flag: str) -> Quiz:
        if flag not in ("is_active", "is_published"):
            raise ValueError(f"Unknown quiz flag: {flag}")

        quiz = self.get_quiz(db, quiz_id)
        setattr(quiz, flag, not getattr(quiz, flag))
        db.commit()
        db.refresh(quiz)
        self.cache.clear_quiz_analytics(quiz.id)

        logger.info(f"Quiz {quiz.id} {flag} -> {getattr(quiz, flag)}")
        return quiz

    def delete_quiz(self, db: Session, quiz_id: UUID) -> None:
        quiz = self.get_quiz(db, quiz_id)

        if self.attempt_count(db, quiz_id) > 0:
            raise QuizHasAttempts("Cannot delete quiz with existing attempts. Consider closing it instead.")

        db.delete(quiz)
        db.commit()

        logger.info(f"Quiz deleted: {quiz_id}")
        self.audit.record(action="DELETE_QUIZ", resource="Quiz", resource_id=quiz_id)

    def attempt_count(self, db: Session, quiz_id: UUID) -> int:
        return db.query(func.count(QuizAttempt.id)).filter(QuizAttempt.quiz_id == quiz_id).scalar() or 0

    # Questions

    def list_questions(self, db: Session, quiz_id: UUID) -> List[Question]:
        self.get_quiz(db, quiz_id)
        return db.query(Question).filter(
            Question.quiz_id == quiz_id
        ).order_by(Question.order_index).all()

    def add_question(self, db: Session, quiz_id: UUID, data: Dict[str, Any]) -> Question:
        return self.add_questions(db, quiz_id, [data], bulk=False)[0]

    def add_questions(
        self,
        db: Session,
        quiz_id: UUID,
        rows: List[Dict[str, Any]],
        bulk: bool = True,
    ) -> List[Question]:
        """Append validated questions after the current last order index"""
        self.get_quiz(db, quiz_id)
        self._ensure_key_editable(db, quiz_id)
        if bulk:
            ensure_valid(validate_question_rows(rows))
        else:
            ensure_valid(validate_question(rows[0]))

        next_index = db.query(func.max(Question.order_index)).filter(
            Question.quiz_id == quiz_id
        ).scalar()
        next_index = 0 if next_index is None else next_index + 1

        created = []
        for offset, row in enumerate(rows):
            question = Question(quiz_id=quiz_id, order_index=next_index + offset, **normalize_question(row))
            db.add(question)
            created.append(question)
        db.commit()

        logger.info(f"Added {len(created)} question(s) to quiz {quiz_id}")
        return created

    def update_question(
        self, db: Session, quiz_id: UUID, question_id: UUID, changes: Dict[str, Any]
    ) -> Question:
        question = self._get_question(db, quiz_id, question_id)
        self._ensure_key_editable(db, quiz_id)

        merged = {
            "question_text": question.question_text,
            "options": question.options,
            "correct_option": question.correct_option,
            "marks": question.marks,
        }
        merged.update({k: v for k, v in changes.items() if k in merged and v is not None})
        ensure_valid(validate_question(merged))

        for key, value in normalize_question(merged).items():
            setattr(question, key, value)
        if changes.get("order_index") is not None:
            question.order_index = changes["order_index"]
        db.commit()
        db.refresh(question)

        logger.info(f"Question updated: {question_id} (quiz {quiz_id})")
        return question

    def delete_question(self, db: Session, quiz_id: UUID, question_id: UUID) -> None:
        question = self._get_question(db, quiz_id, question_id)
        self._ensure_key_editable(db, quiz_id)

        db.delete(question)
        db.commit()
        logger.info(f"Question deleted: {question_id} (quiz {quiz_id})")

    def _get_question(self, db: Session, quiz_id: UUID, question_id: UUID) -> Question:
        question = db.query(Question).filter(
            Question.id == question_id, Question.quiz_id == quiz_id
        ).first()
        if not question:
            raise NotFound("Question not found")
        return question

    def _ensure_key_editable(self, db: Session, quiz_id: UUID) -> None:
        if settings.FREEZE_QUESTIONS_AFTER_ATTEMPTS and self.attempt_count(db, quiz_id) > 0:
            raise QuizLocked("Questions cannot be changed once students have attempted the quiz")

    # Assignments

    def assign_students(self, db: Session, quiz_id: UUID, student_ids: Iterable[UUID]) -> Dict[str, Any]:
        """Grant students access; existing grants are left as they are"""
        self.get_quiz(db, quiz_id)
        requested = list(dict.fromkeys(student_ids))

        existing = {
            row.student_id
            for row in db.query(QuizAssignment.student_id).filter(
                QuizAssignment.quiz_id == quiz_id,
                QuizAssignment.student_id.in_(requested),
            ).all()
        } if requested else set()

        added = [sid for sid in requested if sid not in existing]
        for student_id in added:
            db.add(QuizAssignment(quiz_id=quiz_id, student_id=student_id))
        db.commit()

        logger.info(f"Quiz {quiz_id}: assigned {len(added)} student(s), {len(existing)} already assigned")
        self.cache.clear_quiz_analytics(quiz_id)
        return {"quiz_id": quiz_id, "assigned": len(added), "already_assigned": len(existing)}

    def list_assignments(self, db: Session, quiz_id: UUID) -> List[Dict[str, Any]]:
        """Granted students, with directory details when the student is registered"""
        self.get_quiz(db, quiz_id)

        rows = db.query(QuizAssignment, User).outerjoin(
            User, User.id == QuizAssignment.student_id
        ).filter(
            QuizAssignment.quiz_id == quiz_id
        ).order_by(QuizAssignment.assigned_at, QuizAssignment.id).all()

        return [
            {
                "student_id": assignment.student_id,
                "assigned_at": assignment.assigned_at,
                "full_name": user.full_name if user else None,
                "email": user.email if user else None,
                "department": user.department if user else None,
            }
            for assignment, user in rows
        ]

    def remove_assignment(self, db: Session, quiz_id: UUID, student_id: UUID) -> None:
        """
        Revoke a grant

        An attempt the student already made is left untouched; only new
        starts are refused.
        """
        self.get_quiz(db, quiz_id)

        deleted = db.query(QuizAssignment).filter(
            QuizAssignment.quiz_id == quiz_id,
            QuizAssignment.student_id == student_id,
        ).delete(synchronize_session=False)
        if not deleted:
            raise NotFound("Assignment not found")
        db.commit()

        logger.info(f"Quiz {quiz_id}: assignment removed for student {student_id}")
        self.cache.clear_quiz_analytics(quiz_id)
        self.audit.record(
            action="REMOVE_ASSIGNMENT", resource="QuizAssignment", resource_id=quiz_id,
            details={"student_id": str(student_id)},
        )

    # User directory

    def create_user(self, db: Session, data: Dict[str, Any]) -> User:
        role = (data.get("role") or "").lower()
        if role not in USER_ROLES:
            raise ValidationFailed([{"field": "role", "message": "Role must be admin, coordinator or student"}])

        user = User(
            full_name=data["full_name"],
            email=data["email"].lower(),
            role=role,
            department=data.get("department"),
            is_active=data.get("is_active", True),
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise DuplicateUser("A user with this email already exists")
        db.refresh(user)
        return user

    def get_user(self, db: Session, user_id: UUID) -> User:
        user = db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user


# Global instance
quiz_service = QuizService()
