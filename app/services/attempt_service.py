"""
Quiz attempt lifecycle service

State machine per (quiz, student):
    in-progress -> submitted | auto-submitted   (scoreable, Result materialised)
    in-progress | submitted | auto-submitted -> invalidated   (Result removed)

Timeouts are observed lazily: the first write that sees an expired
in-progress attempt finalises it as auto-submitted, and read paths report
it as auto-submitted without persisting anything.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import (
    AlreadyAttempted,
    AlreadyTerminal,
    AttemptExpired,
    InvalidOption,
    NotAssigned,
    NotFound,
    NotInProgress,
    OutsideWindow,
    QuestionNotInQuiz,
    QuizUnavailable,
    ValidationFailed,
)
from app.models import (
    AttemptAnswer,
    AttemptStatus,
    Question,
    Quiz,
    QuizAssignment,
    QuizAttempt,
    Result,
    SCOREABLE_STATUSES,
)
from app.services.audit_service import audit_service
from app.services.grading_service import GradingOutcome, grading_service, normalize_option
from app.utils.cache import cache_service
from app.utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

SUBMIT_MODES = ("manual", "auto")
VISIBILITY_LOSS_KINDS = frozenset({"tab-switch", "visibility-hidden", "window-blur"})


class AttemptService:
    """Service driving a student's single attempt at a time-boxed quiz"""

    def __init__(self, grader=grading_service, cache=cache_service, audit=audit_service):
        self.grader = grader
        self.cache = cache
        self.audit = audit

    # ------------------------------------------------------------------
    # Time rules
    # ------------------------------------------------------------------

    @staticmethod
    def deadline(attempt: QuizAttempt, quiz: Quiz) -> datetime:
        """The earlier of the attempt's own duration allowance and the quiz end time"""
        allowance = attempt.started_at + timedelta(minutes=quiz.duration)
        return min(allowance, quiz.end_time)

    def is_expired(self, attempt: QuizAttempt, quiz: Quiz, now: datetime) -> bool:
        return now > self.deadline(attempt, quiz)

    def effective_status(self, attempt: QuizAttempt, quiz: Quiz, now: datetime) -> str:
        """Status as callers should see it; expired in-progress reads as auto-submitted"""
        if attempt.status == AttemptStatus.IN_PROGRESS.value and self.is_expired(attempt, quiz, now):
            return AttemptStatus.AUTO_SUBMITTED.value
        return attempt.status

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_attempt(
        self,
        db: Session,
        quiz_id: UUID,
        student_id: UUID,
        now: Optional[datetime] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create the student's in-progress attempt

        The insert itself is the duplicate check: the (quiz_id, student_id)
        unique constraint decides concurrent starts, and its violation is
        reported as AlreadyAttempted.

        Returns:
            Dictionary with attempt id, timing information and the questions
            (without the answer key)
        """
        now = to_naive_utc(now) or utcnow()

        quiz = db.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz not found")

        if not quiz.is_active or not quiz.is_published:
            raise QuizUnavailable("Quiz is not available")

        if now < quiz.start_time:
            raise OutsideWindow(
                "Quiz has not started yet",
                details={"start_time": quiz.start_time.isoformat()},
            )
        if now > quiz.end_time:
            raise OutsideWindow(
                "Quiz has ended",
                details={"end_time": quiz.end_time.isoformat()},
            )

        assignment = db.query(QuizAssignment).filter(
            QuizAssignment.quiz_id == quiz_id,
            QuizAssignment.student_id == student_id,
        ).first()
        if not assignment:
            raise NotAssigned("This quiz is not assigned to you")

        attempt = QuizAttempt(
            quiz_id=quiz_id,
            student_id=student_id,
            started_at=now,
            status=AttemptStatus.IN_PROGRESS.value,
            tab_switch_count=0,
            warnings=[],
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(attempt)

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = db.query(QuizAttempt.id).filter(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.student_id == student_id,
            ).first()
            if existing is None:
                raise
            logger.warning(f"Duplicate attempt rejected: quiz={quiz_id}, student={student_id}")
            raise AlreadyAttempted("You have already attempted this quiz")

        logger.info(f"Attempt started: {attempt.id} (quiz={quiz_id}, student={student_id})")

        self.cache.clear_quiz_analytics(quiz_id)
        self.audit.record(
            action="START_QUIZ",
            resource="QuizAttempt",
            resource_id=attempt.id,
            user_id=student_id,
            details={"quiz_id": str(quiz_id), "quiz_title": quiz.title},
            ip_address=ip_address,
            user_agent=user_agent,
        )

        questions = db.query(Question).filter(
            Question.quiz_id == quiz_id
        ).order_by(Question.order_index).all()

        return {
            "attempt_id": attempt.id,
            "quiz_id": quiz.id,
            "started_at": attempt.started_at,
            "duration": quiz.duration,
            "end_of_window": quiz.end_time,
            "deadline": self.deadline(attempt, quiz),
            "time_limit_seconds": quiz.duration * 60,
            "questions": [
                {
                    "question_id": q.id,
                    "question_text": q.question_text,
                    "options": q.options,
                    "marks": q.marks,
                    "order_index": q.order_index,
                }
                for q in questions
            ],
        }

    def record_answer(
        self,
        db: Session,
        attempt_id: UUID,
        question_id: UUID,
        selected_option: Optional[str],
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Upsert the selected option for one question (None clears it)

        Correctness is not evaluated here; grading always uses the key as
        it stands at submission.
        """
        now = to_naive_utc(now) or utcnow()

        attempt = self._lock_attempt(db, attempt_id)
        if attempt.status != AttemptStatus.IN_PROGRESS.value:
            raise NotInProgress("Cannot modify a submitted attempt")

        quiz = attempt.quiz
        if self.is_expired(attempt, quiz, now):
            self._finalize(db, attempt, quiz, AttemptStatus.AUTO_SUBMITTED.value, now)
            self._commit_finalized(db, attempt)
            self._after_finalize(attempt, reason="expired_on_answer")
            raise AttemptExpired("Time is up for this attempt")

        question = db.query(Question).filter(
            Question.id == question_id,
            Question.quiz_id == attempt.quiz_id,
        ).first()
        if not question:
            raise QuestionNotInQuiz("Question does not belong to this quiz")

        selected = normalize_option(selected_option)
        if selected is not None and selected not in {normalize_option(k) for k in question.options}:
            raise InvalidOption(f"Option '{selected_option}' is not valid for this question")

        answer = db.query(AttemptAnswer).filter(
            AttemptAnswer.attempt_id == attempt.id,
            AttemptAnswer.question_id == question_id,
        ).first()
        if answer is None:
            answer = AttemptAnswer(attempt_id=attempt.id, question_id=question_id)
            db.add(answer)

        answer.selected_option = selected
        answer.answered_at = now
        db.commit()

        logger.debug(f"Answer recorded: attempt={attempt_id}, question={question_id}, selected={selected}")

        return {"accepted": True, "question_id": question_id, "selected_option": selected}

    def submit_attempt(
        self,
        db: Session,
        attempt_id: UUID,
        mode: str = "manual",
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Score the attempt and materialise its Result

        A manual submit after the deadline is recorded as auto-submitted.
        Re-submitting a scored attempt returns the stored outcome.
        """
        if mode not in SUBMIT_MODES:
            raise ValidationFailed([{"field": "mode", "message": "Mode must be 'manual' or 'auto'"}])

        now = to_naive_utc(now) or utcnow()

        attempt = self._lock_attempt(db, attempt_id)

        if attempt.status == AttemptStatus.INVALIDATED.value:
            raise AlreadyTerminal("Attempt has been invalidated")

        if attempt.status in SCOREABLE_STATUSES:
            logger.info(f"Repeated submit for attempt {attempt_id}; returning stored outcome")
            result = db.query(Result).filter(Result.attempt_id == attempt.id).first()
            return self._submission_payload(attempt, result, already_submitted=True)

        quiz = attempt.quiz
        if mode == "auto" or self.is_expired(attempt, quiz, now):
            status = AttemptStatus.AUTO_SUBMITTED.value
        else:
            status = AttemptStatus.SUBMITTED.value

        _, result = self._finalize(db, attempt, quiz, status, now)
        self._commit_finalized(db, attempt)
        self._after_finalize(attempt, reason=mode)

        return self._submission_payload(attempt, result)

    def invalidate_attempt(
        self,
        db: Session,
        attempt_id: UUID,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
        admin_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """Mark the attempt invalidated and delete its Result; score fields are kept"""
        now = to_naive_utc(now) or utcnow()

        attempt = self._lock_attempt(db, attempt_id)
        if attempt.status == AttemptStatus.INVALIDATED.value:
            return {"accepted": True, "attempt_id": attempt.id, "status": attempt.status}

        previous = attempt.status
        attempt.status = AttemptStatus.INVALIDATED.value
        attempt.warnings = list(attempt.warnings or []) + [{
            "kind": "invalidated",
            "message": f"Invalidated by admin: {reason}" if reason else "Invalidated by admin",
            "timestamp": now.isoformat(),
        }]

        deleted = db.query(Result).filter(
            Result.attempt_id == attempt.id
        ).delete(synchronize_session=False)
        db.commit()

        logger.info(
            f"Attempt invalidated: {attempt.id} (was {previous}, results removed={deleted})"
        )

        self.cache.clear_quiz_analytics(attempt.quiz_id)
        self.audit.record(
            action="INVALIDATE_ATTEMPT",
            resource="QuizAttempt",
            resource_id=attempt.id,
            user_id=admin_id,
            details={
                "quiz_id": str(attempt.quiz_id),
                "student_id": str(attempt.student_id),
                "reason": reason,
            },
        )

        return {"accepted": True, "attempt_id": attempt.id, "status": attempt.status}

    def record_warning(
        self,
        db: Session,
        attempt_id: UUID,
        kind: str,
        now: Optional[datetime] = None,
        message: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Append a proctoring warning; visibility-loss kinds bump the tab-switch counter"""
        now = to_naive_utc(now) or utcnow()
        kind = (kind or "").strip().lower()
        if not kind:
            raise ValidationFailed([{"field": "kind", "message": "Warning kind is required"}])

        attempt = self._lock_attempt(db, attempt_id)

        if kind in VISIBILITY_LOSS_KINDS:
            attempt.tab_switch_count = (attempt.tab_switch_count or 0) + 1
            default_message = f"Tab switch detected at {now.isoformat()}"
        else:
            default_message = f"{kind} detected at {now.isoformat()}"

        attempt.warnings = list(attempt.warnings or []) + [{
            "kind": kind,
            "message": message or default_message,
            "timestamp": now.isoformat(),
        }]
        db.commit()

        logger.info(
            f"Warning recorded on attempt {attempt.id}: {kind} (tab switches={attempt.tab_switch_count})"
        )

        return {
            "attempt_id": attempt.id,
            "status": attempt.status,
            "tab_switch_count": attempt.tab_switch_count,
            "warning_count": len(attempt.warnings),
        }

    def finalize_expired(self, db: Session, now: Optional[datetime] = None) -> List[UUID]:
        """Auto-submit every in-progress attempt whose deadline has passed"""
        now = to_naive_utc(now) or utcnow()

        candidates = db.query(QuizAttempt.id).filter(
            QuizAttempt.status == AttemptStatus.IN_PROGRESS.value
        ).all()

        finalized = []
        for (attempt_id,) in candidates:
            attempt = self._lock_attempt(db, attempt_id)
            if attempt.status != AttemptStatus.IN_PROGRESS.value or not self.is_expired(attempt, attempt.quiz, now):
                db.rollback()
                continue

            self._finalize(db, attempt, attempt.quiz, AttemptStatus.AUTO_SUBMITTED.value, now)
            self._commit_finalized(db, attempt)
            self._after_finalize(attempt, reason="sweep")
            finalized.append(attempt.id)

        logger.info(f"Expired attempt sweep finalised {len(finalized)} attempt(s)")
        return finalized

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_attempt(self, db: Session, attempt_id: UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = to_naive_utc(now) or utcnow()

        attempt = db.get(QuizAttempt, attempt_id)
        if not attempt:
            raise NotFound("Quiz attempt not found")

        return self.serialize_attempt(db, attempt, now)

    def list_available_quizzes(
        self, db: Session, student_id: UUID, now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        Quizzes the student may open right now

        Assigned, active, published and inside the schedule window, soonest
        start first, each flagged with the student's attempt (if any).
        """
        now = to_naive_utc(now) or utcnow()

        quizzes = db.query(Quiz).join(
            QuizAssignment, QuizAssignment.quiz_id == Quiz.id
        ).filter(
            QuizAssignment.student_id == student_id,
            Quiz.is_active.is_(True),
            Quiz.is_published.is_(True),
            Quiz.start_time <= now,
            Quiz.end_time >= now,
        ).order_by(Quiz.start_time).all()

        attempts = {}
        if quizzes:
            attempts = {
                a.quiz_id: a
                for a in db.query(QuizAttempt).filter(
                    QuizAttempt.student_id == student_id,
                    QuizAttempt.quiz_id.in_([q.id for q in quizzes]),
                ).all()
            }

        available = []
        for quiz in quizzes:
            attempt = attempts.get(quiz.id)
            available.append({
                "quiz_id": quiz.id,
                "title": quiz.title,
                "description": quiz.description,
                "subject": quiz.subject,
                "start_time": quiz.start_time,
                "end_time": quiz.end_time,
                "duration": quiz.duration,
                "total_marks": quiz.total_marks,
                "passing_marks": quiz.passing_marks,
                "has_attempted": attempt is not None,
                "attempt_status": self.effective_status(attempt, quiz, now) if attempt else None,
            })
        return available

    def list_student_attempts(
        self, db: Session, student_id: UUID, now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        now = to_naive_utc(now) or utcnow()

        attempts = db.query(QuizAttempt).filter(
            QuizAttempt.student_id == student_id
        ).order_by(QuizAttempt.started_at.desc()).all()

        return [self.serialize_attempt(db, a, now, include_answers=False) for a in attempts]

    def list_quiz_attempts(
        self, db: Session, quiz_id: UUID, now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        now = to_naive_utc(now) or utcnow()

        if not db.get(Quiz, quiz_id):
            raise NotFound("Quiz not found")

        attempts = db.query(QuizAttempt).filter(
            QuizAttempt.quiz_id == quiz_id
        ).order_by(QuizAttempt.started_at).all()

        return [self.serialize_attempt(db, a, now, include_answers=False) for a in attempts]

    def serialize_attempt(
        self,
        db: Session,
        attempt: QuizAttempt,
        now: datetime,
        include_answers: bool = True,
    ) -> Dict[str, Any]:
        quiz = attempt.quiz
        status = self.effective_status(attempt, quiz, now)
        deadline = self.deadline(attempt, quiz)
        remaining = 0
        if status == AttemptStatus.IN_PROGRESS.value:
            remaining = max(int((deadline - now).total_seconds()), 0)

        data = {
            "attempt_id": attempt.id,
            "quiz_id": attempt.quiz_id,
            "student_id": attempt.student_id,
            "status": status,
            "stored_status": attempt.status,
            "started_at": attempt.started_at,
            "submitted_at": attempt.submitted_at,
            "deadline": deadline,
            "time_remaining_seconds": remaining,
            "time_taken": attempt.time_taken,
            "total_score": attempt.total_score,
            "percentage": attempt.percentage,
            "is_passed": attempt.is_passed,
            "tab_switch_count": attempt.tab_switch_count,
            "warnings": list(attempt.warnings or []),
        }

        if include_answers:
            # An attempt voided while in progress was never graded
            graded = attempt.status in SCOREABLE_STATUSES or (
                attempt.status == AttemptStatus.INVALIDATED.value and attempt.submitted_at is not None
            )
            rows = db.query(AttemptAnswer, Question.order_index).join(
                Question, Question.id == AttemptAnswer.question_id
            ).filter(
                AttemptAnswer.attempt_id == attempt.id
            ).order_by(Question.order_index).all()
            data["answers"] = [
                {
                    "question_id": row.question_id,
                    "selected_option": row.selected_option,
                    "is_correct": row.is_correct if graded else None,
                    "marks_awarded": row.marks_awarded if graded else None,
                }
                for row, _ in rows
            ]

        return data

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_attempt(self, db: Session, attempt_id: UUID) -> QuizAttempt:
        attempt = db.query(QuizAttempt).filter(
            QuizAttempt.id == attempt_id
        ).with_for_update().populate_existing().first()
        if not attempt:
            raise NotFound("Quiz attempt not found")
        return attempt

    def _finalize(
        self,
        db: Session,
        attempt: QuizAttempt,
        quiz: Quiz,
        status: str,
        now: datetime,
    ) -> Tuple[GradingOutcome, Result]:
        """Grade the locked attempt against the current key and stage the Result"""
        questions = db.query(Question).filter(
            Question.quiz_id == quiz.id
        ).order_by(Question.order_index).all()

        recorded = db.query(AttemptAnswer).filter(
            AttemptAnswer.attempt_id == attempt.id
        ).all()

        outcome = self.grader.grade_attempt(
            questions=questions,
            answers={row.question_id: row.selected_option for row in recorded},
            total_marks=quiz.total_marks,
            passing_marks=quiz.passing_marks,
        )

        rows_by_question = {row.question_id: row for row in recorded}
        for grade in outcome.breakdown:
            row = rows_by_question.get(grade.question_id)
            if row is None:
                row = AttemptAnswer(
                    attempt_id=attempt.id,
                    question_id=grade.question_id,
                    selected_option=None,
                )
                db.add(row)
            row.is_correct = grade.is_correct
            row.marks_awarded = grade.marks_awarded

        attempt.submitted_at = now
        attempt.time_taken = max(int((now - attempt.started_at).total_seconds()), 0)
        attempt.total_score = outcome.total_score
        attempt.percentage = outcome.percentage
        attempt.is_passed = outcome.is_passed
        attempt.status = status

        result = Result(
            quiz_id=quiz.id,
            student_id=attempt.student_id,
            attempt_id=attempt.id,
            total_score=outcome.total_score,
            max_score=quiz.total_marks,
            percentage=outcome.percentage,
            is_passed=outcome.is_passed,
            passing_marks=quiz.passing_marks,
            correct_answers=outcome.correct_answers,
            incorrect_answers=outcome.incorrect_answers,
            unanswered=outcome.unanswered,
            time_taken=attempt.time_taken,
            submitted_at=now,
        )
        db.add(result)

        return outcome, result

    def _commit_finalized(self, db: Session, attempt: QuizAttempt) -> None:
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.critical(
                f"Invariant violation: a Result already exists for in-progress attempt {attempt.id}"
            )
            raise

    def _after_finalize(self, attempt: QuizAttempt, reason: str) -> None:
        logger.info(
            f"Attempt {attempt.id} finalised as {attempt.status} ({reason}): "
            f"score={attempt.total_score}, percentage={attempt.percentage}, passed={attempt.is_passed}"
        )
        self.cache.clear_quiz_analytics(attempt.quiz_id)
        self.audit.record(
            action="AUTO_SUBMIT_QUIZ" if attempt.status == AttemptStatus.AUTO_SUBMITTED.value else "SUBMIT_QUIZ",
            resource="QuizAttempt",
            resource_id=attempt.id,
            user_id=attempt.student_id,
            details={
                "quiz_id": str(attempt.quiz_id),
                "score": attempt.total_score,
                "is_passed": attempt.is_passed,
                "trigger": reason,
            },
        )

    @staticmethod
    def _submission_payload(
        attempt: QuizAttempt,
        result: Optional[Result],
        already_submitted: bool = False,
    ) -> Dict[str, Any]:
        return {
            "attempt_id": attempt.id,
            "result_id": result.id if result else None,
            "status": attempt.status,
            "total_score": attempt.total_score,
            "max_score": result.max_score if result else None,
            "percentage": attempt.percentage,
            "is_passed": attempt.is_passed,
            "correct_answers": result.correct_answers if result else None,
            "incorrect_answers": result.incorrect_answers if result else None,
            "unanswered": result.unanswered if result else None,
            "time_taken": attempt.time_taken,
            "submitted_at": attempt.submitted_at,
            "already_submitted": already_submitted,
        }


# Global instance
attempt_service = AttemptService()
