"""
Analytics service for quiz, student and system-wide reporting

All reducers are read-only and return zeroed structures on empty input.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import NotFound
from app.models import AttemptStatus, Quiz, QuizAssignment, QuizAttempt, Result, SCOREABLE_STATUSES, User
from app.services.attempt_service import attempt_service
from app.utils.cache import cache_service
from app.utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

# Inclusive upper bounds
SCORE_BUCKETS = (
    ("0-20%", 20),
    ("21-40%", 40),
    ("41-60%", 60),
    ("61-80%", 80),
    ("81-100%", 100),
)


def score_distribution(percentages: Sequence[float]) -> List[Dict[str, Any]]:
    """Five fixed buckets; a value equal to a bound falls in the lower bucket"""
    counts = [0] * len(SCORE_BUCKETS)
    for percentage in percentages:
        for index, (_, upper) in enumerate(SCORE_BUCKETS):
            if percentage <= upper or index == len(SCORE_BUCKETS) - 1:
                counts[index] += 1
                break
    return [{"range": label, "count": count} for (label, _), count in zip(SCORE_BUCKETS, counts)]


def safe_rate(numerator: int, denominator: int) -> float:
    """Percentage rate rounded to 2 places, 0 when the denominator is 0"""
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 2)


class AnalyticsService:
    """Service for generating attempt and result analytics"""

    def __init__(self, attempts=attempt_service, cache=cache_service):
        self.attempts = attempts
        self.cache = cache

    def get_quiz_analytics(
        self,
        db: Session,
        quiz_id: UUID,
        top_n: Optional[int] = None,
        now: Optional[datetime] = None,
        use_cache: bool = True,
    ) -> Dict[str, Any]:
        """
        Get analytics for a specific quiz

        Args:
            db: Database session
            quiz_id: Quiz UUID
            top_n: Size of the top performers ranking
            now: Reference time for effective attempt status

        Returns:
            Dictionary with attempt counts, pass/fail, score stats,
            distribution and top performers
        """
        top_n = top_n or settings.TOP_PERFORMERS_LIMIT
        cache_key = self.cache.quiz_analytics_key(quiz_id, top_n)
        cacheable = use_cache and now is None
        if cacheable:
            cached = self.cache.get(cache_key)
            if cached:
                return cached

        now = to_naive_utc(now) or utcnow()

        quiz = db.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz not found")

        attempts = db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz_id).all()
        attempts_by_id = {a.id: a for a in attempts}

        assigned = {
            row.student_id
            for row in db.query(QuizAssignment.student_id).filter(QuizAssignment.quiz_id == quiz_id).all()
        }
        attempted = {a.student_id for a in attempts}

        status_counts = Counter(self.attempts.effective_status(a, quiz, now) for a in attempts)
        by_status = {status.value: status_counts.get(status.value, 0) for status in AttemptStatus}

        total_attempts = len(attempts)
        completed = sum(by_status[s] for s in SCOREABLE_STATUSES)

        results = self._valid_results(
            db.query(Result).filter(Result.quiz_id == quiz_id).order_by(Result.created_at, Result.id).all(),
            attempts_by_id,
        )

        passed = sum(1 for r in results if r.is_passed)
        failed = len(results) - passed

        scores = [r.total_score for r in results]
        percentages = [r.percentage for r in results]

        # Stable sort keeps insertion order among equal scores
        ranked = sorted(results, key=lambda r: r.total_score, reverse=True)[:top_n]

        analytics = {
            "quiz_id": str(quiz.id),
            "quiz": {
                "title": quiz.title,
                "department": quiz.department,
                "semester": quiz.semester,
                "subject": quiz.subject,
                "total_marks": quiz.total_marks,
                "passing_marks": quiz.passing_marks,
            },
            "assignments": {
                "total": len(assigned),
                "not_attempted": len(assigned - attempted),
            },
            "attempts": {
                "total": total_attempts,
                "completed": completed,
                "by_status": by_status,
                "completion_rate": safe_rate(completed, total_attempts),
            },
            "results": {
                "total": len(results),
                "passed": passed,
                "failed": failed,
                "pass_rate": safe_rate(passed, len(results)),
            },
            "scores": {
                "average": round(sum(scores) / len(scores), 2) if scores else 0.0,
                "highest": max(scores) if scores else 0.0,
                "lowest": min(scores) if scores else 0.0,
                "average_percentage": round(sum(percentages) / len(percentages), 2) if percentages else 0.0,
            },
            "score_distribution": score_distribution(percentages),
            "top_performers": [
                {
                    "rank": rank,
                    "student_id": str(r.student_id),
                    "attempt_id": str(r.attempt_id),
                    "total_score": r.total_score,
                    "percentage": r.percentage,
                    "is_passed": r.is_passed,
                    "time_taken": r.time_taken,
                }
                for rank, r in enumerate(ranked, start=1)
            ],
        }

        if cacheable:
            self.cache.set(cache_key, analytics)

        return analytics

    def get_student_analytics(
        self,
        db: Session,
        student_id: UUID,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Get performance analytics for a student

        Average percentage is taken over the student's Results only, so
        invalidated attempts never contribute.
        """
        now = to_naive_utc(now) or utcnow()

        attempts = db.query(QuizAttempt).filter(QuizAttempt.student_id == student_id).all()
        attempts_by_id = {a.id: a for a in attempts}

        effective = [self.attempts.effective_status(a, a.quiz, now) for a in attempts]
        completed = sum(1 for s in effective if s in SCOREABLE_STATUSES)
        invalidated = sum(1 for s in effective if s == AttemptStatus.INVALIDATED.value)
        in_progress = sum(1 for s in effective if s == AttemptStatus.IN_PROGRESS.value)

        results = self._valid_results(
            db.query(Result).filter(Result.student_id == student_id).order_by(Result.submitted_at.desc()).all(),
            attempts_by_id,
        )

        passed = sum(1 for r in results if r.is_passed)
        average_percentage = (
            round(sum(r.percentage for r in results) / len(results), 2) if results else 0.0
        )

        return {
            "student_id": str(student_id),
            "total_attempts": len(attempts),
            "completed_attempts": completed,
            "in_progress_attempts": in_progress,
            "invalidated_attempts": invalidated,
            "passed_quizzes": passed,
            "failed_quizzes": len(results) - passed,
            "average_percentage": average_percentage,
            "results": [
                {
                    "result_id": str(r.id),
                    "quiz_id": str(r.quiz_id),
                    "attempt_id": str(r.attempt_id),
                    "total_score": r.total_score,
                    "max_score": r.max_score,
                    "percentage": r.percentage,
                    "is_passed": r.is_passed,
                    "submitted_at": r.submitted_at,
                }
                for r in results
            ],
        }

    def get_system_analytics(self, db: Session) -> Dict[str, Any]:
        """System-wide totals and group-by tallies"""

        role_rows = db.query(User.role, func.count(User.id)).group_by(User.role).all()
        department_rows = db.query(Quiz.department, func.count(Quiz.id)).group_by(Quiz.department).all()

        return {
            "totals": {
                "users": db.query(func.count(User.id)).scalar() or 0,
                "quizzes": db.query(func.count(Quiz.id)).scalar() or 0,
                "active_quizzes": db.query(func.count(Quiz.id)).filter(
                    Quiz.is_active.is_(True), Quiz.is_published.is_(True)
                ).scalar() or 0,
                "attempts": db.query(func.count(QuizAttempt.id)).scalar() or 0,
                "results": db.query(func.count(Result.id)).scalar() or 0,
            },
            "role_distribution": {role: count for role, count in role_rows},
            "quizzes_by_department": sorted(
                [{"department": dept or "unassigned", "count": count} for dept, count in department_rows],
                key=lambda x: x["count"],
                reverse=True,
            ),
        }

    def get_owner_analytics(self, db: Session, owner_id: UUID) -> Dict[str, Any]:
        """Quiz, assignment and attempt totals across one coordinator's quizzes"""

        quizzes = db.query(Quiz).filter(Quiz.owner_id == owner_id).all()
        quiz_ids = [q.id for q in quizzes]
        published = sum(1 for q in quizzes if q.is_published)

        if quiz_ids:
            total_assignments = db.query(func.count(QuizAssignment.id)).filter(
                QuizAssignment.quiz_id.in_(quiz_ids)
            ).scalar() or 0
            total_attempts = db.query(func.count(QuizAttempt.id)).filter(
                QuizAttempt.quiz_id.in_(quiz_ids)
            ).scalar() or 0
        else:
            total_assignments = 0
            total_attempts = 0

        return {
            "owner_id": str(owner_id),
            "quizzes": {
                "total": len(quizzes),
                "published": published,
                "draft": len(quizzes) - published,
            },
            "assignments": {"total": total_assignments},
            "attempts": {"total": total_attempts},
        }

    def _valid_results(self, results: List[Result], attempts_by_id: Dict[UUID, QuizAttempt]) -> List[Result]:
        """Drop Results whose attempt is missing or not scoreable"""
        valid = []
        for result in results:
            attempt = attempts_by_id.get(result.attempt_id)
            if attempt is None or attempt.status not in SCOREABLE_STATUSES:
                logger.critical(
                    f"Invariant violation: result {result.id} references attempt "
                    f"{result.attempt_id} which is not in a scoreable state"
                )
                continue
            valid.append(result)
        return valid


# Global instance
analytics_service = AnalyticsService()
