"""
Quiz grading service
MCQ exact match against the answer key at submission time, no partial credit
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from app.exceptions import MalformedAttempt

logger = logging.getLogger(__name__)


@dataclass
class QuestionGrade:
    question_id: UUID
    selected_option: Optional[str]
    is_correct: bool
    marks_awarded: float
    max_marks: float


@dataclass
class GradingOutcome:
    total_score: float
    max_score: float
    percentage: float
    is_passed: bool
    correct_answers: int
    incorrect_answers: int
    unanswered: int
    breakdown: List[QuestionGrade] = field(default_factory=list)


def normalize_option(option: Optional[str]) -> Optional[str]:
    """Strip and upper-case an option label; blank means unanswered"""
    if option is None:
        return None
    cleaned = str(option).strip().upper()
    return cleaned or None


class GradingService:
    """
    Service for grading quiz attempts

    Pure with respect to storage: callers pass the question key and the
    recorded answers, and persist the returned outcome themselves.
    """

    def grade_attempt(
        self,
        questions: Sequence[Any],
        answers: Mapping[UUID, Optional[str]],
        total_marks: float,
        passing_marks: float,
    ) -> GradingOutcome:
        """
        Grade a complete attempt

        Args:
            questions: Ordered question key (objects with id, correct_option, marks)
            answers: Selected option per question id (None = unanswered)
            total_marks: Quiz total marks used for the percentage
            passing_marks: Quiz passing threshold on the raw score

        Returns:
            GradingOutcome with per-question breakdown in key order

        Raises:
            MalformedAttempt: an answer references a question outside the key
        """
        key_ids = {q.id for q in questions}
        foreign = [q_id for q_id in answers if q_id not in key_ids]
        if foreign:
            logger.critical(
                f"Malformed attempt: answers reference questions outside the quiz key: {foreign}"
            )
            raise MalformedAttempt(
                "Attempt contains answers for questions that do not belong to this quiz",
                details=[str(q_id) for q_id in foreign],
            )

        breakdown = []
        total_score = 0.0
        max_score = 0.0
        correct = incorrect = unanswered = 0

        for question in questions:
            marks = float(question.marks)
            selected = normalize_option(answers.get(question.id))
            max_score += marks

            if selected is None:
                unanswered += 1
                is_correct = False
            else:
                is_correct = selected == normalize_option(question.correct_option)
                if is_correct:
                    correct += 1
                else:
                    incorrect += 1

            awarded = marks if is_correct else 0.0
            total_score += awarded

            breakdown.append(QuestionGrade(
                question_id=question.id,
                selected_option=selected,
                is_correct=is_correct,
                marks_awarded=awarded,
                max_marks=marks,
            ))

        percentage = self.calculate_percentage(total_score, total_marks)
        is_passed = total_score >= passing_marks

        logger.info(
            f"Attempt graded: {total_score:.2f}/{total_marks} ({percentage}%), "
            f"correct={correct}, incorrect={incorrect}, unanswered={unanswered}, passed={is_passed}"
        )

        return GradingOutcome(
            total_score=total_score,
            max_score=max_score,
            percentage=percentage,
            is_passed=is_passed,
            correct_answers=correct,
            incorrect_answers=incorrect,
            unanswered=unanswered,
            breakdown=breakdown,
        )

    @staticmethod
    def calculate_percentage(total_score: float, total_marks: float) -> float:
        if not total_marks or total_marks <= 0:
            return 0.0
        return round(total_score / total_marks * 100, 2)


# Global instance
grading_service = GradingService()
