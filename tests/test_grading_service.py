"""Tests for exact-match MCQ grading."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.exceptions import MalformedAttempt
from app.services.grading_service import GradingService, normalize_option


def key(*specs):
    return [SimpleNamespace(id=uuid4(), correct_option=correct, marks=marks) for correct, marks in specs]


@pytest.fixture
def grader():
    return GradingService()


@pytest.fixture
def questions():
    return key(("A", 1), ("B", 2), ("C", 3), ("D", 4))


def test_mixed_answers_score_and_counts(grader, questions):
    q1, q2, q3, q4 = questions
    answers = {q1.id: "A", q2.id: "C", q3.id: "C"}

    outcome = grader.grade_attempt(questions, answers, total_marks=10, passing_marks=4)

    assert outcome.total_score == 4
    assert outcome.max_score == 10
    assert outcome.percentage == 40.0
    assert outcome.is_passed is True
    assert (outcome.correct_answers, outcome.incorrect_answers, outcome.unanswered) == (2, 1, 1)
    assert [g.marks_awarded for g in outcome.breakdown] == [1, 0, 3, 0]
    assert [g.question_id for g in outcome.breakdown] == [q.id for q in questions]


def test_pass_threshold_is_inclusive_on_raw_score(grader, questions):
    q1, _, q3, _ = questions
    answers = {q1.id: "A", q3.id: "C"}

    assert grader.grade_attempt(questions, answers, 10, 4).is_passed is True
    assert grader.grade_attempt(questions, answers, 10, 5).is_passed is False


def test_selected_option_is_normalized(grader, questions):
    q1, q2, _, _ = questions
    outcome = grader.grade_attempt(questions, {q1.id: " a ", q2.id: "b"}, 10, 4)

    assert outcome.total_score == 3
    assert outcome.correct_answers == 2


def test_blank_answer_counts_as_unanswered(grader, questions):
    q1, _, _, _ = questions
    outcome = grader.grade_attempt(questions, {q1.id: "  "}, 10, 4)

    assert outcome.unanswered == 4
    assert outcome.total_score == 0
    assert outcome.percentage == 0.0
    assert outcome.is_passed is False


def test_no_answers_against_zero_pass_mark_passes(grader, questions):
    outcome = grader.grade_attempt(questions, {}, 10, 0)

    assert outcome.total_score == 0
    assert outcome.is_passed is True


def test_empty_key_scores_zero(grader):
    outcome = grader.grade_attempt([], {}, 10, 4)

    assert outcome.total_score == 0
    assert outcome.max_score == 0
    assert outcome.breakdown == []


def test_percentage_uses_quiz_total_marks(grader, questions):
    q4 = questions[3]
    outcome = grader.grade_attempt(questions, {q4.id: "D"}, total_marks=12, passing_marks=4)

    assert outcome.percentage == 33.33


def test_answer_outside_key_is_malformed(grader, questions):
    with pytest.raises(MalformedAttempt) as exc:
        grader.grade_attempt(questions, {uuid4(): "A"}, 10, 4)

    assert exc.value.status_code == 500


@pytest.mark.parametrize("raw, expected", [("a", "A"), (" D ", "D"), ("", None), (None, None)])
def test_normalize_option(raw, expected):
    assert normalize_option(raw) == expected
