"""Tests for quiz, student, owner and system analytics."""

from datetime import timedelta
from uuid import uuid4

import pytest

from app.exceptions import NotFound
from app.services.analytics_service import analytics_service, safe_rate, score_distribution
from app.services.attempt_service import attempt_service
from app.services.quiz_service import quiz_service

from conftest import WINDOW_START, assign, make_quiz

T0 = WINDOW_START + timedelta(minutes=5)
LATER = T0 + timedelta(minutes=10)


def take_quiz(db, quiz, student_id, selections, submit=True):
    """Start, answer (by question position) and optionally submit"""
    started = attempt_service.start_attempt(db, quiz.id, student_id, now=T0)
    questions = quiz.questions
    for position, option in selections.items():
        attempt_service.record_answer(
            db, started["attempt_id"], questions[position].id, option, now=T0 + timedelta(minutes=1)
        )
    if submit:
        attempt_service.submit_attempt(db, started["attempt_id"], now=LATER)
    return started["attempt_id"]


def test_score_distribution_bounds_fall_in_lower_bucket():
    buckets = score_distribution([0, 20, 20.01, 40, 60, 80, 80.5, 100])

    assert [b["range"] for b in buckets] == ["0-20%", "21-40%", "41-60%", "61-80%", "81-100%"]
    assert [b["count"] for b in buckets] == [2, 2, 1, 1, 2]


def test_safe_rate_handles_zero_denominator():
    assert safe_rate(0, 0) == 0.0
    assert safe_rate(1, 3) == 33.33


def test_empty_quiz_analytics_are_zeroed(db):
    quiz = make_quiz(db)

    analytics = analytics_service.get_quiz_analytics(db, quiz.id, now=T0)

    assert analytics["attempts"]["total"] == 0
    assert analytics["attempts"]["completion_rate"] == 0.0
    assert analytics["results"] == {"total": 0, "passed": 0, "failed": 0, "pass_rate": 0.0}
    assert analytics["scores"]["average"] == 0.0
    assert [b["count"] for b in analytics["score_distribution"]] == [0, 0, 0, 0, 0]
    assert analytics["top_performers"] == []


def test_quiz_analytics_unknown_quiz(db):
    with pytest.raises(NotFound):
        analytics_service.get_quiz_analytics(db, uuid4(), now=T0)


def test_quiz_analytics_aggregates(db):
    quiz = make_quiz(db)
    strong, weak, idle, cheat = uuid4(), uuid4(), uuid4(), uuid4()
    assign(db, quiz, strong, weak, idle, cheat)

    take_quiz(db, quiz, strong, {0: "A", 1: "B", 3: "D"})  # 7 / 10
    take_quiz(db, quiz, weak, {0: "A"})  # 1 / 10
    take_quiz(db, quiz, idle, {}, submit=False)
    cheat_attempt = take_quiz(db, quiz, cheat, {0: "A", 1: "B", 2: "C", 3: "D"})
    attempt_service.invalidate_attempt(db, cheat_attempt, reason="Phone in exam", now=LATER)

    analytics = analytics_service.get_quiz_analytics(db, quiz.id, now=LATER)

    assert analytics["attempts"]["total"] == 4
    assert analytics["attempts"]["completed"] == 2
    assert analytics["attempts"]["by_status"] == {
        "in-progress": 1, "submitted": 2, "auto-submitted": 0, "invalidated": 1,
    }
    assert analytics["attempts"]["completion_rate"] == 50.0
    assert analytics["results"] == {"total": 2, "passed": 1, "failed": 1, "pass_rate": 50.0}
    assert analytics["scores"]["average"] == 4.0
    assert analytics["scores"]["highest"] == 7
    assert analytics["scores"]["lowest"] == 1
    assert [b["count"] for b in analytics["score_distribution"]] == [1, 0, 0, 1, 0]

    top = analytics["top_performers"]
    assert [p["student_id"] for p in top] == [str(strong), str(weak)]
    assert [p["rank"] for p in top] == [1, 2]


def test_expired_in_progress_counts_as_auto_submitted(db):
    quiz = make_quiz(db)
    student = uuid4()
    assign(db, quiz, student)
    take_quiz(db, quiz, student, {}, submit=False)

    analytics = analytics_service.get_quiz_analytics(db, quiz.id, now=T0 + timedelta(hours=1))

    assert analytics["attempts"]["by_status"]["auto-submitted"] == 1
    assert analytics["attempts"]["by_status"]["in-progress"] == 0
    assert analytics["results"]["total"] == 0


def test_top_performers_limit(db):
    quiz = make_quiz(db)
    students = [uuid4() for _ in range(3)]
    assign(db, quiz, *students)
    for student in students:
        take_quiz(db, quiz, student, {3: "D"})

    analytics = analytics_service.get_quiz_analytics(db, quiz.id, top_n=2, now=LATER)

    assert len(analytics["top_performers"]) == 2


def test_student_average_excludes_invalidated(db):
    student = uuid4()
    first = make_quiz(db, title="Quiz one")
    second = make_quiz(db, title="Quiz two")
    third = make_quiz(db, title="Quiz three")
    for quiz in (first, second, third):
        assign(db, quiz, student)

    take_quiz(db, first, student, {3: "D"})  # 40%
    take_quiz(db, second, student, {0: "A"})  # 10%
    voided = take_quiz(db, third, student, {0: "A", 1: "B", 2: "C", 3: "D"})
    attempt_service.invalidate_attempt(db, voided, now=LATER)

    analytics = analytics_service.get_student_analytics(db, student, now=LATER)

    assert analytics["total_attempts"] == 3
    assert analytics["completed_attempts"] == 2
    assert analytics["invalidated_attempts"] == 1
    assert analytics["passed_quizzes"] == 1
    assert analytics["failed_quizzes"] == 1
    assert analytics["average_percentage"] == 25.0
    assert len(analytics["results"]) == 2


def test_student_without_attempts(db):
    analytics = analytics_service.get_student_analytics(db, uuid4(), now=T0)

    assert analytics["total_attempts"] == 0
    assert analytics["average_percentage"] == 0.0
    assert analytics["results"] == []


def test_owner_analytics(db):
    owner = uuid4()
    published = make_quiz(db, owner_id=owner)
    make_quiz(db, owner_id=owner, title="Draft quiz", is_published=False)
    make_quiz(db, title="Someone else's quiz")
    student = uuid4()
    assign(db, published, student, uuid4())
    take_quiz(db, published, student, {0: "A"})

    analytics = analytics_service.get_owner_analytics(db, owner)

    assert analytics["quizzes"] == {"total": 2, "published": 1, "draft": 1}
    assert analytics["assignments"] == {"total": 2}
    assert analytics["attempts"] == {"total": 1}


def test_system_analytics(db):
    for role in ("admin", "coordinator", "student", "student"):
        quiz_service.create_user(db, {
            "full_name": f"{role.title()} User",
            "email": f"{uuid4().hex}@college.edu",
            "role": role,
        })
    make_quiz(db, department="Physics")
    make_quiz(db, department="Physics", title="Optics")
    make_quiz(db, department="Chemistry", title="Organic", is_published=False)

    analytics = analytics_service.get_system_analytics(db)

    assert analytics["totals"]["users"] == 4
    assert analytics["totals"]["quizzes"] == 3
    assert analytics["totals"]["active_quizzes"] == 2
    assert analytics["role_distribution"] == {"admin": 1, "coordinator": 1, "student": 2}
    assert analytics["quizzes_by_department"][0] == {"department": "Physics", "count": 2}


def test_quiz_analytics_assignment_totals(db):
    quiz = make_quiz(db)
    taker, absent = uuid4(), uuid4()
    assign(db, quiz, taker, absent)
    take_quiz(db, quiz, taker, {0: "A"})

    analytics = analytics_service.get_quiz_analytics(db, quiz.id, now=LATER)

    assert analytics["assignments"] == {"total": 2, "not_attempted": 1}


def test_empty_quiz_has_no_assignments(db):
    quiz = make_quiz(db)

    analytics = analytics_service.get_quiz_analytics(db, quiz.id, now=T0)

    assert analytics["assignments"] == {"total": 0, "not_attempted": 0}
