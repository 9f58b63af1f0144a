"""Tests for quiz authoring: question freeze, assignments and analytics cache eviction."""

from datetime import timedelta
from uuid import uuid4

import pytest

from app.exceptions import NotFound, NotAssigned, QuizLocked
from app.services.attempt_service import AttemptService
from app.services.quiz_service import QuizService, quiz_service

from conftest import WINDOW_START, assign, make_quiz, option_set

T0 = WINDOW_START + timedelta(minutes=5)


class RecordingCache:
    """Stands in for the redis cache and remembers evictions"""

    def __init__(self):
        self.cleared = []

    def quiz_analytics_key(self, quiz_id, top_n):
        return f"analytics:quiz:{quiz_id}:top{top_n}"

    def get(self, key):
        return None

    def set(self, key, value, ttl=None):
        return False

    def clear_quiz_analytics(self, quiz_id):
        self.cleared.append(quiz_id)
        return True


@pytest.fixture
def cache():
    return RecordingCache()


def new_question(text="Late addition"):
    return {"question_text": text, "options": option_set(), "correct_option": "A", "marks": 1}


def test_adding_questions_after_attempts_is_locked(db):
    quiz = make_quiz(db)
    student = uuid4()
    assign(db, quiz, student)
    AttemptService().start_attempt(db, quiz.id, student, now=T0)

    with pytest.raises(QuizLocked):
        quiz_service.add_question(db, quiz.id, new_question())
    with pytest.raises(QuizLocked):
        quiz_service.add_questions(db, quiz.id, [new_question("One"), new_question("Two")])

    assert len(quiz_service.list_questions(db, quiz.id)) == 4


def test_adding_questions_before_attempts_appends(db):
    quiz = make_quiz(db)

    question = quiz_service.add_question(db, quiz.id, new_question())

    assert question.order_index == 4
    assert len(quiz_service.list_questions(db, quiz.id)) == 5


def test_list_assignments_includes_directory_details(db):
    quiz = make_quiz(db)
    user = quiz_service.create_user(db, {
        "full_name": "Ravi Kumar",
        "email": "ravi@college.edu",
        "role": "student",
        "department": "Physics",
    })
    unregistered = uuid4()
    assign(db, quiz, user.id, unregistered)

    assignments = {a["student_id"]: a for a in quiz_service.list_assignments(db, quiz.id)}

    assert set(assignments) == {user.id, unregistered}
    assert assignments[user.id]["full_name"] == "Ravi Kumar"
    assert assignments[user.id]["email"] == "ravi@college.edu"
    assert assignments[unregistered]["full_name"] is None


def test_list_assignments_unknown_quiz(db):
    with pytest.raises(NotFound):
        quiz_service.list_assignments(db, uuid4())


def test_removed_assignment_blocks_new_start(db):
    quiz = make_quiz(db)
    student = uuid4()
    assign(db, quiz, student)

    quiz_service.remove_assignment(db, quiz.id, student)

    assert quiz_service.list_assignments(db, quiz.id) == []
    with pytest.raises(NotAssigned):
        AttemptService().start_attempt(db, quiz.id, student, now=T0)


def test_remove_assignment_keeps_existing_attempt(db):
    quiz = make_quiz(db)
    student = uuid4()
    assign(db, quiz, student)
    started = AttemptService().start_attempt(db, quiz.id, student, now=T0)

    quiz_service.remove_assignment(db, quiz.id, student)

    view = AttemptService().get_attempt(db, started["attempt_id"], now=T0)
    assert view["status"] == "in-progress"


def test_remove_missing_assignment(db):
    quiz = make_quiz(db)

    with pytest.raises(NotFound):
        quiz_service.remove_assignment(db, quiz.id, uuid4())


def test_quiz_changes_evict_cached_analytics(db, cache):
    service = QuizService(cache=cache)
    quiz = make_quiz(db)

    service.update_quiz(db, quiz.id, {"title": "Renamed midterm", "passing_marks": 5})
    service.toggle_flag(db, quiz.id, "is_active")
    service.toggle_flag(db, quiz.id, "is_published")

    assert cache.cleared == [quiz.id, quiz.id, quiz.id]


def test_assignment_changes_evict_cached_analytics(db, cache):
    service = QuizService(cache=cache)
    quiz = make_quiz(db)
    student = uuid4()

    service.assign_students(db, quiz.id, [student])
    service.remove_assignment(db, quiz.id, student)

    assert cache.cleared == [quiz.id, quiz.id]
