"""Tests for quiz and question validation rules."""

from datetime import datetime, timedelta

import pytest

from app.exceptions import ValidationFailed
from app.services.validation import (
    ensure_valid,
    normalize_question,
    validate_question,
    validate_question_rows,
    validate_quiz,
)

START = datetime(2026, 5, 1, 10, 0)


def quiz_data(**overrides):
    data = {
        "title": "Algebra",
        "start_time": START,
        "end_time": START + timedelta(hours=1),
        "duration": 20,
        "total_marks": 10,
        "passing_marks": 4,
    }
    data.update(overrides)
    return data


def question_data(**overrides):
    data = {
        "question_text": "2 + 2 = ?",
        "options": {"A": "3", "B": "4", "C": "5", "D": "22"},
        "correct_option": "B",
        "marks": 1,
    }
    data.update(overrides)
    return data


def fields(issues):
    return {issue["field"] for issue in issues}


def test_valid_quiz_has_no_issues():
    assert validate_quiz(quiz_data()) == []


def test_end_must_follow_start():
    issues = validate_quiz(quiz_data(end_time=START))
    assert fields(issues) == {"end_time"}


def test_passing_marks_bounded_by_total():
    assert fields(validate_quiz(quiz_data(passing_marks=11))) == {"passing_marks"}
    assert fields(validate_quiz(quiz_data(passing_marks=-1))) == {"passing_marks"}
    assert validate_quiz(quiz_data(passing_marks=10)) == []


def test_short_title_and_zero_duration():
    issues = validate_quiz(quiz_data(title="ab", duration=0))
    assert fields(issues) == {"title", "duration"}


def test_missing_schedule_reported():
    issues = validate_quiz(quiz_data(start_time=None, end_time=None))
    assert fields(issues) == {"start_time", "end_time"}


def test_valid_question_has_no_issues():
    assert validate_question(question_data()) == []


def test_question_requires_all_four_options():
    issues = validate_question(question_data(options={"A": "3", "B": "4", "C": "5"}))
    assert fields(issues) == {"options"}


def test_question_rejects_unknown_correct_option_and_zero_marks():
    issues = validate_question(question_data(correct_option="E", marks=0))
    assert fields(issues) == {"correct_option", "marks"}


def test_bulk_rows_carry_row_numbers():
    issues = validate_question_rows([question_data(), question_data(question_text="")])
    assert fields(issues) == {"rows[2].question_text"}


def test_bulk_requires_rows():
    assert fields(validate_question_rows([])) == {"rows"}


def test_ensure_valid_raises_with_issues():
    issues = validate_quiz(quiz_data(title=""))
    with pytest.raises(ValidationFailed) as exc:
        ensure_valid(issues)

    assert exc.value.issues == issues
    assert exc.value.to_dict()["details"] == issues


def test_normalize_question_upper_cases_labels():
    normalized = normalize_question(question_data(
        options={"a": " 3 ", "b": "4", "c": "5", "d": "22"},
        correct_option=" b ",
    ))

    assert normalized["options"] == {"A": "3", "B": "4", "C": "5", "D": "22"}
    assert normalized["correct_option"] == "B"
    assert normalized["marks"] == 1.0
