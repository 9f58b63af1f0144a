"""
Validation layer for quiz and question records

Each validator returns a list of {"field", "message"} issues; an empty list
means the record is acceptable. Storage models carry no business rules.
"""
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from app.exceptions import ValidationFailed

OPTION_LABELS = ("A", "B", "C", "D")

Issue = Dict[str, str]


def _issue(field: str, message: str) -> Issue:
    return {"field": field, "message": message}


def validate_quiz(data: Mapping[str, Any]) -> List[Issue]:
    """Validate quiz scheduling and marks (expects the merged, final values)"""
    issues = []

    title = (data.get("title") or "").strip()
    if len(title) < 3:
        issues.append(_issue("title", "Title must be at least 3 characters"))

    start: Optional[datetime] = data.get("start_time")
    end: Optional[datetime] = data.get("end_time")
    if start is None:
        issues.append(_issue("start_time", "Start time is required"))
    if end is None:
        issues.append(_issue("end_time", "End time is required"))
    if start is not None and end is not None and end <= start:
        issues.append(_issue("end_time", "End time must be after start time"))

    duration = data.get("duration")
    if duration is None or duration < 1:
        issues.append(_issue("duration", "Duration must be at least 1 minute"))

    total_marks = data.get("total_marks")
    passing_marks = data.get("passing_marks")
    if total_marks is None or total_marks < 1:
        issues.append(_issue("total_marks", "Total marks must be at least 1"))
    if passing_marks is None or passing_marks < 0:
        issues.append(_issue("passing_marks", "Passing marks cannot be negative"))
    elif total_marks is not None and passing_marks > total_marks:
        issues.append(_issue("passing_marks", "Passing marks cannot exceed total marks"))

    return issues


def validate_question(data: Mapping[str, Any], prefix: str = "") -> List[Issue]:
    """Validate one question: text, exactly options A-D, correct option, marks > 0"""
    issues = []

    text = data.get("question_text")
    if not text or not str(text).strip():
        issues.append(_issue(f"{prefix}question_text", "Question text is required"))

    options = data.get("options")
    if not isinstance(options, Mapping):
        issues.append(_issue(f"{prefix}options", "Options must map labels A-D to text"))
    else:
        labels = {str(label).strip().upper() for label in options}
        if labels != set(OPTION_LABELS):
            issues.append(_issue(f"{prefix}options", "Exactly four options labelled A, B, C, D are required"))
        for label, value in options.items():
            if value is None or not str(value).strip():
                issues.append(_issue(f"{prefix}options.{label}", "Option text is required"))

    correct = data.get("correct_option")
    if correct is None or str(correct).strip().upper() not in OPTION_LABELS:
        issues.append(_issue(f"{prefix}correct_option", "Correct option must be one of A, B, C, D"))

    marks = data.get("marks")
    if marks is None or marks <= 0:
        issues.append(_issue(f"{prefix}marks", "Marks must be greater than 0"))

    return issues


def validate_question_rows(rows: Sequence[Mapping[str, Any]]) -> List[Issue]:
    """Validate already-parsed bulk rows; field paths carry the 1-based row number"""
    if not rows:
        return [_issue("rows", "At least one question row is required")]

    issues = []
    for number, row in enumerate(rows, start=1):
        issues.extend(validate_question(row, prefix=f"rows[{number}]."))
    return issues


def ensure_valid(issues: List[Issue]) -> None:
    if issues:
        raise ValidationFailed(issues)


def normalize_question(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Canonical form of a validated question payload"""
    return {
        "question_text": str(data["question_text"]).strip(),
        "options": {
            str(label).strip().upper(): str(text).strip()
            for label, text in data["options"].items()
        },
        "correct_option": str(data["correct_option"]).strip().upper(),
        "marks": float(data["marks"]),
    }
