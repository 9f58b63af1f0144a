"""Shared fixtures: an in-memory SQLite database and a TestClient wired to it."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta
from typing import List, Sequence
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.database import Base, build_engine, get_db
from app.main import app
from app.services.quiz_service import quiz_service

WINDOW_START = datetime(2026, 3, 2, 9, 0, 0)
WINDOW_END = WINDOW_START + timedelta(hours=3)
KEY = ("A", "B", "C", "D")
MARKS = (1.0, 2.0, 3.0, 4.0)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def option_set(prefix: str = "Option") -> dict:
    return {label: f"{prefix} {label}" for label in KEY}


def make_quiz(db, owner_id=None, questions: Sequence[float] = MARKS, **overrides):
    """Published, active quiz worth 10 marks over four questions keyed A, B, C, D."""
    data = {
        "title": "Thermodynamics Midterm",
        "department": "Physics",
        "semester": "4",
        "subject": "Thermodynamics",
        "start_time": WINDOW_START,
        "end_time": WINDOW_END,
        "duration": 30,
        "total_marks": 10.0,
        "passing_marks": 4.0,
        "is_active": True,
        "is_published": True,
    }
    data.update(overrides)
    quiz = quiz_service.create_quiz(db, owner_id or uuid4(), data)

    rows = [
        {
            "question_text": f"Question {index + 1}",
            "options": option_set(f"Q{index + 1}"),
            "correct_option": KEY[index % len(KEY)],
            "marks": marks,
        }
        for index, marks in enumerate(questions)
    ]
    if rows:
        quiz_service.add_questions(db, quiz.id, rows)
    return quiz


def assign(db, quiz, *student_ids) -> List:
    quiz_service.assign_students(db, quiz.id, list(student_ids))
    return list(student_ids)
