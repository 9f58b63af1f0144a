"""
Quiz authoring API endpoints: quizzes, questions and assignments
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging

from app.database import get_db
from app.schemas.quiz import (
    QuizCreate,
    QuizUpdate,
    QuizResponse,
    QuizDetailResponse,
    QuestionCreate,
    QuestionUpdate,
    QuestionResponse,
    BulkQuestionsRequest,
    AssignmentRequest,
    AssignmentResponse,
    AssignedStudent,
)
from app.services.quiz_service import quiz_service


router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)


@router.post("", response_model=QuizResponse, status_code=201)
async def create_quiz(request: QuizCreate, db: Session = Depends(get_db)):
    """
    Create a quiz definition

    - End time must be after start time
    - Passing marks cannot exceed total marks
    - New quizzes are active but unpublished unless stated otherwise
    """
    data = request.model_dump(exclude={"owner_id"})
    return quiz_service.create_quiz(db, request.owner_id, data)


@router.get("", response_model=List[QuizResponse])
async def list_quizzes(
    department: Optional[str] = None,
    semester: Optional[str] = None,
    subject: Optional[str] = None,
    owner_id: Optional[UUID] = None,
    is_active: Optional[bool] = None,
    is_published: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    """List quizzes, newest first, optionally filtered"""
    return quiz_service.list_quizzes(
        db,
        department=department,
        semester=semester,
        subject=subject,
        owner_id=owner_id,
        is_active=is_active,
        is_published=is_published,
    )


@router.get("/{quiz_id}", response_model=QuizDetailResponse)
async def get_quiz(quiz_id: UUID, db: Session = Depends(get_db)):
    """Quiz definition with its ordered questions (including the answer key)"""
    quiz = quiz_service.get_quiz(db, quiz_id)
    questions = quiz_service.list_questions(db, quiz_id)

    return QuizDetailResponse(
        quiz=QuizResponse.model_validate(quiz),
        questions=[QuestionResponse.model_validate(q) for q in questions],
        total_questions=len(questions),
        question_marks=sum(q.marks for q in questions),
    )


@router.patch("/{quiz_id}", response_model=QuizResponse)
async def update_quiz(quiz_id: UUID, request: QuizUpdate, db: Session = Depends(get_db)):
    """
    Update quiz fields

    Changing marks does not rescore existing Results.
    """
    return quiz_service.update_quiz(db, quiz_id, request.model_dump(exclude_unset=True))


@router.patch("/{quiz_id}/toggle-active", response_model=QuizResponse)
async def toggle_active(quiz_id: UUID, db: Session = Depends(get_db)):
    return quiz_service.toggle_flag(db, quiz_id, "is_active")


@router.patch("/{quiz_id}/toggle-publish", response_model=QuizResponse)
async def toggle_publish(quiz_id: UUID, db: Session = Depends(get_db)):
    return quiz_service.toggle_flag(db, quiz_id, "is_published")


@router.delete("/{quiz_id}", status_code=204)
async def delete_quiz(quiz_id: UUID, db: Session = Depends(get_db)):
    """Delete a quiz with its questions and assignments; rejected once attempts exist"""
    quiz_service.delete_quiz(db, quiz_id)
    return Response(status_code=204)


@router.get("/{quiz_id}/questions", response_model=List[QuestionResponse])
async def list_questions(quiz_id: UUID, db: Session = Depends(get_db)):
    return quiz_service.list_questions(db, quiz_id)


@router.post("/{quiz_id}/questions", response_model=QuestionResponse, status_code=201)
async def add_question(quiz_id: UUID, request: QuestionCreate, db: Session = Depends(get_db)):
    return quiz_service.add_question(db, quiz_id, request.model_dump())


@router.post("/{quiz_id}/questions/bulk", response_model=List[QuestionResponse], status_code=201)
async def add_questions_bulk(quiz_id: UUID, request: BulkQuestionsRequest, db: Session = Depends(get_db)):
    """
    Add questions from rows parsed out of an uploaded spreadsheet

    All rows are validated first; nothing is stored if any row fails.
    """
    return quiz_service.add_questions(db, quiz_id, [row.model_dump() for row in request.rows])


@router.patch("/{quiz_id}/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    quiz_id: UUID, question_id: UUID, request: QuestionUpdate, db: Session = Depends(get_db)
):
    return quiz_service.update_question(db, quiz_id, question_id, request.model_dump(exclude_unset=True))


@router.delete("/{quiz_id}/questions/{question_id}", status_code=204)
async def delete_question(quiz_id: UUID, question_id: UUID, db: Session = Depends(get_db)):
    quiz_service.delete_question(db, quiz_id, question_id)
    return Response(status_code=204)


@router.post("/{quiz_id}/assignments", response_model=AssignmentResponse, status_code=201)
async def assign_students(quiz_id: UUID, request: AssignmentRequest, db: Session = Depends(get_db)):
    """Grant students permission to attempt the quiz"""
    return quiz_service.assign_students(db, quiz_id, request.student_ids)


@router.get("/{quiz_id}/assignments", response_model=List[AssignedStudent])
async def list_assignments(quiz_id: UUID, db: Session = Depends(get_db)):
    return quiz_service.list_assignments(db, quiz_id)


@router.delete("/{quiz_id}/assignments/{student_id}", status_code=204)
async def remove_assignment(quiz_id: UUID, student_id: UUID, db: Session = Depends(get_db)):
    """Revoke a grant; an existing attempt is kept"""
    quiz_service.remove_assignment(db, quiz_id, student_id)
    return Response(status_code=204)
