"""
Performance analytics API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from app.database import get_db
from app.exceptions import QuizEngineError
from app.schemas.analytics import QuizAnalytics, StudentAnalytics, SystemAnalytics, OwnerAnalytics
from app.services.analytics_service import analytics_service

router = APIRouter(prefix="/api", tags=["analytics"])
logger = logging.getLogger(__name__)


@router.get("/quizzes/{quiz_id}/analytics", response_model=QuizAnalytics)
async def get_quiz_analytics(
    quiz_id: UUID,
    top: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    Get analytics for a specific quiz

    Returns:
    - Attempt counts by status and completion rate
    - Pass/fail counts and pass rate
    - Average, highest and lowest score
    - Five-bucket percentage distribution
    - Top performers by score
    """

    try:
        logger.info(f"Fetching analytics for quiz {quiz_id}")

        analytics = analytics_service.get_quiz_analytics(db, quiz_id, top_n=top)

        return QuizAnalytics(**analytics)

    except QuizEngineError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch quiz analytics: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch quiz analytics: {str(e)}"
        )


@router.get("/students/{student_id}/analytics", response_model=StudentAnalytics)
async def get_student_analytics(
    student_id: UUID,
    db: Session = Depends(get_db)
):
    """
    Get performance analytics for a student

    Returns:
    - Attempt counts (completed, in progress, invalidated)
    - Passed and failed quizzes
    - Average percentage over valid results
    """

    try:
        logger.info(f"Fetching analytics for student {student_id}")

        analytics = analytics_service.get_student_analytics(db, student_id)

        return StudentAnalytics(**analytics)

    except Exception as e:
        logger.error(f"Failed to fetch student analytics: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch student analytics: {str(e)}"
        )


@router.get("/owners/{owner_id}/analytics", response_model=OwnerAnalytics)
async def get_owner_analytics(owner_id: UUID, db: Session = Depends(get_db)):
    """Quiz, assignment and attempt totals for one coordinator"""
    return OwnerAnalytics(**analytics_service.get_owner_analytics(db, owner_id))


@router.get("/analytics/system", response_model=SystemAnalytics)
async def get_system_analytics(db: Session = Depends(get_db)):
    """System-wide totals, role distribution and quizzes per department"""
    return SystemAnalytics(**analytics_service.get_system_analytics(db))
