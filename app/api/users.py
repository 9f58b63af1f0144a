"""
User directory API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from app.database import get_db
from app.schemas.quiz import UserCreate, UserResponse
from app.services.quiz_service import quiz_service

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(request: UserCreate, db: Session = Depends(get_db)):
    """Register a directory entry (credentials are managed by the auth service)"""
    return quiz_service.create_user(db, request.model_dump())


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: UUID, db: Session = Depends(get_db)):
    return quiz_service.get_user(db, user_id)
