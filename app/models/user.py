"""
User model - directory of platform identities (authentication lives elsewhere)
"""
from sqlalchemy import Column, String, Boolean, TIMESTAMP, Uuid, func
from app.database import Base
import uuid


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    full_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False, index=True)  # admin, coordinator, student
    department = Column(String(100))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, role={self.role})>"
