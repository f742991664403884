"""
User database model.
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship
from app.database import Base


class Role(str, enum.Enum):
    """User role enumeration."""
    user = "user"
    admin = "admin"


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(Role), default=Role.user, nullable=False)
    name = Column(String(100), nullable=True)
    birthdate = Column(String(10), nullable=True)
    phone = Column(String(32), nullable=True)
    address = Column(String(255), nullable=True)

    # Email verification
    is_email_verified = Column(Boolean, default=False, nullable=False)
    email_verify_token = Column(String(64), nullable=True, index=True)
    email_verify_expiry = Column(DateTime, nullable=True)

    # Password reset
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expiry = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    expenses = relationship("Expense", back_populates="user")
