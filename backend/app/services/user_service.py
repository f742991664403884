"""Service for user accounts, e-mail verification and password resets."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import AuthenticationError, InvalidInputError, NotFoundError
from app.models.user import User
from app.schemas.user import UserRegister, UserUpdate
from app.services.security import check_password, generate_token, hash_password

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(
        User.email == email.strip().lower(),
        User.deleted_at.is_(None)
    ).first()


def register(db: Session, data: UserRegister, now: Optional[datetime] = None) -> User:
    """Create an unverified account with a fresh verification token."""
    now = now or datetime.utcnow()
    existing = db.query(User).filter(
        or_(User.username == data.username, User.email == data.email)
    ).first()
    if existing:
        raise InvalidInputError("User already exists")

    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        name=data.name,
        birthdate=data.birthdate,
        phone=data.phone,
        address=data.address,
        is_email_verified=False,
        email_verify_token=generate_token(),
        email_verify_expiry=now + timedelta(hours=settings.email_verify_ttl_hours),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")
    return user


def authenticate(db: Session, username: str, password: str) -> User:
    user = db.query(User).filter(User.username == username, User.deleted_at.is_(None)).first()
    if not user or not check_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    return user


def verify_email(db: Session, token: str, now: Optional[datetime] = None) -> User:
    now = now or datetime.utcnow()
    user = db.query(User).filter(User.email_verify_token == token).first() if token else None
    if not user:
        raise InvalidInputError("Invalid or expired token")
    if user.email_verify_expiry and now > user.email_verify_expiry:
        raise InvalidInputError("Token expired")

    user.is_email_verified = True
    user.email_verify_token = None
    db.commit()
    db.refresh(user)
    return user


def resend_verification(db: Session, email: str, now: Optional[datetime] = None) -> Optional[str]:
    """
    Issue a new verification token.

    Returns None (without raising) for unknown or already verified addresses
    so callers cannot probe which e-mails exist.
    """
    now = now or datetime.utcnow()
    user = get_user_by_email(db, email)
    if not user or user.is_email_verified:
        return None

    user.email_verify_token = generate_token()
    user.email_verify_expiry = now + timedelta(hours=settings.email_verify_ttl_hours)
    db.commit()
    return user.email_verify_token


def forgot_password(db: Session, email: str, now: Optional[datetime] = None) -> Optional[str]:
    """Issue a password reset token for verified accounts only; silent otherwise."""
    now = now or datetime.utcnow()
    user = get_user_by_email(db, email)
    if not user or not user.is_email_verified:
        return None

    user.password_reset_token = generate_token()
    user.password_reset_expiry = now + timedelta(hours=settings.password_reset_ttl_hours)
    db.commit()
    return user.password_reset_token


def reset_password(db: Session, token: str, new_password: str, now: Optional[datetime] = None) -> None:
    now = now or datetime.utcnow()
    user = db.query(User).filter(User.password_reset_token == token).first() if token else None
    if not user:
        raise InvalidInputError("Invalid or expired token")
    if user.password_reset_expiry and now > user.password_reset_expiry:
        raise InvalidInputError("Token expired")

    user.password_hash = hash_password(new_password)
    user.password_reset_token = None
    db.commit()


def change_password(db: Session, user_id: str, current_password: str, new_password: str) -> None:
    user = get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not check_password(current_password, user.password_hash):
        raise InvalidInputError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    db.commit()


def update_profile(db: Session, user_id: str, update: UserUpdate) -> User:
    user = get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")

    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user
