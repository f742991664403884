"""
FastAPI dependencies.
"""

from typing import Generator, Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.exceptions import AuthenticationError
from app.services import user_service
from app.services.exchange_rate_service import ExchangeRateCache
from app.services.auth import AuthContext
from app.services.mailer import Mailer, LoggingMailer


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database sessions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_rate_cache(request: Request) -> ExchangeRateCache:
    """The application-wide rate cache created in app.main."""
    return request.app.state.rate_cache


def get_mailer(request: Request) -> Mailer:
    return getattr(request.app.state, "mailer", None) or LoggingMailer()


def get_auth_context(request: Request, db: Session = Depends(get_db)) -> AuthContext:
    """
    Resolve the caller from the identity header.

    Token verification happens upstream; by the time a request reaches the
    app the header carries an authenticated user id.
    """
    user_id: Optional[str] = request.headers.get(settings.auth_user_header)
    if not user_id:
        raise AuthenticationError("Unauthorized")
    user = user_service.get_user(db, user_id)
    if not user:
        raise AuthenticationError("Unauthorized")
    return AuthContext(user_id=user.id, role=user.role)
