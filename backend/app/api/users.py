"""
User account API endpoints.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.dependencies import get_db, get_auth_context, get_mailer
from app.exceptions import NotFoundError
from app.schemas.user import (
    UserRegister,
    UserLogin,
    UserUpdate,
    UserResponse,
    EmailRequest,
    VerifyEmailRequest,
    ResetPasswordRequest,
    ChangePasswordRequest,
    MessageResponse,
)
from app.services import user_service
from app.services.auth import AuthContext
from app.services.mailer import Mailer, send_verify_email, send_password_reset_email

router = APIRouter(prefix="/users", tags=["users"])

# Same answer whether or not the address exists
EMAIL_SENT_MESSAGE = "If the address is registered, an email has been sent"


@router.post("/register", response_model=UserResponse, status_code=201)
def register(
    data: UserRegister,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer)
):
    """Create an account and send the verification email."""
    user = user_service.register(db, data)
    background_tasks.add_task(send_verify_email, mailer, user.email, user.email_verify_token)
    return user


@router.post("/login", response_model=UserResponse)
def login(data: UserLogin, db: Session = Depends(get_db)):
    """Check credentials. Token issuance is handled by the auth gateway."""
    return user_service.authenticate(db, data.username, data.password)


@router.get("/me", response_model=UserResponse)
def get_me(db: Session = Depends(get_db), auth: AuthContext = Depends(get_auth_context)):
    user = user_service.get_user(db, auth.user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.patch("/me", response_model=UserResponse)
def update_me(
    update: UserUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    return user_service.update_profile(db, auth.user_id, update)


@router.post("/verify-email", response_model=MessageResponse)
def verify_email(data: VerifyEmailRequest, db: Session = Depends(get_db)):
    user_service.verify_email(db, data.token)
    return MessageResponse(message="Email verified")


@router.post("/resend-verification", response_model=MessageResponse)
def resend_verification(
    data: EmailRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer)
):
    token = user_service.resend_verification(db, data.email)
    if token:
        background_tasks.add_task(send_verify_email, mailer, data.email, token)
    return MessageResponse(message=EMAIL_SENT_MESSAGE)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    data: EmailRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer)
):
    token = user_service.forgot_password(db, data.email)
    if token:
        background_tasks.add_task(send_password_reset_email, mailer, data.email, token)
    return MessageResponse(message=EMAIL_SENT_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    user_service.reset_password(db, data.token, data.password)
    return MessageResponse(message="Password has been reset")


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    user_service.change_password(db, auth.user_id, data.current_password, data.new_password)
    return MessageResponse(message="Password changed")
