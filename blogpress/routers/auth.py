"""Authentication router for registration, login, password reset and email verification."""

import os
import logging
from datetime import datetime, timedelta
from collections import deque
from pathlib import Path
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blogpress.database import get_db
from blogpress.models import User
from blogpress.schemas import (
    UserRegister,
    UserLogin,
    Token,
    UserProfile,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from blogpress.auth import (
    hash_password,
    verify_password,
    create_access_token,
    create_purpose_token,
    decode_token,
    get_current_user,
)

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

PASSWORD_RESET_TOKEN = "password_reset"
EMAIL_VERIFICATION_TOKEN = "email_verification"

# Rate limiting: Track outgoing emails per address (email -> deque of timestamps)
email_requests = {}
EMAIL_RATE_LIMIT = 3
EMAIL_RATE_WINDOW = timedelta(minutes=5)

# Email configuration
mail_config = ConnectionConfig(
    MAIL_USERNAME=os.getenv("MAIL_FROM", "noreply@example.com"),
    MAIL_PASSWORD=os.getenv("MAIL_PASSWORD", ""),
    MAIL_FROM=os.getenv("MAIL_FROM", "noreply@example.com"),
    MAIL_PORT=int(os.getenv("MAIL_PORT", "587")),
    MAIL_SERVER=os.getenv("MAIL_SERVER", "smtp.gmail.com"),
    MAIL_STARTTLS=os.getenv("MAIL_TLS", "True").lower() == "true",
    MAIL_SSL_TLS=os.getenv("MAIL_SSL", "False").lower() == "true",
    USE_CREDENTIALS=True,
    VALIDATE_CERTS=True,
    SUPPRESS_SEND=1 if os.getenv("MAIL_SUPPRESS_SEND", "False").lower() == "true" else 0,
    TEMPLATE_FOLDER=Path(__file__).parent.parent / "templates" / "email"
)

fastmail = FastMail(mail_config)


def _check_rate_limit(email: str) -> None:
    """Allow at most EMAIL_RATE_LIMIT emails per address within EMAIL_RATE_WINDOW."""
    now = datetime.now()
    email_lower = email.lower()

    recent = deque(
        [ts for ts in email_requests.get(email_lower, []) if now - ts < EMAIL_RATE_WINDOW],
        maxlen=EMAIL_RATE_LIMIT
    )
    if not recent:
        email_requests.pop(email_lower, None)
        return
    email_requests[email_lower] = recent

    if len(recent) >= EMAIL_RATE_LIMIT:
        logger.warning(f"Rate limit exceeded for: {email}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many email requests. Please try again in 5 minutes."
        )


def _record_email_sent(email: str) -> None:
    email_requests.setdefault(email.lower(), deque(maxlen=EMAIL_RATE_LIMIT)).append(datetime.now())


def _redeem_token(token: str, expected_type: str) -> str:
    """Return the email encoded in a purpose token, or raise 400."""
    payload = decode_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired token"
        )

    if payload.get("type") != expected_type:
        logger.warning(f"Invalid token type, expected {expected_type}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid token"
        )

    email = payload.get("sub")
    if not email:
        logger.warning("No email in token")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid token"
        )
    return email


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=Token)
def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """
    Register a new reader account and return access token.

    Args:
        user_data: User registration data (name, email, password)
        db: Database session

    Returns:
        Token: JWT access token for the newly registered user

    Raises:
        HTTPException: If email already exists
    """
    logger.info(f"Registration attempt for email: {user_data.email}")

    existing_user = db.query(User).filter(User.email == user_data.email).first()
    if existing_user:
        logger.warning(f"Registration failed: Email already exists - {user_data.email}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        name=user_data.name,
        email=user_data.email,
        password_hash=hash_password(user_data.password)
    )

    db.add(new_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Registration failed: Email registered concurrently - {user_data.email}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )
    db.refresh(new_user)

    access_token = create_access_token(data={"sub": new_user.email})

    logger.info(f"User registered successfully and logged in: {user_data.email}")
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/login", response_model=Token)
def login(user_data: UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate user and return JWT token.

    Raises:
        HTTPException: If credentials are invalid
    """
    logger.info(f"Login attempt for email: {user_data.email}")

    user = db.query(User).filter(User.email == user_data.email).first()
    if not user or not verify_password(user_data.password, user.password_hash):
        logger.warning(f"Login failed: Invalid credentials - {user_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    access_token = create_access_token(data={"sub": user.email})

    logger.info(f"User logged in successfully: {user_data.email}")
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserProfile)
def me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return current_user


@router.post("/forgot-password")
async def forgot_password(request: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """
    Send password reset email to user.

    Raises:
        HTTPException: If email not found or rate limit exceeded
    """
    logger.info(f"Password reset requested for: {request.email}")

    _check_rate_limit(request.email)

    user = db.query(User).filter(User.email == request.email).first()
    if not user:
        logger.warning(f"Password reset failed: User not found - {request.email}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Email not found"
        )

    reset_token = create_purpose_token(user.email, PASSWORD_RESET_TOKEN, timedelta(minutes=30))

    base_url = os.getenv("URL_BASE_WEBSITE", "http://localhost:3000")
    reset_link = f"{base_url}/reset-password?token={reset_token}"

    try:
        message = MessageSchema(
            subject="Reset Your Password - BlogPress",
            recipients=[request.email],
            template_body={"reset_link": reset_link},
            subtype=MessageType.html
        )

        await fastmail.send_message(message, template_name="password_reset.html")
        _record_email_sent(request.email)

        logger.info(f"Password reset email sent to: {request.email}")
        return {"message": "Password reset email sent successfully"}

    except Exception as e:
        logger.error(f"Failed to send password reset email to {request.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send reset email. Please try again later."
        )


@router.post("/reset-password")
def reset_password(request: ResetPasswordRequest, db: Session = Depends(get_db)):
    """
    Reset user password using token.

    Raises:
        HTTPException: If token is invalid, expired, or user not found
    """
    logger.info("Password reset attempt with token")

    email = _redeem_token(request.token, PASSWORD_RESET_TOKEN)

    user = db.query(User).filter(User.email == email).first()
    if not user:
        logger.warning(f"Password reset failed: User not found - {email}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    user.password_hash = hash_password(request.new_password)
    db.commit()

    logger.info(f"Password reset successfully for: {email}")
    return {"message": "Password reset successfully"}


@router.post("/verify-email/send")
async def send_verification_email(current_user: User = Depends(get_current_user)):
    """
    Email the current user a link to confirm their address.

    Raises:
        HTTPException: If rate limit exceeded or sending fails
    """
    if current_user.email_verified_at is not None:
        return {"message": "Email already verified"}

    _check_rate_limit(current_user.email)

    token = create_purpose_token(current_user.email, EMAIL_VERIFICATION_TOKEN, timedelta(hours=24))
    base_url = os.getenv("URL_BASE_WEBSITE", "http://localhost:3000")
    verify_link = f"{base_url}/verify-email?token={token}"

    try:
        message = MessageSchema(
            subject="Verify Your Email - BlogPress",
            recipients=[current_user.email],
            template_body={"verify_link": verify_link, "name": current_user.name},
            subtype=MessageType.html
        )

        await fastmail.send_message(message, template_name="verify_email.html")
        _record_email_sent(current_user.email)

        logger.info(f"Verification email sent to: {current_user.email}")
        return {"message": "Verification email sent successfully"}

    except Exception as e:
        logger.error(f"Failed to send verification email to {current_user.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send verification email. Please try again later."
        )


@router.post("/verify-email", response_model=UserProfile)
def verify_email(request: VerifyEmailRequest, db: Session = Depends(get_db)):
    """
    Mark the token's email address as verified.

    Verifying an already verified address keeps the original timestamp.
    """
    email = _redeem_token(request.token, EMAIL_VERIFICATION_TOKEN)

    user = db.query(User).filter(User.email == email).first()
    if not user:
        logger.warning(f"Email verification failed: User not found - {email}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    if user.email_verified_at is None:
        user.email_verified_at = datetime.utcnow()
        db.commit()
        db.refresh(user)
        logger.info(f"Email verified for: {email}")

    return user
