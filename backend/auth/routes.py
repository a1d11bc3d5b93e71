"""
Authentication API endpoints.

This module provides REST API endpoints for:
- User registration and login
- Reading and updating the current user's profile
- Changing a password
- Password recovery through the user's security question
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import schemas
from database import atomic, get_db
from errors import Conflict, NotFound, Unauthenticated, ValidationFailed
from models import User
from auth.security import (
    create_user_token,
    hash_password,
    hash_security_answer,
    verify_password,
    verify_security_answer,
)
from auth.dependencies import get_current_principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

EMAIL_TAKEN = "User with this email already exists"


def _load_user(db: Session, principal: schemas.Principal) -> User:
    user = db.query(User).filter(User.id == principal.id).first()
    if user is None:
        # Deleted between principal resolution and this read
        raise NotFound("User not found")
    return user


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(request: schemas.RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a new user account.

    Args:
        request: Registration data (name, email, password, security question and answer)
        db: Database session

    Returns:
        Access token plus the created user

    Raises:
        Conflict: 409 if the email is already registered
    """
    logger.info(f"Registration attempt for email: {request.email}")

    if db.query(User).filter(User.email == request.email).first():
        logger.info(f"Registration failed: email already exists: {request.email}")
        raise Conflict(EMAIL_TAKEN)

    # A concurrent registration of the same email surfaces as a unique violation
    with atomic(db, "register", conflict_message=EMAIL_TAKEN):
        new_user = User(
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
            security_question=request.security_question,
            security_answer_hash=hash_security_answer(request.security_answer),
        )
        db.add(new_user)

    logger.info(f"User registered successfully: {new_user.email} (ID: {new_user.id})")
    return {
        "message": "User registered successfully",
        "access_token": create_user_token(new_user),
        "token_type": "bearer",
        "user": new_user,
    }


@router.post("/login", response_model=schemas.AuthResponse)
def login(request: schemas.LoginRequest, db: Session = Depends(get_db)):
    """
    Login with email and password.

    Raises:
        Unauthenticated: 401 if the email is unknown or the password is wrong
    """
    logger.info(f"Login attempt for email: {request.email}")

    user = db.query(User).filter(User.email == request.email).first()
    if not user:
        logger.info(f"Login failed: user not found: {request.email}")
        raise Unauthenticated("Invalid email or password")

    if not verify_password(request.password, user.password_hash):
        logger.info(f"Login failed: invalid password: {request.email}")
        raise Unauthenticated("Invalid email or password")

    logger.info(f"User logged in successfully: {user.email} (ID: {user.id})")
    return {
        "message": "Login successful",
        "access_token": create_user_token(user),
        "token_type": "bearer",
        "user": user,
    }


@router.get("/profile", response_model=schemas.UserResponse)
def get_profile(
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Get current authenticated user's profile."""
    logger.debug(f"Profile requested by user {principal.id}")
    return {"user": _load_user(db, principal)}


@router.put("/profile", response_model=schemas.UserMutationResponse)
def update_profile(
    request: schemas.ProfileUpdate,
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    Update name and/or security question and answer.

    A new security question must come with its answer; an answer on its own
    replaces the stored answer for the existing question.
    """
    if request.security_question is not None and request.security_answer is None:
        raise ValidationFailed("A security answer is required when changing the security question")

    user = _load_user(db, principal)
    with atomic(db, "update profile"):
        if request.name is not None:
            user.name = request.name
        if request.security_question is not None:
            user.security_question = request.security_question
        if request.security_answer is not None:
            user.security_answer_hash = hash_security_answer(request.security_answer)

    logger.info(f"Profile updated for user {principal.id}")
    return {"message": "Profile updated successfully", "user": user}


@router.put("/change-password", response_model=schemas.MessageResponse)
def change_password(
    request: schemas.ChangePasswordRequest,
    principal: schemas.Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    Change the current user's password.

    Raises:
        Unauthenticated: 401 if the current password is wrong
        ValidationFailed: 400 if the new password equals the current one
    """
    user = _load_user(db, principal)

    if not verify_password(request.current_password, user.password_hash):
        logger.info(f"Password change failed: wrong current password for user {principal.id}")
        raise Unauthenticated("Current password is incorrect")

    if request.new_password == request.current_password:
        raise ValidationFailed("New password must be different from the current password")

    with atomic(db, "change password"):
        user.password_hash = hash_password(request.new_password)

    logger.info(f"Password changed for user {principal.id}")
    return {"message": "Password changed successfully"}


@router.post("/security-question", response_model=schemas.SecurityQuestionResponse)
def get_security_question(request: schemas.SecurityQuestionRequest, db: Session = Depends(get_db)):
    """Return the security question for an email, as the first step of a password reset."""
    user = db.query(User).filter(User.email == request.email).first()
    if user is None:
        raise NotFound("User not found with this email address")
    return {"security_question": user.security_question}


@router.post("/reset-password", response_model=schemas.MessageResponse)
def reset_password(request: schemas.ResetPasswordRequest, db: Session = Depends(get_db)):
    """
    Reset a forgotten password by answering the security question.

    Raises:
        Unauthenticated: 401 if the email is unknown or the answer is wrong
    """
    logger.info(f"Password reset attempt for email: {request.email}")

    user = db.query(User).filter(User.email == request.email).first()
    if user is None or not verify_security_answer(request.security_answer, user.security_answer_hash):
        logger.info(f"Password reset failed for email: {request.email}")
        raise Unauthenticated("Invalid email or security answer")

    with atomic(db, "reset password"):
        user.password_hash = hash_password(request.new_password)

    logger.info(f"Password reset for user {user.id}")
    return {"message": "Password reset successfully"}
