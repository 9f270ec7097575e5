"""
Authentication API endpoints
Handles registration, login, JWT access/refresh tokens and password management
"""
import logging
import re
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, Field, validator
from datetime import datetime, timedelta
from typing import Optional

from core.config import settings
from core.database import get_db
from core.security import (
    create_tokens_for_user,
    get_current_user,
    verify_password,
    verify_refresh_token,
    hash_password,
)
from models.user import User, UserRole, ApprovalStatus
from models.notification import NotificationType, NotificationCategory
from services import notification_service

logger = logging.getLogger(__name__)

router = APIRouter()

NAME_PATTERN = re.compile(r"^[A-Za-z\s]+$")


def validate_password_strength(password: str) -> str:
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not re.search(r"[a-z]", password) or not re.search(r"[A-Z]", password) or not re.search(r"\d", password):
        raise ValueError("Password must contain at least one uppercase letter, one lowercase letter, and one number")
    return password


# ============================================
# Request/Response Models (Pydantic schemas)
# ============================================

class RegisterRequest(BaseModel):
    """Registration request payload"""
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str
    role: UserRole = UserRole.STUDENT
    phone: Optional[str] = Field(None, max_length=20)

    @validator("name")
    def validate_name(cls, v):
        v = v.strip()
        if not NAME_PATTERN.match(v):
            raise ValueError("Name can only contain letters and spaces")
        return v

    @validator("password")
    def validate_password(cls, v):
        return validate_password_strength(v)

    @validator("role")
    def validate_role(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("Role must be student or teacher")
        return v


class LoginRequest(BaseModel):
    """Login request payload"""
    email: EmailStr
    password: str


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    avatar: Optional[str] = None

    @validator("name")
    def validate_name(cls, v):
        if v is not None and not NAME_PATTERN.match(v.strip()):
            raise ValueError("Name can only contain letters and spaces")
        return v.strip() if v else v


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")

    @validator("new_password")
    def validate_new_password(cls, v):
        return validate_password_strength(v)

    class Config:
        populate_by_name = True


class RefreshTokenRequest(BaseModel):
    refresh_token: Optional[str] = Field(None, alias="refreshToken")

    class Config:
        populate_by_name = True


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


# ============================================
# Authentication Endpoints
# ============================================

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new student or teacher
    Teachers start with approvalStatus=pending until an admin approves them
    """
    email = request.email.lower()
    existing_user = db.query(User).filter(User.email == email).first()

    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists with this email"
        )

    new_user = User(
        name=request.name,
        email=email,
        password=hash_password(request.password),
        phone=request.phone,
        role=request.role,
        approval_status=ApprovalStatus.PENDING if request.role == UserRole.TEACHER else ApprovalStatus.APPROVED,
    )

    db.add(new_user)
    db.flush()

    notification_service.create_notification(
        db,
        recipient_id=new_user.id,
        title=f"Welcome to {settings.APP_NAME}!",
        message="Thank you for joining. Browse courses and enroll in a batch to get started.",
        type=NotificationType.WELCOME,
        category=NotificationCategory.SYSTEM,
        channels={"email": True, "push": False, "sms": False, "inApp": True},
    )

    db.commit()
    db.refresh(new_user)

    logger.info(f"New {new_user.role.value} registered: {new_user.email}")

    return {
        "success": True,
        "message": "User registered successfully",
        "data": {"user": new_user.to_dict(), **create_tokens_for_user(new_user)},
    }


@router.post("/login")
async def login(
    request: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Login with email and password
    Repeated failures lock the account for LOCKOUT_MINUTES
    """
    user = db.query(User).filter(User.email == request.email.lower()).first()

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if user.is_locked():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is temporarily locked due to too many failed login attempts. Please try again later."
        )

    if not verify_password(request.password, user.password):
        user.login_attempts = (user.login_attempts or 0) + 1
        if user.login_attempts >= settings.MAX_LOGIN_ATTEMPTS:
            user.locked_until = datetime.utcnow() + timedelta(minutes=settings.LOCKOUT_MINUTES)
            user.login_attempts = 0
            logger.warning(f"Account {user.email} locked after repeated failed logins")
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    # Successful login resets the lockout counter
    user.login_attempts = 0
    user.locked_until = None
    user.last_login = datetime.utcnow()
    db.commit()
    db.refresh(user)

    return {
        "success": True,
        "message": "Login successful",
        "data": {"user": user.to_dict(), **create_tokens_for_user(user)},
    }


@router.get("/me")
async def get_current_user_profile(
    current_user: User = Depends(get_current_user)
):
    """
    Get current authenticated user profile
    Requires valid JWT token in Authorization header
    """
    return {"success": True, "data": {"user": current_user.to_dict()}}


@router.post("/logout")
async def logout(current_user: User = Depends(get_current_user)):
    """
    Logout user
    Note: JWT tokens are stateless, so this is mostly for client-side cleanup
    """
    return {"success": True, "message": "Logged out successfully"}


@router.put("/profile")
async def update_profile(
    request: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update the caller's own name, phone or avatar"""
    if request.name is not None:
        current_user.name = request.name
    if request.phone is not None:
        current_user.phone = request.phone
    if request.avatar is not None:
        current_user.avatar = request.avatar

    db.commit()
    db.refresh(current_user)

    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": current_user.to_dict()},
    }


@router.put("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not verify_password(request.current_password, current_user.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    current_user.password = hash_password(request.new_password)
    db.commit()

    logger.info(f"Password changed for {current_user.email}")
    return {"success": True, "message": "Password changed successfully"}


@router.post("/refresh-token")
async def refresh_token(
    request: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Exchange a refresh token for a new access/refresh pair"""
    if not request.refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token is required"
        )

    payload = verify_refresh_token(request.refresh_token)
    user = db.query(User).filter(User.id == int(payload["sub"])).first()

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

    return {"success": True, "data": create_tokens_for_user(user)}


@router.post("/forgot-password")
async def forgot_password(request: ForgotPasswordRequest):
    """
    Always answers the same way so the endpoint cannot be used to discover accounts
    """
    return {
        "success": True,
        "message": "If an account with that email exists, a password reset link has been sent.",
    }
