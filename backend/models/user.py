"""
User model - Core authentication and authorization
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Float, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from datetime import datetime
import enum

from .base import Base


class UserRole(str, enum.Enum):
    """User role enumeration"""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    """Account status managed by admins"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ApprovalStatus(str, enum.Enum):
    """Teacher onboarding approval"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(Base):
    """
    Students, teachers and admins.
    Teachers also carry their commission settings and payout balances.
    """
    __tablename__ = "users"

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # User information
    name = Column(String(100), nullable=False)
    email = Column(String(320), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    avatar = Column(Text, nullable=True)

    # Role-based access control
    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False, index=True)
    status = Column(SQLEnum(UserStatus), default=UserStatus.ACTIVE, nullable=False)
    is_active = Column("isActive", Boolean, default=True, nullable=False)
    email_verified = Column("emailVerified", Boolean, default=False, nullable=False)

    # Login tracking / lockout
    last_login = Column("lastLogin", DateTime, nullable=True)
    login_attempts = Column("loginAttempts", Integer, default=0, nullable=False)
    locked_until = Column("lockedUntil", DateTime, nullable=True)

    # Teacher settings
    approval_status = Column("approvalStatus", SQLEnum(ApprovalStatus), default=ApprovalStatus.APPROVED, nullable=False)
    commission_rate = Column("commissionRate", Float, nullable=True)
    max_students_per_batch = Column("maxStudentsPerBatch", Integer, default=50, nullable=False)

    # Suspension
    suspension_reason = Column("suspensionReason", Text, nullable=True)
    suspended_by = Column("suspendedBy", Integer, ForeignKey("users.id"), nullable=True)
    suspended_at = Column("suspendedAt", DateTime, nullable=True)

    # Earnings (teachers)
    total_earnings = Column("totalEarnings", Float, default=0.0, nullable=False)
    available_for_payout = Column("availableForPayout", Float, default=0.0, nullable=False)

    # Timestamps
    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    def is_admin(self) -> bool:
        """Check if user has admin privileges"""
        return self.role == UserRole.ADMIN

    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    def is_locked(self) -> bool:
        """True while a lockout from repeated failed logins is in effect"""
        return self.locked_until is not None and self.locked_until > datetime.utcnow()

    def to_dict(self):
        """Convert to dictionary for API responses (password excluded)"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "avatar": self.avatar,
            "role": self.role.value,
            "status": self.status.value,
            "isActive": self.is_active,
            "emailVerified": self.email_verified,
            "approvalStatus": self.approval_status.value if self.approval_status else None,
            "commissionRate": self.commission_rate,
            "maxStudentsPerBatch": self.max_students_per_batch,
            "suspensionReason": self.suspension_reason,
            "suspendedAt": self.suspended_at.isoformat() if self.suspended_at else None,
            "totalEarnings": self.total_earnings,
            "availableForPayout": self.available_for_payout,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_summary(self):
        """Compact form embedded in other resources"""
        return {"id": self.id, "name": self.name, "email": self.email}
