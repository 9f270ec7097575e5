"""
SQLAlchemy Models for the LMS backend
"""
from .base import Base
from .user import User, UserRole, UserStatus, ApprovalStatus
from .course import Course, CourseCategory, CourseLevel
from .batch import Batch, BatchEnrollment, EnrollmentType, EnrollmentStatus
from .payment import Payment, PaymentStatus, PaymentGateway, PaymentMethod, PaymentSource, Currency
from .payout import Payout, PayoutStatus, PayoutMethod, TeacherBankAccount, BankAccountType, BankAccountStatus
from .live_session import LiveSession, LiveSessionStatus
from .notification import (
    Notification,
    NotificationType,
    NotificationCategory,
    NotificationPriority,
    NotificationStatus,
    NotificationPreference,
    DeviceToken,
)

__all__ = [
    "Base",
    "User",
    "UserRole",
    "UserStatus",
    "ApprovalStatus",
    "Course",
    "CourseCategory",
    "CourseLevel",
    "Batch",
    "BatchEnrollment",
    "EnrollmentType",
    "EnrollmentStatus",
    "Payment",
    "PaymentStatus",
    "PaymentGateway",
    "PaymentMethod",
    "PaymentSource",
    "Currency",
    "Payout",
    "PayoutStatus",
    "PayoutMethod",
    "TeacherBankAccount",
    "BankAccountType",
    "BankAccountStatus",
    "LiveSession",
    "LiveSessionStatus",
    "Notification",
    "NotificationType",
    "NotificationCategory",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationPreference",
    "DeviceToken",
]
