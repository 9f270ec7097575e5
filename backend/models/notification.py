"""
Notification models - in-app notifications, per-user delivery preferences, push device tokens
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from .base import Base


class NotificationType(str, enum.Enum):
    CLASS_REMINDER = "class_reminder"
    ASSIGNMENT_DUE = "assignment_due"
    GRADE_RELEASED = "grade_released"
    PAYMENT_RECEIVED = "payment_received"
    PAYOUT_APPROVED = "payout_approved"
    PAYOUT_COMPLETED = "payout_completed"
    PAYOUT_REJECTED = "payout_rejected"
    BATCH_JOINED = "batch_joined"
    ACHIEVEMENT_EARNED = "achievement_earned"
    SYSTEM_ANNOUNCEMENT = "system_announcement"
    COURSE_UPDATE = "course_update"
    LIVE_CLASS = "live_class"
    ASSESSMENT_REMINDER = "assessment_reminder"
    PAYMENT_REMINDER = "payment_reminder"
    WELCOME = "welcome"
    PROFILE_UPDATE = "profile_update"


class NotificationCategory(str, enum.Enum):
    ACADEMIC = "academic"
    FINANCIAL = "financial"
    SOCIAL = "social"
    SYSTEM = "system"
    ACHIEVEMENT = "achievement"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotificationStatus(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


DEFAULT_CHANNELS = {"email": False, "push": True, "sms": False, "inApp": True}


class Notification(Base):
    """
    One notification addressed to one recipient.
    Broadcasts create one row per recipient sharing sender, title and message.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    message = Column(String(1000), nullable=False)

    recipient_id = Column("recipientId", Integer, ForeignKey("users.id"), nullable=False, index=True)
    sender_id = Column("senderId", Integer, ForeignKey("users.id"), nullable=True, index=True)

    type = Column(SQLEnum(NotificationType), nullable=False, index=True)
    category = Column(SQLEnum(NotificationCategory), default=NotificationCategory.SYSTEM, nullable=False)
    priority = Column(SQLEnum(NotificationPriority), default=NotificationPriority.MEDIUM, nullable=False)

    # Related records
    related_course_id = Column("relatedCourseId", Integer, ForeignKey("courses.id"), nullable=True)
    related_batch_id = Column("relatedBatchId", Integer, ForeignKey("batches.id"), nullable=True)
    related_payment_id = Column("relatedPaymentId", Integer, ForeignKey("payments.id"), nullable=True)

    # Delivery
    channels = Column(JSON, default=lambda: dict(DEFAULT_CHANNELS), nullable=False)
    status = Column(SQLEnum(NotificationStatus), default=NotificationStatus.SENT, nullable=False, index=True)
    scheduled_for = Column("scheduledFor", DateTime, nullable=True, index=True)
    sent_at = Column("sentAt", DateTime, nullable=True)
    delivered_at = Column("deliveredAt", DateTime, nullable=True)

    is_read = Column("isRead", Boolean, default=False, nullable=False, index=True)
    read_at = Column("readAt", DateTime, nullable=True)

    metadata_ = Column("metadata", JSON, nullable=True)

    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False, index=True)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    recipient = relationship("User", foreign_keys=[recipient_id])
    sender = relationship("User", foreign_keys=[sender_id])

    def __repr__(self):
        return f"<Notification(id={self.id}, recipient_id={self.recipient_id}, type={self.type})>"

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "recipientId": self.recipient_id,
            "senderId": self.sender_id,
            "sender": self.sender.to_summary() if self.sender else None,
            "type": self.type.value,
            "category": self.category.value,
            "priority": self.priority.value,
            "relatedCourseId": self.related_course_id,
            "relatedBatchId": self.related_batch_id,
            "relatedPaymentId": self.related_payment_id,
            "channels": self.channels or {},
            "status": self.status.value,
            "scheduledFor": self.scheduled_for.isoformat() if self.scheduled_for else None,
            "sentAt": self.sent_at.isoformat() if self.sent_at else None,
            "isRead": self.is_read,
            "readAt": self.read_at.isoformat() if self.read_at else None,
            "metadata": self.metadata_ or {},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class NotificationPreference(Base):
    """
    Per-user channel switches and muted notification types
    """
    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column("userId", Integer, ForeignKey("users.id"), unique=True, nullable=False)

    email_enabled = Column("emailEnabled", Boolean, default=True, nullable=False)
    push_enabled = Column("pushEnabled", Boolean, default=True, nullable=False)
    sms_enabled = Column("smsEnabled", Boolean, default=False, nullable=False)
    in_app_enabled = Column("inAppEnabled", Boolean, default=True, nullable=False)
    muted_types = Column("mutedTypes", JSON, default=list, nullable=False)

    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<NotificationPreference(user_id={self.user_id})>"

    def allows(self, channel: str, notification_type: str) -> bool:
        if notification_type in (self.muted_types or []):
            return False
        return {
            "email": self.email_enabled,
            "push": self.push_enabled,
            "sms": self.sms_enabled,
            "inApp": self.in_app_enabled,
        }.get(channel, False)

    def to_dict(self):
        return {
            "email": self.email_enabled,
            "push": self.push_enabled,
            "sms": self.sms_enabled,
            "inApp": self.in_app_enabled,
            "mutedTypes": self.muted_types or [],
        }


class DeviceToken(Base):
    """
    FCM registration token for one of a user's devices
    """
    __tablename__ = "device_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column("userId", Integer, ForeignKey("users.id"), nullable=False, index=True)
    token = Column(String(500), unique=True, nullable=False)
    platform = Column(String(20), default="web", nullable=False)  # web, android, ios
    is_active = Column("isActive", Boolean, default=True, nullable=False)

    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    last_used_at = Column("lastUsedAt", DateTime, default=func.now(), nullable=False)

    def __repr__(self):
        return f"<DeviceToken(user_id={self.user_id}, platform={self.platform})>"

    def to_dict(self):
        return {
            "id": self.id,
            "platform": self.platform,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
