"""
Payment model - batch enrollment fees collected through Razorpay or Cashfree
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Float, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime
import time
import enum

from .base import Base


class PaymentStatus(str, enum.Enum):
    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIAL_REFUND = "partial_refund"


SETTLED_STATUSES = (PaymentStatus.PAID, PaymentStatus.REFUNDED, PaymentStatus.PARTIAL_REFUND)


class PaymentGateway(str, enum.Enum):
    RAZORPAY = "razorpay"
    CASHFREE = "cashfree"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    NETBANKING = "netbanking"
    WALLET = "wallet"
    UPI = "upi"
    EMI = "emi"
    CASHFREE = "cashfree"


class PaymentSource(str, enum.Enum):
    """Who brought the student in; decides the commission split"""
    PLATFORM = "platform"
    TEACHER = "teacher"


class Currency(str, enum.Enum):
    INR = "INR"
    USD = "USD"
    EUR = "EUR"


def _default_receipt():
    return f"receipt_{int(time.time() * 1000)}"


class Payment(Base):
    """
    One enrollment payment.
    Commission fields are fixed when the order is created; see services.commission.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Gateway identifiers
    order_id = Column("orderId", String(100), unique=True, nullable=False, index=True)
    gateway_payment_id = Column("gatewayPaymentId", String(100), nullable=True, index=True)
    gateway_signature = Column("gatewaySignature", String(255), nullable=True)
    gateway_order_id = Column("gatewayOrderId", String(100), nullable=True)

    # Parties
    student_id = Column("studentId", Integer, ForeignKey("users.id"), nullable=False, index=True)
    teacher_id = Column("teacherId", Integer, ForeignKey("users.id"), nullable=False, index=True)
    batch_id = Column("batchId", Integer, ForeignKey("batches.id"), nullable=False, index=True)
    course_id = Column("courseId", Integer, ForeignKey("courses.id"), nullable=True)

    # Amounts
    amount = Column(Float, nullable=False)
    currency = Column(SQLEnum(Currency), default=Currency.INR, nullable=False)
    original_amount = Column("originalAmount", Float, nullable=True)
    discount_amount = Column("discountAmount", Float, default=0.0, nullable=False)

    payment_method = Column("paymentMethod", SQLEnum(PaymentMethod), nullable=True)
    payment_gateway = Column("paymentGateway", SQLEnum(PaymentGateway), nullable=False)
    source = Column(SQLEnum(PaymentSource), default=PaymentSource.PLATFORM, nullable=False)

    # Commission split
    commission_rate = Column("commissionRate", Float, nullable=False)
    platform_fee = Column("platformFee", Float, nullable=False)
    teacher_earnings = Column("teacherEarnings", Float, nullable=False)

    # Lifecycle
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.CREATED, nullable=False, index=True)
    failure_reason = Column("failureReason", Text, nullable=True)
    retry_count = Column("retryCount", Integer, default=0, nullable=False)
    expires_at = Column("expiresAt", DateTime, nullable=True)
    paid_at = Column("paidAt", DateTime, nullable=True)
    failed_at = Column("failedAt", DateTime, nullable=True)
    cancelled_at = Column("cancelledAt", DateTime, nullable=True)

    # Refunds
    refund_amount = Column("refundAmount", Float, default=0.0, nullable=False)
    refund_reason = Column("refundReason", Text, nullable=True)
    refund_id = Column("refundId", String(100), nullable=True)
    refunded_at = Column("refundedAt", DateTime, nullable=True)

    # Gateway payloads
    gateway_response = Column("gatewayResponse", JSON, nullable=True)
    payment_link = Column("paymentLink", Text, nullable=True)
    receipt = Column(String(100), default=_default_receipt, nullable=False)
    notes = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    student = relationship("User", foreign_keys=[student_id])
    teacher = relationship("User", foreign_keys=[teacher_id])
    batch = relationship("Batch")
    course = relationship("Course")

    def __repr__(self):
        return f"<Payment(id={self.id}, order_id={self.order_id}, status={self.status})>"

    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at < datetime.utcnow()

    def is_settled(self) -> bool:
        """Paid at some point, whether or not it has been refunded since"""
        return self.paid_at is not None or self.status in SETTLED_STATUSES

    def refundable_amount(self) -> float:
        return round(self.amount - (self.refund_amount or 0.0), 2)

    def to_dict(self):
        return {
            "id": self.id,
            "orderId": self.order_id,
            "gatewayPaymentId": self.gateway_payment_id,
            "gatewayOrderId": self.gateway_order_id,
            "studentId": self.student_id,
            "student": self.student.to_summary() if self.student else None,
            "teacherId": self.teacher_id,
            "batchId": self.batch_id,
            "batch": {"id": self.batch.id, "name": self.batch.name} if self.batch else None,
            "courseId": self.course_id,
            "amount": self.amount,
            "currency": self.currency.value,
            "originalAmount": self.original_amount,
            "discountAmount": self.discount_amount,
            "paymentMethod": self.payment_method.value if self.payment_method else None,
            "paymentGateway": self.payment_gateway.value,
            "source": self.source.value,
            "commissionRate": self.commission_rate,
            "platformFee": self.platform_fee,
            "teacherEarnings": self.teacher_earnings,
            "status": self.status.value,
            "failureReason": self.failure_reason,
            "retryCount": self.retry_count,
            "refundAmount": self.refund_amount,
            "refundReason": self.refund_reason,
            "receipt": self.receipt,
            "paymentLink": self.payment_link,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "paidAt": self.paid_at.isoformat() if self.paid_at else None,
            "failedAt": self.failed_at.isoformat() if self.failed_at else None,
            "refundedAt": self.refunded_at.isoformat() if self.refunded_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
