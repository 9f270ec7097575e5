"""
Payment lifecycle - what happens when a payment is confirmed, fails or is refunded
"""
import logging
import time
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from core.config import settings
from models.user import User
from models.course import Course
from models.payment import Payment, PaymentStatus
from models.notification import NotificationType, NotificationCategory, NotificationPriority
from services import notification_service
from services.enrollment_service import enroll_student

logger = logging.getLogger(__name__)


def generate_order_id(user_id: int) -> str:
    return f"order_{int(time.time() * 1000)}_{user_id}"


def order_expiry() -> datetime:
    return datetime.utcnow() + timedelta(minutes=settings.PAYMENT_ORDER_EXPIRY_MINUTES)


def mark_as_paid(db: Session, payment: Payment, gateway_payment_id: Optional[str] = None,
                 signature: Optional[str] = None, gateway_response: Optional[dict] = None) -> Payment:
    """
    Confirm a payment and apply its side effects (the caller commits):
    teacher earnings, course enrollment counter, batch seat, notifications.

    Calling it for a payment that was ever settled (paid, or since refunded)
    is a no-op, so replayed verifications and webhooks never credit twice.
    """
    if payment.is_settled():
        return payment

    now = datetime.utcnow()
    payment.status = PaymentStatus.PAID
    payment.paid_at = now
    payment.failure_reason = None
    if gateway_payment_id:
        payment.gateway_payment_id = gateway_payment_id
    if signature:
        payment.gateway_signature = signature
    if gateway_response is not None:
        payment.gateway_response = {**(payment.gateway_response or {}), "verification": gateway_response}

    teacher = db.query(User).filter(User.id == payment.teacher_id).first()
    if teacher:
        teacher.total_earnings = round((teacher.total_earnings or 0.0) + payment.teacher_earnings, 2)
        teacher.available_for_payout = round((teacher.available_for_payout or 0.0) + payment.teacher_earnings, 2)

    if payment.course_id:
        course = db.query(Course).filter(Course.id == payment.course_id).first()
        if course:
            course.students_enrolled = (course.students_enrolled or 0) + 1

    enroll_student(db, payment.batch, payment.student_id)

    notification_service.create_notification(
        db,
        recipient_id=payment.student_id,
        title="Payment Successful",
        message=f"Your payment of ₹{payment.amount:.2f} for {payment.batch.name} was successful. You are now enrolled.",
        type=NotificationType.PAYMENT_RECEIVED,
        category=NotificationCategory.FINANCIAL,
        priority=NotificationPriority.HIGH,
        related_batch_id=payment.batch_id,
        related_payment_id=payment.id,
        channels={"email": True, "push": True, "sms": False, "inApp": True},
    )
    notification_service.create_notification(
        db,
        recipient_id=payment.teacher_id,
        title="New Student Enrollment",
        message=f"A student enrolled in {payment.batch.name}. You earned ₹{payment.teacher_earnings:.2f}.",
        type=NotificationType.PAYMENT_RECEIVED,
        category=NotificationCategory.FINANCIAL,
        related_batch_id=payment.batch_id,
        related_payment_id=payment.id,
    )

    logger.info(f"Payment {payment.order_id} marked as paid ({payment.amount} {payment.currency.value})")
    return payment


def mark_as_failed(db: Session, payment: Payment, reason: str) -> Payment:
    """Record a failure and tell the student (the caller commits)"""
    if payment.status == PaymentStatus.FAILED or payment.is_settled():
        return payment

    payment.status = PaymentStatus.FAILED
    payment.failed_at = datetime.utcnow()
    payment.failure_reason = reason

    notification_service.create_notification(
        db,
        recipient_id=payment.student_id,
        title="Payment Failed",
        message=f"Your payment of ₹{payment.amount:.2f} could not be completed: {reason}",
        type=NotificationType.PAYMENT_REMINDER,
        category=NotificationCategory.FINANCIAL,
        priority=NotificationPriority.HIGH,
        related_batch_id=payment.batch_id,
        related_payment_id=payment.id,
    )

    logger.warning(f"Payment {payment.order_id} failed: {reason}")
    return payment


def apply_refund(db: Session, payment: Payment, amount: float, reason: Optional[str],
                 refund_id: Optional[str] = None) -> Payment:
    """
    Record a (partial) refund and claw back the matching share of teacher earnings.
    The amount must already be validated against payment.refundable_amount().
    """
    refunded_total = round((payment.refund_amount or 0.0) + amount, 2)
    payment.refund_amount = refunded_total
    payment.refund_reason = reason
    payment.refund_id = refund_id
    payment.refunded_at = datetime.utcnow()
    payment.status = PaymentStatus.REFUNDED if refunded_total >= payment.amount else PaymentStatus.PARTIAL_REFUND

    teacher_share = round(payment.teacher_earnings * (amount / payment.amount), 2)
    teacher = db.query(User).filter(User.id == payment.teacher_id).first()
    if teacher:
        teacher.available_for_payout = round(max(0.0, (teacher.available_for_payout or 0.0) - teacher_share), 2)

    notification_service.create_notification(
        db,
        recipient_id=payment.student_id,
        title="Refund Processed",
        message=f"A refund of ₹{amount:.2f} has been processed for your payment {payment.order_id}.",
        type=NotificationType.PAYMENT_RECEIVED,
        category=NotificationCategory.FINANCIAL,
        related_payment_id=payment.id,
        channels={"email": True, "push": True, "sms": False, "inApp": True},
    )

    logger.info(f"Refunded {amount} on payment {payment.order_id} (status {payment.status.value})")
    return payment
