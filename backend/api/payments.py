"""
Payment API endpoints
Order creation on Razorpay/Cashfree, verification, webhooks, refunds and reporting
"""
import json
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from sqlalchemy import desc, func
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from core.config import settings
from core.database import get_db
from core.security import get_current_user, get_current_admin, require_roles
from models.user import User, UserRole
from models.batch import Batch
from models.payment import Payment, PaymentStatus, PaymentGateway, PaymentSource, Currency
from models.notification import NotificationType, NotificationCategory, NotificationPriority
from services import notification_service
from services.commission import commission_rate_for, split_amount
from services.enrollment_service import is_enrolled
from services.payment_gateways import gateway_router, PaymentGatewayError
from services.payment_service import (
    generate_order_id,
    order_expiry,
    mark_as_paid,
    mark_as_failed,
    apply_refund,
)
from services.payout_service import get_balance, total_paid_earnings, monthly_totals, month_starts
from api.common import paginate, not_found

logger = logging.getLogger(__name__)

router = APIRouter()

# Manual status changes only move forward; settled payments are changed through refunds
STATUS_TRANSITIONS = {
    PaymentStatus.CREATED: (PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.CANCELLED),
    PaymentStatus.FAILED: (PaymentStatus.PAID, PaymentStatus.CANCELLED),
}


# ============================================
# Request/Response Models (Pydantic schemas)
# ============================================

class CreateOrderRequest(BaseModel):
    """Request to start paying for a batch"""
    batch_id: int = Field(..., alias="batchId")
    gateway: Optional[PaymentGateway] = None
    source: PaymentSource = PaymentSource.PLATFORM
    currency: Currency = Currency.INR

    class Config:
        populate_by_name = True


class VerifyPaymentRequest(BaseModel):
    """
    Checkout callback payload.
    Razorpay sends the razorpay_* triple; Cashfree only needs the order id.
    """
    order_id: str = Field(..., alias="orderId")
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    cf_payment_id: Optional[str] = None

    class Config:
        populate_by_name = True


class RefundRequest(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    reason: Optional[str] = Field(None, max_length=500)


class UpdatePaymentStatusRequest(BaseModel):
    status: PaymentStatus
    reason: Optional[str] = Field(None, max_length=500)


# ============================================
# Utility Functions
# ============================================

def _get_payment_or_404(db: Session, payment_id: int) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise not_found("Payment")
    return payment


def _find_payment_for_webhook(db: Session, parsed: dict) -> Optional[Payment]:
    if parsed.get("orderId"):
        payment = db.query(Payment).filter(Payment.order_id == parsed["orderId"]).first()
        if payment:
            return payment
    if parsed.get("gatewayOrderId"):
        return db.query(Payment).filter(Payment.gateway_order_id == str(parsed["gatewayOrderId"])).first()
    return None


def _open_gateway_order(order_id: str, amount: float, currency: str, student: User, batch: Batch,
                        preferred: Optional[str] = None):
    """Create the order on the first gateway that accepts it; 503 when none does"""
    try:
        return gateway_router.create_order(
            order_id,
            amount,
            currency,
            customer={
                "id": student.id,
                "name": student.name,
                "email": student.email,
                "phone": student.phone,
            },
            notes={"batchId": batch.id, "studentId": student.id, "description": f"Enrollment in {batch.name}"},
            preferred=preferred,
        )
    except PaymentGatewayError as e:
        logger.error(f"Order creation failed for {order_id}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Payment gateway unavailable: {e.message}"
        )


def _sum(query_column, *filters, db: Session) -> float:
    total = db.query(func.coalesce(func.sum(query_column), 0.0)).filter(*filters).scalar()
    return round(float(total or 0.0), 2)


# ============================================
# Checkout Endpoints
# ============================================

@router.get("/gateways")
async def list_gateways(current_user: User = Depends(get_current_user)):
    """Configured gateways in the order they are tried"""
    return {"success": True, "data": {"gateways": gateway_router.available_gateways()}}


@router.post("/create-order", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    current_user: User = Depends(require_roles(UserRole.STUDENT)),
    db: Session = Depends(get_db)
):
    """
    Create a payment order for a batch

    The amount is the batch enrollment fee, falling back to the course price.
    Gateways are tried in priority order with `gateway` first when given.
    """
    batch = db.query(Batch).filter(Batch.id == request.batch_id).first()
    if not batch:
        raise not_found("Batch")
    if not batch.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Batch is not active")
    if is_enrolled(db, batch.id, current_user.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You are already enrolled in this batch")
    if batch.is_full():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Batch is full")

    amount = batch.enrollment_fee or (batch.course.price if batch.course else 0.0)
    if not amount or amount < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payment amount")

    teacher = batch.teacher
    split = split_amount(amount, commission_rate_for(request.source, teacher.commission_rate if teacher else None))
    order_id = generate_order_id(current_user.id)

    gateway_name, order = _open_gateway_order(
        order_id, amount, request.currency.value, current_user, batch,
        preferred=request.gateway.value if request.gateway else None,
    )

    payment = Payment(
        order_id=order_id,
        gateway_order_id=str(order.get("gatewayOrderId")) if order.get("gatewayOrderId") else None,
        student_id=current_user.id,
        teacher_id=batch.teacher_id,
        batch_id=batch.id,
        course_id=batch.course_id,
        amount=amount,
        original_amount=amount,
        currency=request.currency,
        payment_gateway=PaymentGateway(gateway_name),
        source=request.source,
        commission_rate=split["commissionRate"],
        platform_fee=split["platformFee"],
        teacher_earnings=split["teacherEarnings"],
        status=PaymentStatus.CREATED,
        expires_at=order_expiry(),
        gateway_response={"order": order.get("raw")},
        notes={"batchName": batch.name},
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    logger.info(f"Payment order {order_id} created on {gateway_name} for batch {batch.id}")

    checkout = {k: v for k, v in order.items() if k != "raw"}
    return {
        "success": True,
        "message": "Payment order created successfully",
        "data": {"payment": payment.to_dict(), "checkout": checkout},
    }


@router.post("/verify")
async def verify_payment(
    request: VerifyPaymentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Confirm a checkout with the gateway and enroll the student on success"""
    payment = db.query(Payment).filter(Payment.order_id == request.order_id).first()
    if not payment:
        raise not_found("Payment")

    if not current_user.is_admin() and payment.student_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    if payment.is_settled():
        return {"success": True, "message": "Payment already verified", "data": {"payment": payment.to_dict()}}

    if payment.status == PaymentStatus.CANCELLED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment has been cancelled")

    if payment.status == PaymentStatus.CREATED and payment.is_expired():
        mark_as_failed(db, payment, "Payment order expired")
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payment order has expired. Please create a new order."
        )

    if (payment.payment_gateway == PaymentGateway.RAZORPAY and request.razorpay_order_id
            and request.razorpay_order_id != payment.gateway_order_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order id does not match this payment")

    try:
        client = gateway_router.get(payment.payment_gateway.value)
        lookup_id = payment.gateway_order_id if payment.payment_gateway == PaymentGateway.RAZORPAY else payment.order_id
        result = client.verify_payment(lookup_id, request.dict(exclude_none=True))
    except PaymentGatewayError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Payment verification failed: {e.message}"
        )

    if not result["verified"]:
        mark_as_failed(db, payment, result["reason"] or "Payment verification failed")
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Payment verification failed: {result['reason']}"
        )

    mark_as_paid(db, payment, result["paymentId"], result["signature"], {k: v for k, v in result.items() if k != "signature"})
    db.commit()
    db.refresh(payment)

    return {"success": True, "message": "Payment verified successfully", "data": {"payment": payment.to_dict()}}


@router.post("/webhook/{gateway}")
async def payment_webhook(
    gateway: PaymentGateway,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Gateway server-to-server notifications
    Replays are harmless: a paid payment stays paid and is not re-applied.
    """
    body = await request.body()
    client = gateway_router.get(gateway.value)

    if not client.verify_webhook_signature(body, dict(request.headers)):
        logger.warning(f"Rejected {gateway.value} webhook with invalid signature")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature")

    try:
        event = json.loads(body or b"{}")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload")

    parsed = client.parse_webhook(event)
    payment = _find_payment_for_webhook(db, parsed)
    if not payment:
        logger.warning(f"{gateway.value} webhook for unknown order {parsed.get('orderId') or parsed.get('gatewayOrderId')}")
        raise not_found("Payment")

    if parsed["paid"]:
        mark_as_paid(db, payment, parsed.get("paymentId") and str(parsed["paymentId"]), None, {"webhook": event})
    elif parsed["failed"] and payment.status == PaymentStatus.CREATED:
        mark_as_failed(db, payment, parsed.get("reason") or "Payment failed at gateway")
    db.commit()

    return {"success": True, "message": "Webhook processed"}


# ============================================
# Reporting Endpoints
# ============================================

@router.get("/my-payments")
async def my_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(Payment).filter(Payment.student_id == current_user.id)
    if payment_status:
        query = query.filter(Payment.status == payment_status)

    payments, pagination = paginate(query.order_by(desc(Payment.created_at), desc(Payment.id)), page, limit)
    total_amount = _sum(
        Payment.amount,
        Payment.student_id == current_user.id,
        Payment.status == PaymentStatus.PAID,
        db=db,
    )

    return {
        "success": True,
        "data": {
            "payments": [p.to_dict() for p in payments],
            "pagination": pagination,
            "totalAmount": total_amount,
        },
    }


@router.get("/earnings")
async def teacher_earnings(
    current_user: User = Depends(require_roles(UserRole.TEACHER)),
    db: Session = Depends(get_db)
):
    """Lifetime and current-month earnings, payout balance and per-batch breakdown"""
    month_start = month_starts(1)[0]
    this_month = _sum(
        Payment.teacher_earnings,
        Payment.teacher_id == current_user.id,
        Payment.status == PaymentStatus.PAID,
        Payment.paid_at >= month_start,
        db=db,
    )
    balance = get_balance(db, current_user.id)

    rows = db.query(
        Payment.batch_id,
        func.count(Payment.id),
        func.coalesce(func.sum(Payment.teacher_earnings), 0.0),
    ).filter(
        Payment.teacher_id == current_user.id,
        Payment.status == PaymentStatus.PAID,
    ).group_by(Payment.batch_id).all()

    batch_names = {
        b.id: b.name for b in db.query(Batch).filter(Batch.id.in_([r[0] for r in rows])).all()
    } if rows else {}

    return {
        "success": True,
        "data": {
            "totalEarnings": total_paid_earnings(db, current_user.id),
            "thisMonth": this_month,
            "pendingPayouts": balance["pendingPayouts"],
            "paidOut": balance["paidOut"],
            "availableForPayout": balance["availableBalance"],
            "batchEarnings": [
                {
                    "batchId": batch_id,
                    "batchName": batch_names.get(batch_id),
                    "payments": count,
                    "earnings": round(float(total), 2),
                }
                for batch_id, count, total in rows
            ],
        },
    }


@router.get("/stats")
async def payment_stats(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    paid = Payment.status == PaymentStatus.PAID

    total_revenue = _sum(Payment.amount, paid, db=db)
    count = db.query(func.count(Payment.id)).filter(paid).scalar() or 0

    by_source = [
        {"source": source.value, "count": n, "total": round(float(total), 2)}
        for source, n, total in db.query(
            Payment.source, func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0.0)
        ).filter(paid).group_by(Payment.source).all()
    ]

    return {
        "success": True,
        "data": {
            "totalRevenue": total_revenue,
            "platformEarnings": _sum(Payment.platform_fee, paid, db=db),
            "teacherEarnings": _sum(Payment.teacher_earnings, paid, db=db),
            "totalPayments": count,
            "averagePayment": round(total_revenue / count, 2) if count else 0,
            "bySource": by_source,
            "monthly": monthly_totals(db, Payment.amount, Payment.paid_at, months=12, filters=(paid,)),
        },
    }


@router.get("/{payment_id}")
async def get_payment(
    payment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    payment = _get_payment_or_404(db, payment_id)
    if not current_user.is_admin() and current_user.id not in (payment.student_id, payment.teacher_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return {"success": True, "data": {"payment": payment.to_dict()}}


# ============================================
# Admin Endpoints
# ============================================

@router.post("/{payment_id}/refund")
async def refund_payment(
    payment_id: int,
    request: RefundRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Refund all or part of a payment
    The gateway is asked to refund when it is configured; otherwise the refund is recorded as manual.
    """
    payment = _get_payment_or_404(db, payment_id)

    if payment.status not in (PaymentStatus.PAID, PaymentStatus.PARTIAL_REFUND):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only paid payments can be refunded")

    refundable = payment.refundable_amount()
    amount = round(request.amount if request.amount is not None else refundable, 2)
    if amount > refundable:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Refund amount cannot exceed ₹{refundable:.2f}"
        )

    refund_id = None
    client = gateway_router.clients.get(payment.payment_gateway.value)
    if client is not None and client.is_configured() and payment.gateway_payment_id:
        try:
            refund_id = client.refund(payment.gateway_payment_id, amount, payment.order_id, request.reason)["refundId"]
        except PaymentGatewayError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Refund failed: {e.message}")
    else:
        logger.warning(f"Recording manual refund for {payment.order_id}; gateway refund not available")

    apply_refund(db, payment, amount, request.reason, refund_id)
    db.commit()
    db.refresh(payment)

    return {"success": True, "message": "Refund processed successfully", "data": {"payment": payment.to_dict()}}


@router.put("/{payment_id}/status")
async def update_payment_status(
    payment_id: int,
    request: UpdatePaymentStatusRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    payment = _get_payment_or_404(db, payment_id)

    if request.status in (PaymentStatus.REFUNDED, PaymentStatus.PARTIAL_REFUND):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use the refund endpoint to refund a payment"
        )

    old_status = payment.status
    if request.status not in STATUS_TRANSITIONS.get(old_status, ()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot change payment status from {old_status.value} to {request.status.value}"
        )

    if request.status == PaymentStatus.PAID:
        mark_as_paid(db, payment, gateway_response={"manual": True, "by": current_admin.id})
    elif request.status == PaymentStatus.FAILED:
        mark_as_failed(db, payment, request.reason or "Marked as failed by admin")
    else:
        payment.status = request.status
        if request.status == PaymentStatus.CANCELLED:
            payment.cancelled_at = datetime.utcnow()

    db.commit()
    db.refresh(payment)

    logger.info(f"Payment {payment.id} status updated from {old_status.value} to {request.status.value} by {current_admin.email}")

    return {"success": True, "message": "Payment status updated successfully", "data": {"payment": payment.to_dict()}}


@router.post("/{payment_id}/retry")
async def retry_payment(
    payment_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Reopen a failed payment under a fresh order id
    The new order is created on a gateway (the original one first) so the student can pay it.
    """
    payment = _get_payment_or_404(db, payment_id)

    if payment.status != PaymentStatus.FAILED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only failed payments can be retried")
    if payment.retry_count >= settings.PAYMENT_MAX_RETRIES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Maximum retry attempts exceeded")

    order_id = generate_order_id(payment.student_id)
    gateway_name, order = _open_gateway_order(
        order_id, payment.amount, payment.currency.value, payment.student, payment.batch,
        preferred=payment.payment_gateway.value,
    )

    payment.retry_count += 1
    payment.status = PaymentStatus.CREATED
    payment.failure_reason = None
    payment.failed_at = None
    payment.gateway_payment_id = None
    payment.gateway_signature = None
    payment.order_id = order_id
    payment.gateway_order_id = str(order.get("gatewayOrderId")) if order.get("gatewayOrderId") else None
    payment.payment_gateway = PaymentGateway(gateway_name)
    payment.gateway_response = {**(payment.gateway_response or {}), "order": order.get("raw")}
    payment.expires_at = order_expiry()

    notification_service.create_notification(
        db,
        recipient_id=payment.student_id,
        title="Payment Retry Initiated",
        message=f"Your payment of ₹{payment.amount:.2f} is being retried. Please complete the payment.",
        type=NotificationType.PAYMENT_REMINDER,
        category=NotificationCategory.FINANCIAL,
        priority=NotificationPriority.HIGH,
        related_payment_id=payment.id,
        channels={"email": True, "push": True, "sms": False, "inApp": True},
    )

    db.commit()
    db.refresh(payment)

    logger.info(f"Payment {payment.id} retry #{payment.retry_count} by {current_admin.email}")

    return {
        "success": True,
        "message": "Payment retry initiated successfully. User will be notified.",
        "data": {"payment": payment.to_dict(), "checkout": {k: v for k, v in order.items() if k != "raw"}},
    }
