"""
Payout API endpoints
Teacher withdrawal requests, admin review, Cashfree transfers and bank accounts
"""
import logging
import re
import time
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc
from pydantic import BaseModel, Field, validator
from typing import Optional, Dict, Any
from datetime import datetime

from core.config import settings
from core.database import get_db
from core.security import get_current_user, get_current_admin, require_roles
from models.user import User, UserRole
from models.payout import (
    Payout,
    PayoutStatus,
    PayoutMethod,
    TeacherBankAccount,
    BankAccountType,
    PENDING_PAYOUT_STATUSES,
)
from models.notification import NotificationType, NotificationCategory, NotificationPriority
from services import notification_service
from services.cashfree_payouts import payout_service, PayoutServiceError
from services.payout_service import get_balance, monthly_earnings, payout_stats, sync_available_balance
from api.common import paginate, not_found

logger = logging.getLogger(__name__)

router = APIRouter()

teacher_only = require_roles(UserRole.TEACHER)

IFSC_PATTERN = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")
ACCOUNT_NUMBER_PATTERN = re.compile(r"^\d{9,18}$")


# ============================================
# Request/Response Models (Pydantic schemas)
# ============================================

class PayoutRequest(BaseModel):
    """Teacher withdrawal request"""
    amount: float = Field(..., gt=0)
    payment_method: PayoutMethod = Field(PayoutMethod.BANK_TRANSFER, alias="paymentMethod")
    payment_details: Optional[Dict[str, Any]] = Field(None, alias="paymentDetails")
    bank_account_id: Optional[int] = Field(None, alias="bankAccountId")
    note: Optional[str] = Field(None, max_length=500)

    class Config:
        populate_by_name = True


class CompletePayoutRequest(BaseModel):
    transaction_id: str = Field(..., min_length=5, max_length=255, alias="transactionId")
    note: Optional[str] = Field(None, max_length=500)

    class Config:
        populate_by_name = True


class RejectPayoutRequest(BaseModel):
    reason: str = Field(..., min_length=10, max_length=1000)


class BankAccountRequest(BaseModel):
    bank_name: str = Field(..., min_length=2, max_length=100, alias="bankName")
    account_holder_name: str = Field(..., min_length=2, max_length=100, alias="accountHolderName")
    account_number: str = Field(..., alias="accountNumber")
    ifsc_code: str = Field(..., alias="ifscCode")
    branch_name: Optional[str] = Field(None, max_length=100, alias="branchName")
    account_type: BankAccountType = Field(BankAccountType.SAVINGS, alias="accountType")
    is_default: bool = Field(False, alias="isDefault")

    @validator("account_number")
    def validate_account_number(cls, v):
        v = v.strip()
        if not ACCOUNT_NUMBER_PATTERN.match(v):
            raise ValueError("Account number must be 9-18 digits")
        return v

    @validator("ifsc_code")
    def validate_ifsc(cls, v):
        v = v.strip().upper()
        if not IFSC_PATTERN.match(v):
            raise ValueError("Invalid IFSC code format")
        return v

    class Config:
        populate_by_name = True


# ============================================
# Utility Functions
# ============================================

def _get_payout_or_404(db: Session, payout_id: str) -> Payout:
    payout = db.query(Payout).filter(Payout.id == payout_id).first()
    if not payout:
        raise not_found("Payout")
    return payout


def _require_status(payout: Payout, allowed, action: str):
    if payout.status not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot {action} a payout with status {payout.status.value}"
        )


def _notify_teacher(db: Session, payout: Payout, title: str, message: str, type: NotificationType,
                    sender_id: int = None, priority: NotificationPriority = NotificationPriority.MEDIUM):
    notification_service.create_notification(
        db,
        recipient_id=payout.teacher_id,
        sender_id=sender_id,
        title=title,
        message=message,
        type=type,
        category=NotificationCategory.FINANCIAL,
        priority=priority,
        channels={"email": True, "push": True, "sms": False, "inApp": True},
        metadata={"payoutId": payout.id, "amount": payout.amount},
    )


def _complete(db: Session, payout: Payout, transaction_id: str, admin: User = None):
    payout.status = PayoutStatus.COMPLETED
    payout.transaction_id = transaction_id
    payout.completed_at = datetime.utcnow()
    sync_available_balance(db, payout.teacher)
    _notify_teacher(
        db, payout,
        title="Payout Completed",
        message=f"Your payout of ₹{payout.amount:.2f} has been transferred. Transaction ID: {transaction_id}",
        type=NotificationType.PAYOUT_COMPLETED,
        sender_id=admin.id if admin else None,
    )


def _reject(db: Session, payout: Payout, reason: str, admin: User = None):
    payout.status = PayoutStatus.REJECTED
    payout.rejection_reason = reason
    payout.rejected_at = datetime.utcnow()
    sync_available_balance(db, payout.teacher)
    _notify_teacher(
        db, payout,
        title="Payout Rejected",
        message=f"Your payout request of ₹{payout.amount:.2f} was rejected: {reason}",
        type=NotificationType.PAYOUT_REJECTED,
        sender_id=admin.id if admin else None,
        priority=NotificationPriority.HIGH,
    )


def _default_bank_account(db: Session, teacher_id: int) -> Optional[TeacherBankAccount]:
    return db.query(TeacherBankAccount).filter(
        TeacherBankAccount.teacher_id == teacher_id,
        TeacherBankAccount.is_default == True,  # noqa: E712
    ).first()


# ============================================
# Teacher Endpoints
# ============================================

@router.post("/request", status_code=status.HTTP_201_CREATED)
async def request_payout(
    request: PayoutRequest,
    current_user: User = Depends(teacher_only),
    db: Session = Depends(get_db)
):
    """
    Request a withdrawal of available earnings
    The amount is reserved against the balance until the payout is rejected or cancelled.
    """
    if request.amount < settings.MIN_PAYOUT_AMOUNT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Minimum payout amount is ₹{settings.MIN_PAYOUT_AMOUNT:.0f}"
        )

    available = get_balance(db, current_user.id)["availableBalance"]
    if request.amount > available:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Insufficient balance. Available: ₹{available:.2f}"
        )

    bank_account = None
    if request.bank_account_id:
        bank_account = db.query(TeacherBankAccount).filter(
            TeacherBankAccount.id == request.bank_account_id,
            TeacherBankAccount.teacher_id == current_user.id,
        ).first()
        if not bank_account:
            raise not_found("Bank account")
    elif request.payment_method == PayoutMethod.BANK_TRANSFER:
        bank_account = _default_bank_account(db, current_user.id)

    payout = Payout(
        teacher_id=current_user.id,
        amount=round(request.amount, 2),
        status=PayoutStatus.REQUESTED,
        payment_method=request.payment_method,
        payment_details=request.payment_details,
        bank_account_id=bank_account.id if bank_account else None,
        note=request.note,
        requested_at=datetime.utcnow(),
    )
    db.add(payout)
    sync_available_balance(db, current_user)
    db.commit()
    db.refresh(payout)

    logger.info(f"Payout {payout.id} of {payout.amount} requested by {current_user.email}")

    return {"success": True, "message": "Payout request submitted successfully", "data": {"payout": payout.to_dict()}}


@router.get("/my-payouts")
async def my_payouts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    payout_status: Optional[PayoutStatus] = Query(None, alias="status"),
    current_user: User = Depends(teacher_only),
    db: Session = Depends(get_db)
):
    query = db.query(Payout).filter(Payout.teacher_id == current_user.id)
    if payout_status:
        query = query.filter(Payout.status == payout_status)

    payouts, pagination = paginate(query.order_by(desc(Payout.requested_at)), page, limit)

    return {
        "success": True,
        "data": {
            "payouts": [p.to_dict() for p in payouts],
            "pagination": pagination,
            "balance": get_balance(db, current_user.id),
        },
    }


@router.get("/earnings/summary")
async def earnings_summary(
    current_user: User = Depends(teacher_only),
    db: Session = Depends(get_db)
):
    return {
        "success": True,
        "data": {
            **get_balance(db, current_user.id),
            "minimumPayout": settings.MIN_PAYOUT_AMOUNT,
            "monthlyEarnings": monthly_earnings(db, current_user.id, months=6),
        },
    }


# ============================================
# Bank Account Endpoints
# ============================================

@router.get("/bank-accounts")
async def list_bank_accounts(
    current_user: User = Depends(teacher_only),
    db: Session = Depends(get_db)
):
    accounts = db.query(TeacherBankAccount).filter(
        TeacherBankAccount.teacher_id == current_user.id
    ).order_by(desc(TeacherBankAccount.is_default), desc(TeacherBankAccount.created_at)).all()
    return {"success": True, "data": {"bankAccounts": [a.to_dict() for a in accounts]}}


@router.post("/bank-accounts", status_code=status.HTTP_201_CREATED)
async def add_bank_account(
    request: BankAccountRequest,
    current_user: User = Depends(teacher_only),
    db: Session = Depends(get_db)
):
    """Add a payout account; the first account a teacher adds becomes the default"""
    existing = db.query(TeacherBankAccount).filter(TeacherBankAccount.teacher_id == current_user.id).all()

    if any(a.account_number == request.account_number for a in existing):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bank account already exists")

    make_default = request.is_default or not existing
    if make_default:
        for account in existing:
            account.is_default = False

    account = TeacherBankAccount(
        teacher_id=current_user.id,
        bank_name=request.bank_name,
        account_holder_name=request.account_holder_name,
        account_number=request.account_number,
        ifsc_code=request.ifsc_code,
        branch_name=request.branch_name,
        account_type=request.account_type,
        is_default=make_default,
    )
    db.add(account)
    db.commit()
    db.refresh(account)

    return {"success": True, "message": "Bank account added successfully", "data": {"bankAccount": account.to_dict()}}


@router.put("/bank-accounts/{account_id}/default")
async def set_default_bank_account(
    account_id: int,
    current_user: User = Depends(teacher_only),
    db: Session = Depends(get_db)
):
    accounts = db.query(TeacherBankAccount).filter(TeacherBankAccount.teacher_id == current_user.id).all()
    target = next((a for a in accounts if a.id == account_id), None)
    if not target:
        raise not_found("Bank account")

    for account in accounts:
        account.is_default = account.id == account_id
    db.commit()
    db.refresh(target)

    return {"success": True, "message": "Default bank account updated", "data": {"bankAccount": target.to_dict()}}


@router.delete("/bank-accounts/{account_id}")
async def delete_bank_account(
    account_id: int,
    current_user: User = Depends(teacher_only),
    db: Session = Depends(get_db)
):
    account = db.query(TeacherBankAccount).filter(
        TeacherBankAccount.id == account_id,
        TeacherBankAccount.teacher_id == current_user.id,
    ).first()
    if not account:
        raise not_found("Bank account")

    in_use = db.query(Payout).filter(
        Payout.bank_account_id == account.id,
        Payout.status.in_(list(PENDING_PAYOUT_STATUSES)),
    ).first()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bank account is used by a pending payout"
        )

    was_default = account.is_default
    db.delete(account)
    db.flush()

    if was_default:
        replacement = db.query(TeacherBankAccount).filter(
            TeacherBankAccount.teacher_id == current_user.id
        ).order_by(desc(TeacherBankAccount.created_at)).first()
        if replacement:
            replacement.is_default = True

    db.commit()
    return {"success": True, "message": "Bank account deleted successfully"}


# ============================================
# Admin Endpoints
# ============================================

@router.get("")
async def list_payouts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    payout_status: Optional[PayoutStatus] = Query(None, alias="status"),
    teacher_id: Optional[int] = Query(None, alias="teacherId"),
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    query = db.query(Payout)
    if payout_status:
        query = query.filter(Payout.status == payout_status)
    if teacher_id:
        query = query.filter(Payout.teacher_id == teacher_id)

    payouts, pagination = paginate(query.order_by(desc(Payout.requested_at)), page, limit)

    return {
        "success": True,
        "data": {
            "payouts": [p.to_dict() for p in payouts],
            "pagination": pagination,
            "stats": payout_stats(db),
        },
    }


@router.get("/{payout_id}")
async def get_payout(
    payout_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    payout = _get_payout_or_404(db, payout_id)
    if not current_user.is_admin() and payout.teacher_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    data = payout.to_dict()
    data["bankAccount"] = payout.bank_account.to_dict() if payout.bank_account else None
    return {"success": True, "data": {"payout": data}}


@router.put("/{payout_id}/approve")
async def approve_payout(
    payout_id: str,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    payout = _get_payout_or_404(db, payout_id)
    _require_status(payout, (PayoutStatus.REQUESTED,), "approve")

    payout.status = PayoutStatus.APPROVED
    payout.approved_at = datetime.utcnow()
    _notify_teacher(
        db, payout,
        title="Payout Approved",
        message=f"Your payout request of ₹{payout.amount:.2f} has been approved and will be processed shortly.",
        type=NotificationType.PAYOUT_APPROVED,
        sender_id=current_admin.id,
    )
    db.commit()
    db.refresh(payout)

    logger.info(f"Payout {payout.id} approved by {current_admin.email}")
    return {"success": True, "message": "Payout approved successfully", "data": {"payout": payout.to_dict()}}


@router.post("/{payout_id}/process")
async def process_payout(
    payout_id: str,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Send an approved payout to the teacher's bank account through Cashfree Payouts
    """
    payout = _get_payout_or_404(db, payout_id)
    _require_status(payout, (PayoutStatus.APPROVED,), "process")

    if not payout_service.is_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cashfree payouts are not configured"
        )

    bank_account = payout.bank_account or _default_bank_account(db, payout.teacher_id)
    if not bank_account:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Teacher has no bank account on file")

    teacher = payout.teacher
    bene_id = f"teacher_{teacher.id}_{bank_account.id}"
    transfer_id = f"payout_{payout.id.replace('-', '')[:20]}_{int(time.time())}"

    try:
        payout_service.add_beneficiary(
            bene_id,
            name=bank_account.account_holder_name,
            email=teacher.email,
            phone=teacher.phone,
            bank_account=bank_account.account_number,
            ifsc=bank_account.ifsc_code,
        )
        transfer = payout_service.request_transfer(
            bene_id, payout.amount, transfer_id, remarks=f"{settings.APP_NAME} payout"
        )
    except PayoutServiceError as e:
        logger.error(f"Payout {payout.id} transfer failed: {e.message}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    payout.status = PayoutStatus.PROCESSING
    payout.processed_at = datetime.utcnow()
    payout.bank_account_id = bank_account.id
    payout.metadata_ = {
        **(payout.metadata_ or {}),
        "beneId": bene_id,
        "transferId": transfer_id,
        "referenceId": transfer["referenceId"],
        "utr": transfer["utr"],
        "transferStatus": transfer["status"],
    }
    db.commit()
    db.refresh(payout)

    logger.info(f"Payout {payout.id} sent to Cashfree as {transfer_id}")
    return {"success": True, "message": "Payout is being processed", "data": {"payout": payout.to_dict()}}


@router.get("/{payout_id}/transfer-status")
async def transfer_status(
    payout_id: str,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Poll Cashfree for a processing payout and settle it when the transfer finishes"""
    payout = _get_payout_or_404(db, payout_id)
    transfer_id = (payout.metadata_ or {}).get("transferId")
    if not transfer_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payout has not been sent for transfer")

    try:
        result = payout_service.get_transfer_status(transfer_id)
    except PayoutServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    if payout.status == PayoutStatus.PROCESSING:
        if result["status"] == "SUCCESS":
            _complete(db, payout, result["utr"] or result["referenceId"] or transfer_id, current_admin)
        elif result["status"] in ("FAILED", "REJECTED", "REVERSED"):
            _reject(db, payout, f"Bank transfer {result['status'].lower()}: {result['reason'] or 'no reason given'}", current_admin)
        payout.metadata_ = {**(payout.metadata_ or {}), "transferStatus": result["status"]}
        db.commit()
        db.refresh(payout)

    return {
        "success": True,
        "data": {"payout": payout.to_dict(), "transferStatus": result["status"], "utr": result["utr"]},
    }


@router.put("/{payout_id}/complete")
async def complete_payout(
    payout_id: str,
    request: CompletePayoutRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    payout = _get_payout_or_404(db, payout_id)
    _require_status(payout, (PayoutStatus.APPROVED, PayoutStatus.PROCESSING), "complete")

    if request.note:
        payout.note = request.note
    _complete(db, payout, request.transaction_id, current_admin)
    db.commit()
    db.refresh(payout)

    logger.info(f"Payout {payout.id} completed by {current_admin.email}")
    return {"success": True, "message": "Payout completed successfully", "data": {"payout": payout.to_dict()}}


@router.put("/{payout_id}/reject")
async def reject_payout(
    payout_id: str,
    request: RejectPayoutRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    payout = _get_payout_or_404(db, payout_id)
    _require_status(payout, (PayoutStatus.REQUESTED, PayoutStatus.APPROVED), "reject")

    _reject(db, payout, request.reason, current_admin)
    db.commit()
    db.refresh(payout)

    logger.info(f"Payout {payout.id} rejected by {current_admin.email}")
    return {"success": True, "message": "Payout rejected", "data": {"payout": payout.to_dict()}}


@router.put("/{payout_id}/cancel")
async def cancel_payout(
    payout_id: str,
    current_user: User = Depends(teacher_only),
    db: Session = Depends(get_db)
):
    payout = _get_payout_or_404(db, payout_id)
    if payout.teacher_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    _require_status(payout, (PayoutStatus.REQUESTED,), "cancel")

    payout.status = PayoutStatus.CANCELLED
    sync_available_balance(db, current_user)
    db.commit()
    db.refresh(payout)

    return {"success": True, "message": "Payout request cancelled", "data": {"payout": payout.to_dict()}}
