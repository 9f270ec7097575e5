"""
Payout models - teacher withdrawals and the bank accounts they are paid into
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Float, ForeignKey, JSON, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum

from .base import Base


class PayoutStatus(str, enum.Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Payouts that still count against a teacher's balance
COMMITTED_PAYOUT_STATUSES = (
    PayoutStatus.REQUESTED,
    PayoutStatus.APPROVED,
    PayoutStatus.PROCESSING,
    PayoutStatus.COMPLETED,
)

PENDING_PAYOUT_STATUSES = (
    PayoutStatus.REQUESTED,
    PayoutStatus.APPROVED,
    PayoutStatus.PROCESSING,
)


class PayoutMethod(str, enum.Enum):
    BANK_TRANSFER = "bank_transfer"
    UPI = "upi"
    PAYTM = "paytm"
    PHONEPE = "phonepe"


class BankAccountType(str, enum.Enum):
    SAVINGS = "savings"
    CURRENT = "current"


class BankAccountStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class Payout(Base):
    """
    A teacher's request to withdraw earnings.
    requested -> approved -> processing -> completed, or rejected/cancelled on the way.
    """
    __tablename__ = "payouts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id = Column("teacherId", Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    status = Column(SQLEnum(PayoutStatus), default=PayoutStatus.REQUESTED, nullable=False, index=True)

    payment_method = Column("paymentMethod", SQLEnum(PayoutMethod), default=PayoutMethod.BANK_TRANSFER, nullable=False)
    payment_details = Column("paymentDetails", JSON, nullable=True)
    bank_account_id = Column("bankAccountId", Integer, ForeignKey("teacher_bank_accounts.id"), nullable=True)

    transaction_id = Column("transactionId", String(255), nullable=True)
    note = Column(String(500), nullable=True)
    rejection_reason = Column("rejectionReason", Text, nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)

    requested_at = Column("requestedAt", DateTime, default=func.now(), nullable=False)
    approved_at = Column("approvedAt", DateTime, nullable=True)
    processed_at = Column("processedAt", DateTime, nullable=True)
    completed_at = Column("completedAt", DateTime, nullable=True)
    rejected_at = Column("rejectedAt", DateTime, nullable=True)

    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    teacher = relationship("User")
    bank_account = relationship("TeacherBankAccount")

    def __repr__(self):
        return f"<Payout(id={self.id}, teacher_id={self.teacher_id}, amount={self.amount}, status={self.status})>"

    def to_dict(self):
        return {
            "id": self.id,
            "teacherId": self.teacher_id,
            "teacher": self.teacher.to_summary() if self.teacher else None,
            "amount": self.amount,
            "status": self.status.value,
            "paymentMethod": self.payment_method.value,
            "paymentDetails": self.payment_details,
            "bankAccountId": self.bank_account_id,
            "transactionId": self.transaction_id,
            "note": self.note,
            "rejectionReason": self.rejection_reason,
            "metadata": self.metadata_ or {},
            "requestedAt": self.requested_at.isoformat() if self.requested_at else None,
            "approvedAt": self.approved_at.isoformat() if self.approved_at else None,
            "processedAt": self.processed_at.isoformat() if self.processed_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "rejectedAt": self.rejected_at.isoformat() if self.rejected_at else None,
        }


class TeacherBankAccount(Base):
    """
    Bank account a teacher receives payouts in
    """
    __tablename__ = "teacher_bank_accounts"
    __table_args__ = (
        UniqueConstraint("teacherId", "accountNumber", name="uq_teacher_account_number"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    teacher_id = Column("teacherId", Integer, ForeignKey("users.id"), nullable=False, index=True)

    bank_name = Column("bankName", String(100), nullable=False)
    account_holder_name = Column("accountHolderName", String(100), nullable=False)
    account_number = Column("accountNumber", String(20), nullable=False)
    ifsc_code = Column("ifscCode", String(11), nullable=False)
    branch_name = Column("branchName", String(100), nullable=True)
    account_type = Column("accountType", SQLEnum(BankAccountType), default=BankAccountType.SAVINGS, nullable=False)

    is_default = Column("isDefault", Boolean, default=False, nullable=False)
    status = Column(SQLEnum(BankAccountStatus), default=BankAccountStatus.PENDING, nullable=False)
    verification_details = Column("verificationDetails", JSON, nullable=True)

    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    teacher = relationship("User")

    def __repr__(self):
        return f"<TeacherBankAccount(id={self.id}, teacher_id={self.teacher_id}, bank={self.bank_name})>"

    def masked_account_number(self) -> str:
        return "X" * max(0, len(self.account_number) - 4) + self.account_number[-4:]

    def to_dict(self):
        return {
            "id": self.id,
            "teacherId": self.teacher_id,
            "bankName": self.bank_name,
            "accountHolderName": self.account_holder_name,
            "accountNumber": self.masked_account_number(),
            "ifscCode": self.ifsc_code,
            "branchName": self.branch_name,
            "accountType": self.account_type.value,
            "isDefault": self.is_default,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
