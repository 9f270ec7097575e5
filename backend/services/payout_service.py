"""
Teacher balances, payout stats and per-month aggregation
"""
from datetime import datetime
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.user import User
from models.payment import Payment, PaymentStatus
from models.payout import Payout, PayoutStatus, COMMITTED_PAYOUT_STATUSES, PENDING_PAYOUT_STATUSES

# Payments whose (remaining) teacher share counts as earned
EARNING_PAYMENT_STATUSES = (PaymentStatus.PAID, PaymentStatus.PARTIAL_REFUND)

# Teacher share left after any partial refund
_net_teacher_earnings = Payment.teacher_earnings - Payment.teacher_earnings * Payment.refund_amount / Payment.amount


def total_paid_earnings(db: Session, teacher_id: int) -> float:
    total = db.query(func.coalesce(func.sum(_net_teacher_earnings), 0.0)).filter(
        Payment.teacher_id == teacher_id,
        Payment.status.in_(EARNING_PAYMENT_STATUSES),
    ).scalar()
    return round(float(total or 0.0), 2)


def payout_total(db: Session, teacher_id: int, statuses) -> float:
    total = db.query(func.coalesce(func.sum(Payout.amount), 0.0)).filter(
        Payout.teacher_id == teacher_id,
        Payout.status.in_(list(statuses)),
    ).scalar()
    return round(float(total or 0.0), 2)


def get_balance(db: Session, teacher_id: int) -> Dict[str, float]:
    """
    Available balance = earnings on paid payments minus every payout that is
    requested, approved, processing or completed.
    """
    earnings = total_paid_earnings(db, teacher_id)
    committed = payout_total(db, teacher_id, COMMITTED_PAYOUT_STATUSES)
    return {
        "totalEarnings": earnings,
        "pendingPayouts": payout_total(db, teacher_id, PENDING_PAYOUT_STATUSES),
        "paidOut": payout_total(db, teacher_id, [PayoutStatus.COMPLETED]),
        "availableBalance": round(max(0.0, earnings - committed), 2),
    }


def month_starts(count: int, now: datetime = None) -> List[datetime]:
    """First day of each of the last `count` months, oldest first, current month last"""
    now = now or datetime.utcnow()
    year, month = now.year, now.month
    starts = []
    for _ in range(count):
        starts.append(datetime(year, month, 1))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(starts))


def _next_month(start: datetime) -> datetime:
    if start.month == 12:
        return datetime(start.year + 1, 1, 1)
    return datetime(start.year, start.month + 1, 1)


def monthly_earnings(db: Session, teacher_id: int, months: int = 6) -> List[Dict[str, object]]:
    """Teacher earnings per calendar month for the last `months` months"""
    results = []
    for start in month_starts(months):
        end = _next_month(start)
        total = db.query(func.coalesce(func.sum(Payment.teacher_earnings), 0.0)).filter(
            Payment.teacher_id == teacher_id,
            Payment.status == PaymentStatus.PAID,
            Payment.paid_at >= start,
            Payment.paid_at < end,
        ).scalar()
        results.append({"month": start.strftime("%Y-%m"), "earnings": round(float(total or 0.0), 2)})
    return results


def monthly_totals(db: Session, column, date_column, months: int = 12, filters=()) -> List[Dict[str, object]]:
    """Generic per-month sum of `column` over rows matching `filters`"""
    results = []
    for start in month_starts(months):
        end = _next_month(start)
        total = db.query(func.coalesce(func.sum(column), 0.0)).filter(
            date_column >= start, date_column < end, *filters
        ).scalar()
        results.append({"month": start.strftime("%Y-%m"), "total": round(float(total or 0.0), 2)})
    return results


def sync_available_balance(db: Session, teacher: User) -> float:
    """Mirror the computed balance onto users.availableForPayout"""
    db.flush()
    teacher.available_for_payout = get_balance(db, teacher.id)["availableBalance"]
    return teacher.available_for_payout


def payout_stats(db: Session) -> Dict[str, float]:
    def count(status):
        return db.query(func.count(Payout.id)).filter(Payout.status == status).scalar() or 0

    def amount(status):
        total = db.query(func.coalesce(func.sum(Payout.amount), 0.0)).filter(Payout.status == status).scalar()
        return round(float(total or 0.0), 2)

    completed = count(PayoutStatus.COMPLETED)
    total_processed = amount(PayoutStatus.COMPLETED)
    return {
        "total": db.query(func.count(Payout.id)).scalar() or 0,
        "pending": count(PayoutStatus.REQUESTED),
        "approved": count(PayoutStatus.APPROVED),
        "processing": count(PayoutStatus.PROCESSING),
        "completed": completed,
        "rejected": count(PayoutStatus.REJECTED),
        "totalProcessed": total_processed,
        "totalPending": amount(PayoutStatus.REQUESTED),
        "avgPayout": round(total_processed / completed, 2) if completed else 0,
    }


def monthly_counts(db: Session, date_column, months: int = 12) -> List[Dict[str, object]]:
    """Rows per month by `date_column`"""
    results = []
    for start in month_starts(months):
        count = db.query(func.count(date_column)).filter(date_column >= start, date_column < _next_month(start)).scalar()
        results.append({"month": start.strftime("%Y-%m"), "count": count or 0})
    return results
