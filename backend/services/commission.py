"""
Commission split between the platform and the teacher
"""
from typing import Dict, Optional

from core.config import settings
from models.payment import PaymentSource


def commission_rate_for(source: PaymentSource, teacher_rate: Optional[float] = None) -> float:
    """
    Platform share of a payment.

    An admin-assigned teacher rate wins; otherwise platform-sourced students
    cost the teacher 40% and teacher-sourced students 60%.
    """
    if teacher_rate is not None:
        return teacher_rate
    if source == PaymentSource.TEACHER:
        return settings.TEACHER_SOURCED_COMMISSION_RATE
    return settings.PLATFORM_COMMISSION_RATE


def split_amount(amount: float, rate: float) -> Dict[str, float]:
    """
    Split `amount` into platform fee and teacher earnings.

    The fee is rounded to paise and the teacher gets the remainder, so the two
    parts always add back up to the amount.
    """
    platform_fee = round(amount * rate, 2)
    return {
        "commissionRate": rate,
        "platformFee": platform_fee,
        "teacherEarnings": round(amount - platform_fee, 2),
    }
