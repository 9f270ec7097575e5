"""
Batch enrollment rules shared by the batch, payment and admin endpoints
"""
import logging
from typing import Tuple, Optional

from sqlalchemy.orm import Session

from models.batch import Batch, BatchEnrollment, EnrollmentStatus
from models.payment import Payment, PaymentStatus

logger = logging.getLogger(__name__)


def get_enrollment(db: Session, batch_id: int, student_id: int) -> Optional[BatchEnrollment]:
    return db.query(BatchEnrollment).filter(
        BatchEnrollment.batch_id == batch_id,
        BatchEnrollment.student_id == student_id,
    ).first()


def is_enrolled(db: Session, batch_id: int, student_id: int) -> bool:
    enrollment = get_enrollment(db, batch_id, student_id)
    return enrollment is not None and enrollment.status == EnrollmentStatus.ACTIVE


def has_paid(db: Session, batch_id: int, student_id: int) -> bool:
    return db.query(Payment).filter(
        Payment.batch_id == batch_id,
        Payment.student_id == student_id,
        Payment.status == PaymentStatus.PAID,
    ).first() is not None


def enroll_student(db: Session, batch: Batch, student_id: int) -> Tuple[BatchEnrollment, bool]:
    """
    Give `student_id` an active seat in `batch`.

    Idempotent: an existing active enrollment is returned as-is, and a dropped
    or inactive one is reactivated instead of inserting a duplicate row.

    Returns:
        (enrollment, created) where created is False if the student already had a seat
    """
    enrollment = get_enrollment(db, batch.id, student_id)

    if enrollment is not None:
        if enrollment.status == EnrollmentStatus.ACTIVE:
            return enrollment, False
        enrollment.status = EnrollmentStatus.ACTIVE
        enrollment.completed_at = None
        db.flush()
        logger.info(f"Re-activated enrollment of student {student_id} in batch {batch.id}")
        return enrollment, True

    enrollment = BatchEnrollment(batch_id=batch.id, student_id=student_id, status=EnrollmentStatus.ACTIVE)
    db.add(enrollment)
    db.flush()
    # Keep the in-memory collection in sync for enrolled_count()
    db.refresh(batch)
    logger.info(f"Enrolled student {student_id} in batch {batch.id}")
    return enrollment, True
