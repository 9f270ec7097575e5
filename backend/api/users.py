"""
User management API endpoints
Admin account administration plus self-service views of a user's batches and payments
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc, func, or_
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from core.database import get_db
from core.security import get_current_user, get_current_admin
from models.user import User, UserRole, UserStatus
from models.course import Course
from models.batch import Batch, BatchEnrollment, EnrollmentStatus
from models.payment import Payment, PaymentStatus
from models.notification import NotificationType, NotificationCategory, NotificationPriority
from services import notification_service
from api.common import paginate, not_found

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Request/Response Models (Pydantic schemas)
# ============================================

class UpdateStatusRequest(BaseModel):
    status: UserStatus
    reason: Optional[str] = Field(None, max_length=500)


class UpdateRoleRequest(BaseModel):
    role: UserRole


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise not_found("User")
    return user


def _ensure_self_or_admin(current_user: User, user_id: int):
    if not current_user.is_admin() and current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. You can only view your own data."
        )


# ============================================
# User Endpoints
# ============================================

@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None),
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    List users (admin only)

    - **role**: student, teacher or admin
    - **isActive**: filter by active flag
    - **search**: matches name or email
    """
    query = db.query(User)

    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    if search:
        term = f"%{search}%"
        query = query.filter(or_(User.name.like(term), User.email.like(term)))

    users, pagination = paginate(query.order_by(desc(User.created_at), desc(User.id)), page, limit)

    return {
        "success": True,
        "data": [u.to_dict() for u in users],
        "pagination": pagination,
    }


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    _ensure_self_or_admin(current_user, user_id)
    user = _get_user_or_404(db, user_id)
    return {"success": True, "data": {"user": user.to_dict()}}


@router.put("/{user_id}/status")
async def update_user_status(
    user_id: int,
    request: UpdateStatusRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Activate, deactivate or suspend an account (admin only)
    Only active accounts can authenticate.
    """
    user = _get_user_or_404(db, user_id)

    user.status = request.status
    user.is_active = request.status == UserStatus.ACTIVE

    if request.status == UserStatus.SUSPENDED:
        user.suspension_reason = request.reason
        user.suspended_by = current_admin.id
        user.suspended_at = datetime.utcnow()
    elif request.status == UserStatus.ACTIVE:
        user.suspension_reason = None
        user.suspended_by = None
        user.suspended_at = None

    suffix = (
        "You can now access all features."
        if request.status == UserStatus.ACTIVE
        else "Please contact support if you have questions."
    )
    notification_service.create_notification(
        db,
        recipient_id=user.id,
        sender_id=current_admin.id,
        title="Account Status Updated",
        message=f"Your account has been {request.status.value}. {suffix}",
        type=NotificationType.PROFILE_UPDATE,
        category=NotificationCategory.SYSTEM,
        priority=NotificationPriority.HIGH if request.status == UserStatus.SUSPENDED else NotificationPriority.MEDIUM,
        channels={"email": True, "push": True, "sms": False, "inApp": True},
    )

    db.commit()
    db.refresh(user)

    logger.info(f"User {user.email} status updated to {request.status.value} by {current_admin.email}")

    return {
        "success": True,
        "message": "User status updated successfully",
        "data": {"user": user.to_dict()},
    }


@router.put("/{user_id}/role")
async def update_user_role(
    user_id: int,
    request: UpdateRoleRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    user = _get_user_or_404(db, user_id)
    user.role = request.role

    notification_service.create_notification(
        db,
        recipient_id=user.id,
        sender_id=current_admin.id,
        title="Role Updated",
        message=f"Your role has been updated to {request.role.value}. You now have access to {request.role.value}-specific features.",
        type=NotificationType.PROFILE_UPDATE,
        category=NotificationCategory.SYSTEM,
    )

    db.commit()
    db.refresh(user)

    logger.info(f"User {user.email} role updated to {request.role.value} by {current_admin.email}")

    return {
        "success": True,
        "message": "User role updated successfully",
        "data": {"user": user.to_dict()},
    }


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Soft delete: the account is deactivated, its records are kept"""
    if user_id == current_admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )

    user = _get_user_or_404(db, user_id)
    user.is_active = False
    user.status = UserStatus.INACTIVE
    db.commit()

    logger.info(f"User {user.email} deactivated by {current_admin.email}")
    return {"success": True, "message": "User deleted successfully"}


@router.get("/{user_id}/analytics")
async def get_user_analytics(
    user_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    user = _get_user_or_404(db, user_id)

    if user.role == UserRole.TEACHER:
        batch_ids = [b.id for b in db.query(Batch.id).filter(Batch.teacher_id == user.id).all()]
        students = 0
        if batch_ids:
            students = db.query(func.count(func.distinct(BatchEnrollment.student_id))).filter(
                BatchEnrollment.batch_id.in_(batch_ids),
                BatchEnrollment.status == EnrollmentStatus.ACTIVE,
            ).scalar()
        analytics = {
            "courses": db.query(Course).filter(Course.teacher_id == user.id).count(),
            "batches": len(batch_ids),
            "students": students or 0,
            "totalEarnings": user.total_earnings,
            "availableForPayout": user.available_for_payout,
        }
    else:
        enrollments = db.query(BatchEnrollment).filter(BatchEnrollment.student_id == user.id)
        paid = db.query(Payment).filter(Payment.student_id == user.id, Payment.status == PaymentStatus.PAID)
        analytics = {
            "enrollments": enrollments.count(),
            "completed": enrollments.filter(BatchEnrollment.status == EnrollmentStatus.COMPLETED).count(),
            "payments": paid.count(),
            "totalSpent": round(sum(p.amount for p in paid.all()), 2),
        }

    return {"success": True, "data": {"user": user.to_dict(), "analytics": analytics}}


@router.get("/{user_id}/batches")
async def get_user_batches(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    _ensure_self_or_admin(current_user, user_id)
    user = _get_user_or_404(db, user_id)

    if user.role == UserRole.TEACHER:
        batches = db.query(Batch).filter(Batch.teacher_id == user.id).order_by(desc(Batch.created_at)).all()
        data = [b.to_dict() for b in batches]
    else:
        enrollments = db.query(BatchEnrollment).filter(
            BatchEnrollment.student_id == user.id
        ).order_by(desc(BatchEnrollment.enrolled_at)).all()
        data = [{**e.batch.to_dict(), "enrollment": e.to_dict()} for e in enrollments]

    return {"success": True, "data": data}


@router.get("/{user_id}/payments")
async def get_user_payments(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    _ensure_self_or_admin(current_user, user_id)
    _get_user_or_404(db, user_id)

    payments = db.query(Payment).filter(
        or_(Payment.student_id == user_id, Payment.teacher_id == user_id)
    ).order_by(desc(Payment.created_at)).all()

    return {"success": True, "data": [p.to_dict() for p in payments]}
