"""
Admin API endpoints
Dashboard, analytics, people management, teacher approval and platform notifications
All endpoints require admin authentication
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import func, desc, or_
from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime, timedelta
import enum

from core.database import get_db
from core.health import uptime_seconds, database_status
from core.security import get_current_admin
from models.user import User, UserRole, ApprovalStatus
from models.course import Course
from models.batch import Batch, BatchEnrollment, EnrollmentStatus
from models.payment import Payment, PaymentStatus
from models.payout import Payout, TeacherBankAccount, PENDING_PAYOUT_STATUSES
from models.live_session import LiveSession, LiveSessionStatus
from models.notification import (
    Notification,
    NotificationType,
    NotificationCategory,
    NotificationPriority,
    NotificationStatus,
    NotificationPreference,
    DeviceToken,
)
from services import notification_service
from services.payout_service import monthly_totals, monthly_counts
from api.common import paginate, not_found

logger = logging.getLogger(__name__)

router = APIRouter()


class AdminTarget(str, enum.Enum):
    ALL = "all"
    TEACHERS = "teachers"
    STUDENTS = "students"
    SPECIFIC = "specific"


# ============================================
# Request/Response Models (Pydantic schemas)
# ============================================

class TeacherApprovalRequest(BaseModel):
    """Approve or reject a teacher registration"""
    status: ApprovalStatus
    commission_rate: Optional[float] = Field(None, ge=0, le=1, alias="commissionRate")
    reason: Optional[str] = Field(None, max_length=500)

    @validator("status")
    def validate_status(cls, v):
        if v == ApprovalStatus.PENDING:
            raise ValueError("Status must be approved or rejected")
        return v

    class Config:
        populate_by_name = True


class AdminNotificationRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    message: str = Field(..., min_length=10, max_length=1000)
    target: AdminTarget = AdminTarget.ALL
    user_ids: List[int] = Field([], alias="userIds")
    type: NotificationType = NotificationType.SYSTEM_ANNOUNCEMENT
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    scheduled_for: Optional[datetime] = Field(None, alias="scheduledFor")

    class Config:
        populate_by_name = True


# ============================================
# Utility Functions
# ============================================

def _count(db: Session, model, *filters) -> int:
    return db.query(func.count(model.id)).filter(*filters).scalar() or 0


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return (value - value.utcoffset()).replace(tzinfo=None)
    return value


def _target_user_ids(db: Session, request: AdminNotificationRequest) -> List[int]:
    query = db.query(User.id).filter(User.is_active == True)  # noqa: E712
    if request.target == AdminTarget.TEACHERS:
        query = query.filter(User.role == UserRole.TEACHER)
    elif request.target == AdminTarget.STUDENTS:
        query = query.filter(User.role == UserRole.STUDENT)
    elif request.target == AdminTarget.SPECIFIC:
        if not request.user_ids:
            return []
        query = query.filter(User.id.in_(request.user_ids))
    return [row[0] for row in query.all()]


def _send(db: Session, request: AdminNotificationRequest, admin: User, scheduled_for: datetime = None):
    recipient_ids = _target_user_ids(db, request)
    if not recipient_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No recipients found for the selected target"
        )
    notifications = notification_service.create_bulk(
        db,
        recipient_ids,
        request.title,
        request.message,
        request.type,
        category=request.category,
        priority=request.priority,
        sender_id=admin.id,
        scheduled_for=scheduled_for,
    )
    db.commit()
    return notifications


# ============================================
# Dashboard and Analytics
# ============================================

@router.get("/dashboard")
async def get_dashboard_stats(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Get admin dashboard statistics

    Returns:
    - overview counts for users, courses, batches, revenue and payouts
    - recent activity (latest payments, upcoming live classes)
    - system health
    """
    now = datetime.utcnow()
    month_ago = now - timedelta(days=30)
    week_ago = now - timedelta(days=7)

    new_this_month = _count(db, User, User.created_at >= month_ago)
    new_this_week = _count(db, User, User.created_at >= week_ago)
    revenue = db.query(func.coalesce(func.sum(Payment.amount), 0.0)).filter(
        Payment.status == PaymentStatus.PAID
    ).scalar()

    recent_payments = db.query(Payment).filter(
        Payment.status == PaymentStatus.PAID
    ).order_by(desc(Payment.paid_at)).limit(5).all()

    upcoming = db.query(LiveSession).filter(
        LiveSession.status == LiveSessionStatus.SCHEDULED,
        LiveSession.start_time >= now,
    ).order_by(LiveSession.start_time).limit(5).all()

    return {
        "success": True,
        "data": {
            "overview": {
                "totalUsers": _count(db, User),
                "totalStudents": _count(db, User, User.role == UserRole.STUDENT),
                "totalTeachers": _count(db, User, User.role == UserRole.TEACHER),
                "activeUsers": _count(db, User, User.is_active == True),  # noqa: E712
                "totalCourses": _count(db, Course),
                "activeCourses": _count(db, Course, Course.is_active == True),  # noqa: E712
                "totalBatches": _count(db, Batch),
                "activeBatches": _count(db, Batch, Batch.is_active == True),  # noqa: E712
                "totalRevenue": round(float(revenue or 0.0), 2),
                "totalPayments": _count(db, Payment, Payment.status == PaymentStatus.PAID),
                "pendingPayouts": _count(db, Payout, Payout.status.in_(list(PENDING_PAYOUT_STATUSES))),
                "newUsersThisMonth": new_this_month,
                "newUsersThisWeek": new_this_week,
                "userGrowthRate": round(new_this_week * 100 / new_this_month, 1) if new_this_month else 0,
            },
            "recentActivity": {
                "payments": [p.to_dict() for p in recent_payments],
                "upcomingClasses": [s.to_dict() for s in upcoming],
            },
            "systemHealth": {
                "database": database_status(db),
                "uptime": uptime_seconds(),
            },
        },
    }


@router.get("/analytics")
async def get_analytics(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    revenue = monthly_totals(
        db, Payment.amount, Payment.paid_at, months=12, filters=(Payment.status == PaymentStatus.PAID,)
    )
    new_users = monthly_counts(db, User.created_at, months=12)

    top_courses = db.query(Course).filter(
        Course.is_active == True  # noqa: E712
    ).order_by(desc(Course.students_enrolled)).limit(5).all()

    roles = {role.value: count for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all()}
    payment_statuses = {
        s.value: count for s, count in db.query(Payment.status, func.count(Payment.id)).group_by(Payment.status).all()
    }

    return {
        "success": True,
        "data": {
            "monthlyRevenue": revenue,
            "monthlyUsers": new_users,
            "topCourses": [
                {"id": c.id, "title": c.title, "studentsEnrolled": c.students_enrolled, "rating": c.rating}
                for c in top_courses
            ],
            "userDistribution": roles,
            "paymentStatusDistribution": payment_statuses,
        },
    }


@router.get("/system-health")
async def system_health(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    database = database_status(db)
    tables = {}
    if database == "connected":
        for name, model in (
            ("users", User),
            ("courses", Course),
            ("batches", Batch),
            ("batchEnrollments", BatchEnrollment),
            ("payments", Payment),
            ("payouts", Payout),
            ("bankAccounts", TeacherBankAccount),
            ("liveSessions", LiveSession),
            ("notifications", Notification),
            ("notificationPreferences", NotificationPreference),
            ("deviceTokens", DeviceToken),
        ):
            tables[name] = _count(db, model)

    return {
        "success": True,
        "data": {
            "status": "healthy" if database == "connected" else "degraded",
            "database": database,
            "uptime": uptime_seconds(),
            "timestamp": datetime.utcnow().isoformat(),
            "tables": tables,
        },
    }


# ============================================
# People
# ============================================

@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    search: Optional[str] = Query(None),
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if search:
        term = f"%{search}%"
        query = query.filter(or_(User.name.like(term), User.email.like(term)))

    users, pagination = paginate(query.order_by(desc(User.created_at), desc(User.id)), page, limit)
    return {"success": True, "data": {"users": [u.to_dict() for u in users], "pagination": pagination}}


@router.get("/students")
async def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    query = db.query(User).filter(User.role == UserRole.STUDENT)
    if search:
        term = f"%{search}%"
        query = query.filter(or_(User.name.like(term), User.email.like(term)))

    students, pagination = paginate(query.order_by(desc(User.created_at), desc(User.id)), page, limit)

    ids = [s.id for s in students]
    enrollment_counts = dict(
        db.query(BatchEnrollment.student_id, func.count(BatchEnrollment.id)).filter(
            BatchEnrollment.student_id.in_(ids),
            BatchEnrollment.status == EnrollmentStatus.ACTIVE,
        ).group_by(BatchEnrollment.student_id).all()
    ) if ids else {}
    payment_counts = dict(
        db.query(Payment.student_id, func.count(Payment.id)).filter(
            Payment.student_id.in_(ids),
            Payment.status == PaymentStatus.PAID,
        ).group_by(Payment.student_id).all()
    ) if ids else {}

    return {
        "success": True,
        "data": {
            "students": [
                {
                    **s.to_dict(),
                    "enrollmentCount": enrollment_counts.get(s.id, 0),
                    "paymentCount": payment_counts.get(s.id, 0),
                }
                for s in students
            ],
            "pagination": pagination,
        },
    }


@router.get("/students/{student_id}")
async def student_detail(
    student_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    student = db.query(User).filter(User.id == student_id, User.role == UserRole.STUDENT).first()
    if not student:
        raise not_found("Student")

    enrollments = db.query(BatchEnrollment).filter(
        BatchEnrollment.student_id == student.id
    ).order_by(desc(BatchEnrollment.enrolled_at)).all()
    payments = db.query(Payment).filter(Payment.student_id == student.id).order_by(desc(Payment.created_at)).all()
    paid = [p for p in payments if p.status == PaymentStatus.PAID]

    return {
        "success": True,
        "data": {
            "student": student.to_dict(),
            "enrollments": [{**e.to_dict(), "batch": e.batch.to_dict() if e.batch else None} for e in enrollments],
            "payments": [p.to_dict() for p in payments],
            "totals": {
                "enrollments": len(enrollments),
                "activeEnrollments": sum(1 for e in enrollments if e.status == EnrollmentStatus.ACTIVE),
                "payments": len(payments),
                "totalSpent": round(sum(p.amount for p in paid), 2),
            },
        },
    }


@router.get("/teachers/pending")
async def pending_teachers(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    teachers = db.query(User).filter(
        User.role == UserRole.TEACHER,
        User.approval_status == ApprovalStatus.PENDING,
    ).order_by(User.created_at).all()
    return {"success": True, "data": {"teachers": [t.to_dict() for t in teachers]}}


@router.put("/teachers/{teacher_id}/approval")
async def set_teacher_approval(
    teacher_id: int,
    request: TeacherApprovalRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Approve or reject a teacher
    An optional commissionRate overrides the default platform commission for this teacher.
    """
    teacher = db.query(User).filter(User.id == teacher_id, User.role == UserRole.TEACHER).first()
    if not teacher:
        raise not_found("Teacher")

    teacher.approval_status = request.status
    if request.commission_rate is not None:
        teacher.commission_rate = request.commission_rate

    if request.status == ApprovalStatus.APPROVED:
        title = "Teacher Account Approved"
        message = "Your teacher account has been approved. You can now create courses and batches."
    else:
        title = "Teacher Account Rejected"
        message = f"Your teacher application was not approved. {request.reason or 'Please contact support for details.'}"

    notification_service.create_notification(
        db,
        recipient_id=teacher.id,
        sender_id=current_admin.id,
        title=title,
        message=message,
        type=NotificationType.PROFILE_UPDATE,
        category=NotificationCategory.SYSTEM,
        priority=NotificationPriority.HIGH,
        channels={"email": True, "push": True, "sms": False, "inApp": True},
    )

    db.commit()
    db.refresh(teacher)

    logger.info(f"Teacher {teacher.email} {request.status.value} by {current_admin.email}")
    return {
        "success": True,
        "message": f"Teacher {request.status.value} successfully",
        "data": {"teacher": teacher.to_dict()},
    }


# ============================================
# Live Classes and Payouts
# ============================================

@router.get("/live-classes")
async def list_live_classes(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session_status: Optional[LiveSessionStatus] = Query(None, alias="status"),
    teacher_id: Optional[int] = Query(None, alias="teacherId"),
    batch_id: Optional[int] = Query(None, alias="batchId"),
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    query = db.query(LiveSession)
    if session_status:
        query = query.filter(LiveSession.status == session_status)
    if teacher_id:
        query = query.filter(LiveSession.teacher_id == teacher_id)
    if batch_id:
        query = query.filter(LiveSession.batch_id == batch_id)

    sessions, pagination = paginate(query.order_by(desc(LiveSession.start_time)), page, limit)
    return {"success": True, "data": {"sessions": [s.to_dict() for s in sessions], "pagination": pagination}}


@router.get("/payouts")
async def pending_payouts(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    payouts = db.query(Payout).filter(
        Payout.status.in_(list(PENDING_PAYOUT_STATUSES))
    ).order_by(Payout.requested_at).all()
    return {
        "success": True,
        "data": {
            "payouts": [p.to_dict() for p in payouts],
            "totalAmount": round(sum(p.amount for p in payouts), 2),
        },
    }


# ============================================
# Notifications
# ============================================

@router.get("/notifications")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    type: Optional[NotificationType] = Query(None),
    notification_status: Optional[NotificationStatus] = Query(None, alias="status"),
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    query = db.query(Notification)
    if type:
        query = query.filter(Notification.type == type)
    if notification_status:
        query = query.filter(Notification.status == notification_status)

    notifications, pagination = paginate(
        query.order_by(desc(Notification.created_at), desc(Notification.id)), page, limit
    )
    return {
        "success": True,
        "data": {
            "notifications": [
                {**n.to_dict(), "recipient": n.recipient.to_summary() if n.recipient else None}
                for n in notifications
            ],
            "pagination": pagination,
        },
    }


@router.post("/notifications/send", status_code=status.HTTP_201_CREATED)
async def send_notification(
    request: AdminNotificationRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    notifications = _send(db, request, current_admin)
    logger.info(f"Admin {current_admin.email} sent '{request.title}' to {len(notifications)} users")
    return {
        "success": True,
        "message": f"Notification sent to {len(notifications)} users",
        "data": {"count": len(notifications)},
    }


@router.post("/notifications/schedule", status_code=status.HTTP_201_CREATED)
async def schedule_notification(
    request: AdminNotificationRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Store the notification as pending; the beat task releases it at scheduledFor"""
    if request.scheduled_for is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="scheduledFor is required")

    scheduled_for = _naive_utc(request.scheduled_for)
    if scheduled_for <= datetime.utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Scheduled time must be in the future")

    notifications = _send(db, request, current_admin, scheduled_for=scheduled_for)
    return {
        "success": True,
        "message": f"Notification scheduled for {len(notifications)} users",
        "data": {"count": len(notifications), "scheduledFor": scheduled_for.isoformat()},
    }


@router.delete("/notifications/{notification_id}")
async def delete_notification(
    notification_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        raise not_found("Notification")

    db.delete(notification)
    db.commit()
    return {"success": True, "message": "Notification deleted successfully"}
