"""
Notification API endpoints
Inbox, sent box, broadcasts, read receipts, preferences and push device tokens
"""
import logging
import math
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc
from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime, timedelta
import enum

from core.database import get_db
from core.security import get_current_user, get_current_admin, require_roles
from models.user import User, UserRole
from models.batch import Batch
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
from api.common import paginate, ensure_owner_or_admin, not_found

logger = logging.getLogger(__name__)

router = APIRouter()


class Box(str, enum.Enum):
    INBOX = "inbox"
    SENT = "sent"


class SendTarget(str, enum.Enum):
    STUDENTS = "students"
    SPECIFIC = "specific"
    ADMIN = "admin"


# ============================================
# Request/Response Models (Pydantic schemas)
# ============================================

class SystemNotificationRequest(BaseModel):
    """Admin broadcast to an explicit list of users"""
    title: str = Field(..., min_length=3, max_length=200)
    message: str = Field(..., min_length=10, max_length=1000)
    recipients: List[int]
    type: NotificationType = NotificationType.SYSTEM_ANNOUNCEMENT
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM

    @validator("recipients")
    def validate_recipients(cls, v):
        if not v:
            raise ValueError("Recipients must be a non-empty list")
        return v


class SendNotificationRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    message: str = Field(..., min_length=10, max_length=1000)
    target: SendTarget
    batch_id: Optional[int] = Field(None, alias="batchId")
    user_ids: List[int] = Field([], alias="userIds")
    type: NotificationType = NotificationType.SYSTEM_ANNOUNCEMENT
    category: NotificationCategory = NotificationCategory.ACADEMIC
    priority: NotificationPriority = NotificationPriority.MEDIUM

    class Config:
        populate_by_name = True


class PreferencesRequest(BaseModel):
    email: Optional[bool] = None
    push: Optional[bool] = None
    sms: Optional[bool] = None
    in_app: Optional[bool] = Field(None, alias="inApp")
    muted_types: Optional[List[NotificationType]] = Field(None, alias="mutedTypes")

    class Config:
        populate_by_name = True


class DeviceTokenRequest(BaseModel):
    token: str = Field(..., min_length=10, max_length=500)
    platform: str = Field("web", pattern="^(web|android|ios)$")


# ============================================
# Utility Functions
# ============================================

def _inbox(db: Session, user_id: int):
    return db.query(Notification).filter(
        Notification.recipient_id == user_id,
        Notification.status != NotificationStatus.PENDING,
    )


def _get_own_notification(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = _inbox(db, user_id).filter(Notification.id == notification_id).first()
    if not notification:
        raise not_found("Notification")
    return notification


def _summary(db: Session, user_id: int):
    total = _inbox(db, user_id).count()
    unread = _inbox(db, user_id).filter(Notification.is_read == False).count()  # noqa: E712
    return {"total": total, "unread": unread, "read": total - unread}


def _same_broadcast(db: Session, notification: Notification):
    """Rows written by one send call: same sender, title and message within a second"""
    window = timedelta(seconds=1)
    return db.query(Notification).filter(
        Notification.sender_id == notification.sender_id,
        Notification.title == notification.title,
        Notification.message == notification.message,
        Notification.created_at >= notification.created_at - window,
        Notification.created_at <= notification.created_at + window,
    )


def _group_sent(notifications: List[Notification]):
    groups = {}
    for n in notifications:
        key = (n.title, n.message, n.created_at.replace(microsecond=0) if n.created_at else None)
        group = groups.get(key)
        if group is None:
            groups[key] = {**n.to_dict(), "recipientCount": 0, "readCount": 0}
            group = groups[key]
        group["recipientCount"] += 1
        group["readCount"] += 1 if n.is_read else 0
    return list(groups.values())


# ============================================
# Inbox Endpoints
# ============================================

@router.get("")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    box: Box = Query(Box.INBOX),
    type: Optional[NotificationType] = Query(None),
    read: Optional[bool] = Query(None),
    category: Optional[NotificationCategory] = Query(None),
    priority: Optional[NotificationPriority] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List the caller's notifications

    - **box=inbox**: notifications received, newest first
    - **box=sent**: one entry per broadcast with recipientCount and readCount
    """
    if box == Box.SENT:
        query = db.query(Notification).filter(Notification.sender_id == current_user.id)
    else:
        query = _inbox(db, current_user.id)

    if type:
        query = query.filter(Notification.type == type)
    if read is not None:
        query = query.filter(Notification.is_read == read)
    if category:
        query = query.filter(Notification.category == category)
    if priority:
        query = query.filter(Notification.priority == priority)

    query = query.order_by(desc(Notification.created_at), desc(Notification.id))

    if box == Box.SENT:
        groups = _group_sent(query.all())
        start = (page - 1) * limit
        items = groups[start:start + limit]
        pagination = {
            "page": page,
            "limit": limit,
            "total": len(groups),
            "pages": math.ceil(len(groups) / limit),
        }
    else:
        notifications, pagination = paginate(query, page, limit)
        items = [n.to_dict() for n in notifications]

    return {
        "success": True,
        "data": {
            "notifications": items,
            "pagination": pagination,
            "summary": _summary(db, current_user.id),
        },
    }


@router.get("/unread-count")
async def unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    count = _inbox(db, current_user.id).filter(Notification.is_read == False).count()  # noqa: E712
    return {"success": True, "data": {"unreadCount": count}}


@router.put("/read-all")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    now = datetime.utcnow()
    unread = _inbox(db, current_user.id).filter(Notification.is_read == False).all()  # noqa: E712
    for notification in unread:
        notification.is_read = True
        notification.read_at = now
        notification.status = NotificationStatus.READ
    db.commit()

    return {
        "success": True,
        "message": "All notifications marked as read",
        "data": {"markedCount": len(unread)},
    }


@router.delete("")
async def bulk_delete(
    type: Optional[NotificationType] = Query(None),
    read: Optional[bool] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete the caller's notifications, optionally only of one type or read state"""
    query = db.query(Notification).filter(Notification.recipient_id == current_user.id)
    if type:
        query = query.filter(Notification.type == type)
    if read is not None:
        query = query.filter(Notification.is_read == read)

    deleted = query.delete(synchronize_session=False)
    db.commit()

    return {"success": True, "message": f"{deleted} notifications deleted", "data": {"deletedCount": deleted}}


# ============================================
# Preferences and Device Tokens
# ============================================

@router.get("/preferences")
async def get_preferences(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    preference = notification_service.get_preferences(db, current_user.id)
    return {"success": True, "data": {"preferences": preference.to_dict()}}


@router.put("/preferences")
async def update_preferences(
    request: PreferencesRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    preference = notification_service.get_preferences(db, current_user.id)
    if preference.id is None:
        db.add(preference)

    if request.email is not None:
        preference.email_enabled = request.email
    if request.push is not None:
        preference.push_enabled = request.push
    if request.sms is not None:
        preference.sms_enabled = request.sms
    if request.in_app is not None:
        preference.in_app_enabled = request.in_app
    if request.muted_types is not None:
        preference.muted_types = sorted({t.value for t in request.muted_types})

    db.commit()
    db.refresh(preference)

    return {
        "success": True,
        "message": "Notification preferences updated",
        "data": {"preferences": preference.to_dict()},
    }


@router.post("/device-tokens", status_code=status.HTTP_201_CREATED)
async def register_device_token(
    request: DeviceTokenRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Register an FCM token; a token seen before moves to the calling user"""
    device = db.query(DeviceToken).filter(DeviceToken.token == request.token).first()
    if device is None:
        device = DeviceToken(token=request.token)
        db.add(device)

    device.user_id = current_user.id
    device.platform = request.platform
    device.is_active = True
    device.last_used_at = datetime.utcnow()
    db.commit()
    db.refresh(device)

    return {"success": True, "message": "Device token registered", "data": {"device": device.to_dict()}}


@router.delete("/device-tokens/{token}")
async def remove_device_token(
    token: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    device = db.query(DeviceToken).filter(
        DeviceToken.token == token,
        DeviceToken.user_id == current_user.id,
    ).first()
    if not device:
        raise not_found("Device token")

    db.delete(device)
    db.commit()
    return {"success": True, "message": "Device token removed"}


# ============================================
# Sending
# ============================================

@router.post("/system", status_code=status.HTTP_201_CREATED)
async def send_system_notification(
    request: SystemNotificationRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    existing = {row[0] for row in db.query(User.id).filter(User.id.in_(request.recipients)).all()}
    missing = [r for r in request.recipients if r not in existing]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown recipients: {', '.join(str(m) for m in missing)}"
        )

    notifications = notification_service.create_bulk(
        db,
        request.recipients,
        request.title,
        request.message,
        request.type,
        category=request.category,
        priority=request.priority,
        sender_id=current_admin.id,
    )
    db.commit()

    return {
        "success": True,
        "message": f"Notification sent to {len(notifications)} users",
        "data": {"count": len(notifications)},
    }


@router.post("/send", status_code=status.HTTP_201_CREATED)
async def send_notification(
    request: SendNotificationRequest,
    current_user: User = Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """
    Send a notification to a batch's students, specific users, or all admins
    """
    if request.target == SendTarget.STUDENTS:
        if not request.batch_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="batchId is required when sending to students"
            )
        batch = db.query(Batch).filter(Batch.id == request.batch_id).first()
        if not batch:
            raise not_found("Batch")
        ensure_owner_or_admin(current_user, batch.teacher_id, "You can only notify students of your own batches")
        recipient_ids = notification_service.batch_student_ids(db, batch.id)
    elif request.target == SendTarget.SPECIFIC:
        recipient_ids = [
            row[0] for row in db.query(User.id).filter(User.id.in_(request.user_ids)).all()
        ] if request.user_ids else []
    else:
        recipient_ids = [
            row[0] for row in db.query(User.id).filter(
                User.role == UserRole.ADMIN,
                User.is_active == True,  # noqa: E712
            ).all()
        ]

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
        sender_id=current_user.id,
        related_batch_id=request.batch_id,
    )
    db.commit()

    logger.info(f"{current_user.email} sent '{request.title}' to {len(notifications)} recipients")

    return {
        "success": True,
        "message": f"Notification sent to {len(notifications)} recipients",
        "data": {"count": len(notifications)},
    }


# ============================================
# Single Notification Endpoints
# ============================================

@router.get("/{notification_id}")
async def get_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = _get_own_notification(db, notification_id, current_user.id)
    return {"success": True, "data": {"notification": notification.to_dict()}}


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = _get_own_notification(db, notification_id, current_user.id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.utcnow()
        notification.status = NotificationStatus.READ
        db.commit()
        db.refresh(notification)

    return {"success": True, "message": "Notification marked as read", "data": {"notification": notification.to_dict()}}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = _get_own_notification(db, notification_id, current_user.id)
    db.delete(notification)
    db.commit()
    return {"success": True, "message": "Notification deleted successfully"}


@router.get("/{notification_id}/receipts")
async def read_receipts(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Who received a broadcast and who has read it"""
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        raise not_found("Notification")
    if not current_user.is_admin() and notification.sender_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    rows = _same_broadcast(db, notification).all()
    read = sum(1 for n in rows if n.is_read)
    total = len(rows)

    return {
        "success": True,
        "data": {
            "notification": notification.to_dict(),
            "recipients": [
                {
                    **(n.recipient.to_summary() if n.recipient else {"id": n.recipient_id}),
                    "isRead": n.is_read,
                    "readAt": n.read_at.isoformat() if n.read_at else None,
                }
                for n in rows
            ],
            "stats": {
                "total": total,
                "read": read,
                "unread": total - read,
                "readPercentage": round(read * 100 / total, 1) if total else 0,
            },
        },
    }
