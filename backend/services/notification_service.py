"""
Notification Service

Creates in-app notifications and queues their email/push delivery.

Delivery is prepared while the notification is written and handed to Celery
only after the surrounding transaction commits, so a rolled-back request never
emails anyone.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional, Iterable

from sqlalchemy import event
from sqlalchemy.orm import Session

from core.config import settings
from models.user import User
from models.batch import BatchEnrollment, EnrollmentStatus
from models.live_session import LiveSession, LiveSessionStatus
from models.notification import (
    Notification,
    NotificationType,
    NotificationCategory,
    NotificationPriority,
    NotificationStatus,
    NotificationPreference,
    DeviceToken,
    DEFAULT_CHANNELS,
)
from services.email_service import render_notification_html

logger = logging.getLogger(__name__)

PENDING_DELIVERIES_KEY = "pending_notification_deliveries"


# ============================================
# Delivery queue (flushed on commit)
# ============================================

@event.listens_for(Session, "after_commit")
def _enqueue_pending_deliveries(session):
    deliveries = session.info.pop(PENDING_DELIVERIES_KEY, [])
    if not deliveries:
        return

    # Imported here: workers import this module
    from workers.notification_task import send_email_notification, send_push_notification

    for delivery in deliveries:
        try:
            if delivery["channel"] == "email":
                send_email_notification.delay(delivery["to"], delivery["subject"], delivery["html"])
            elif delivery["channel"] == "push":
                send_push_notification.delay(
                    delivery["userId"], delivery["tokens"], delivery["title"], delivery["body"], delivery["data"]
                )
        except Exception as e:
            logger.error(f"Failed to enqueue {delivery['channel']} delivery: {str(e)}")


@event.listens_for(Session, "after_rollback")
def _discard_pending_deliveries(session):
    session.info.pop(PENDING_DELIVERIES_KEY, None)


def get_preferences(db: Session, user_id: int) -> NotificationPreference:
    """Stored preferences, or an unsaved default row"""
    preference = db.query(NotificationPreference).filter(NotificationPreference.user_id == user_id).first()
    if preference is None:
        preference = NotificationPreference(
            user_id=user_id,
            email_enabled=True,
            push_enabled=True,
            sms_enabled=False,
            in_app_enabled=True,
            muted_types=[],
        )
    return preference


def queue_delivery(db: Session, notification: Notification, recipient: User = None):
    """Work out which external channels this notification goes to and queue them"""
    recipient = recipient or db.query(User).filter(User.id == notification.recipient_id).first()
    if recipient is None:
        return

    channels = notification.channels or DEFAULT_CHANNELS
    preference = get_preferences(db, recipient.id)
    notification_type = notification.type.value
    queued = db.info.setdefault(PENDING_DELIVERIES_KEY, [])

    if channels.get("email") and preference.allows("email", notification_type) and recipient.email:
        queued.append({
            "channel": "email",
            "to": recipient.email,
            "subject": notification.title,
            "html": render_notification_html(notification.title, notification.message),
        })

    if channels.get("push") and preference.allows("push", notification_type):
        tokens = [
            t.token for t in db.query(DeviceToken).filter(
                DeviceToken.user_id == recipient.id,
                DeviceToken.is_active == True,  # noqa: E712
            ).all()
        ]
        if tokens:
            queued.append({
                "channel": "push",
                "userId": recipient.id,
                "tokens": tokens,
                "title": notification.title,
                "body": notification.message,
                "data": {"type": notification_type, "notificationId": notification.id},
            })


# ============================================
# Creation
# ============================================

def create_notification(
    db: Session,
    recipient_id: int,
    title: str,
    message: str,
    type: NotificationType,
    category: NotificationCategory = NotificationCategory.SYSTEM,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    sender_id: Optional[int] = None,
    related_course_id: Optional[int] = None,
    related_batch_id: Optional[int] = None,
    related_payment_id: Optional[int] = None,
    channels: Optional[Dict[str, bool]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    scheduled_for: Optional[datetime] = None,
) -> Notification:
    """
    Add a notification to the session (the caller commits).

    A notification scheduled in the future is stored as pending and delivered
    later by dispatch_scheduled_notifications.
    """
    now = datetime.utcnow()
    is_scheduled = scheduled_for is not None and scheduled_for > now

    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        title=title[:200],
        message=message[:1000],
        type=type,
        category=category,
        priority=priority,
        related_course_id=related_course_id,
        related_batch_id=related_batch_id,
        related_payment_id=related_payment_id,
        channels=channels or dict(DEFAULT_CHANNELS),
        metadata_=metadata,
        scheduled_for=scheduled_for,
        status=NotificationStatus.PENDING if is_scheduled else NotificationStatus.SENT,
        sent_at=None if is_scheduled else now,
    )
    db.add(notification)
    db.flush()

    if not is_scheduled:
        queue_delivery(db, notification)

    return notification


def create_bulk(db: Session, recipient_ids: Iterable[int], title: str, message: str,
                type: NotificationType, **kwargs) -> List[Notification]:
    """One notification per distinct recipient, all sharing sender/title/message"""
    seen = set()
    notifications = []
    for recipient_id in recipient_ids:
        if recipient_id in seen:
            continue
        seen.add(recipient_id)
        notifications.append(create_notification(db, recipient_id, title, message, type, **kwargs))

    logger.info(f"Created {len(notifications)} '{type.value}' notifications")
    return notifications


def batch_student_ids(db: Session, batch_id: int) -> List[int]:
    rows = db.query(BatchEnrollment.student_id).filter(
        BatchEnrollment.batch_id == batch_id,
        BatchEnrollment.status == EnrollmentStatus.ACTIVE,
    ).all()
    return [row[0] for row in rows]


# ============================================
# Scheduled work (driven by Celery beat)
# ============================================

def release_scheduled_notifications(db: Session, now: datetime = None) -> int:
    """Deliver pending notifications whose scheduledFor has passed"""
    now = now or datetime.utcnow()
    due = db.query(Notification).filter(
        Notification.status == NotificationStatus.PENDING,
        Notification.scheduled_for <= now,
    ).all()

    for notification in due:
        notification.status = NotificationStatus.SENT
        notification.sent_at = now
        queue_delivery(db, notification)

    if due:
        logger.info(f"Released {len(due)} scheduled notifications")
    return len(due)


def send_class_reminders(db: Session, now: datetime = None) -> int:
    """
    Remind enrolled students about scheduled sessions starting within
    CLASS_REMINDER_MINUTES. Each session is reminded once.
    """
    now = now or datetime.utcnow()
    horizon = now + timedelta(minutes=settings.CLASS_REMINDER_MINUTES)

    sessions = db.query(LiveSession).filter(
        LiveSession.status == LiveSessionStatus.SCHEDULED,
        LiveSession.start_time > now,
        LiveSession.start_time <= horizon,
        LiveSession.reminder_sent_at.is_(None),
    ).all()

    sent = 0
    for session in sessions:
        student_ids = batch_student_ids(db, session.batch_id)
        create_bulk(
            db,
            student_ids,
            title=f"Class starting soon: {session.title}",
            message=f"Your live class starts at {session.start_time.strftime('%I:%M %p')} UTC. Join here: {session.meeting_link}",
            type=NotificationType.CLASS_REMINDER,
            category=NotificationCategory.ACADEMIC,
            priority=NotificationPriority.HIGH,
            related_batch_id=session.batch_id,
            channels={"email": True, "push": True, "sms": False, "inApp": True},
            metadata={"sessionId": session.id},
        )
        session.reminder_sent_at = now
        sent += len(student_ids)
        logger.info(f"Class reminder sent for session {session.id} to {len(student_ids)} students")

    return sent
