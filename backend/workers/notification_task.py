"""
Notification delivery tasks
Email and push delivery for queued notifications, plus the beat-driven
scheduled-notification release and class reminders
"""
import logging
import smtplib
from typing import Dict, Any, List

from firebase_admin.exceptions import FirebaseError

from workers.celery_app import celery_app
from core.database import get_db_context
from models.notification import DeviceToken
from services import notification_service
from services.email_service import email_service, EmailSendError
from services.push_service import push_service

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="workers.notification_task.send_email_notification",
    autoretry_for=(EmailSendError, smtplib.SMTPException, ConnectionError),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_jitter=True,
    max_retries=3,
)
def send_email_notification(self, to: str, subject: str, html: str) -> Dict[str, Any]:
    """
    Send one notification email

    Returns:
        dict: {"status": "sent", "messageId": ...} or {"status": "skipped"} when SMTP is not configured
    """
    if not email_service.is_configured():
        logger.debug(f"SMTP not configured, skipping email to {to}")
        return {"status": "skipped", "to": to}

    message_id = email_service.send_email(to, subject, html)
    return {"status": "sent", "to": to, "messageId": message_id}


@celery_app.task(bind=True, name="workers.notification_task.send_push_notification", max_retries=3)
def send_push_notification(self, user_id: int, tokens: List[str], title: str, body: str,
                           data: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Send a push notification to a user's devices
    Tokens FCM reports as unregistered are deactivated.
    """
    if not push_service.is_configured():
        logger.debug(f"FCM not configured, skipping push to user {user_id}")
        return {"status": "skipped", "userId": user_id}

    try:
        result = push_service.send(tokens, title, body, data)
    except FirebaseError as e:
        logger.error(f"Push to user {user_id} failed: {str(e)}")
        raise self.retry(exc=e, countdown=60)

    if result["invalidTokens"]:
        with get_db_context() as db:
            db.query(DeviceToken).filter(
                DeviceToken.token.in_(result["invalidTokens"])
            ).update({DeviceToken.is_active: False}, synchronize_session=False)
        logger.info(f"Deactivated {len(result['invalidTokens'])} stale device tokens for user {user_id}")

    return {"status": "sent", "userId": user_id, **result}


@celery_app.task(bind=True, name="workers.notification_task.dispatch_scheduled_notifications")
def dispatch_scheduled_notifications(self) -> Dict[str, Any]:
    """
    Periodic task: deliver notifications whose scheduledFor has passed
    Scheduled every minute (configured in celery_app.py)
    """
    with get_db_context() as db:
        released = notification_service.release_scheduled_notifications(db)
    return {"status": "completed", "released": released}


@celery_app.task(bind=True, name="workers.notification_task.send_class_reminders")
def send_class_reminders(self) -> Dict[str, Any]:
    """
    Periodic task: remind enrolled students of live classes starting soon
    Scheduled every minute (configured in celery_app.py)
    """
    with get_db_context() as db:
        reminded = notification_service.send_class_reminders(db)
    return {"status": "completed", "reminded": reminded}
