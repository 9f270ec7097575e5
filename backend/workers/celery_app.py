"""
Celery application configuration
Task queue for notification delivery and periodic reminders
"""
import logging

from celery import Celery
from celery.schedules import crontab

from core.config import settings
from core.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

# Initialize Celery app
celery_app = Celery(
    "genzed_lms",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "workers.notification_task",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes max per task
    task_soft_time_limit=540,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=200,
    worker_hijack_root_logger=False,  # keep the format from core.logging_config
)

# Periodic tasks (Celery Beat schedule)
celery_app.conf.beat_schedule = {
    # Release notifications whose scheduledFor has passed
    'dispatch-scheduled-notifications': {
        'task': 'workers.notification_task.dispatch_scheduled_notifications',
        'schedule': crontab(minute='*'),
    },
    # Remind students of live classes starting soon
    'send-class-reminders': {
        'task': 'workers.notification_task.send_class_reminders',
        'schedule': crontab(minute='*'),
    },
}

# Task routes (queue assignment)
celery_app.conf.task_routes = {
    'workers.notification_task.send_email_notification': {'queue': 'mail'},
    'workers.notification_task.send_push_notification': {'queue': 'push'},
    'workers.notification_task.*': {'queue': 'default'},
}

# Default queue
celery_app.conf.task_default_queue = 'default'

# Retry policy
celery_app.conf.task_default_retry_delay = 60  # Retry after 1 minute
celery_app.conf.task_max_retries = 3

logger.info("Celery app configured")
