# app/config/celery_config.py
"""Celery configuration and task routing"""
from celery import Celery
from kombu import Queue

from app.config.settings import get_settings

settings = get_settings()

TASK_MODULES = [
    "app.tasks.notification_tasks",
    "app.tasks.recovery_tasks",
    "app.tasks.customer_tasks",
]


def create_celery_app() -> Celery:
    """Create and configure Celery application"""

    celery_app = Celery(
        "booking_engine",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=TASK_MODULES,
    )

    # Configure Celery
    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,

        # Task routing
        task_routes={
            "app.tasks.notification_tasks.*": {"queue": "notifications"},
            "app.tasks.recovery_tasks.*": {"queue": "recovery"},
            "app.tasks.customer_tasks.*": {"queue": "maintenance"},
        },

        # Queue definitions
        task_queues=(
            Queue("notifications", routing_key="notifications"),
            Queue("recovery", routing_key="recovery"),
            Queue("maintenance", routing_key="maintenance"),
        ),

        # Periodic re-derivation of due recovery attempts
        beat_schedule={
            "resume-pending-recoveries": {
                "task": "app.tasks.recovery_tasks.resume_pending_recoveries",
                "schedule": float(settings.RECOVERY_RESUME_INTERVAL_SECONDS),
            },
        },

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        # Retry settings
        task_retry_max_retries=3,
        task_retry_delay=60,  # 1 minute

        broker_connection_retry_on_startup=True,
    )

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
