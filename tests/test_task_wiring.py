"""Celery-backed collaborators hand work to the right tasks"""
import uuid
from datetime import datetime, timezone
from unittest.mock import patch

from app.config.celery_config import celery_app
from app.services.customer.customer_metrics_service import CeleryMetricsRecomputer
from app.services.notification.notification_service import CeleryNotifier
from app.services.recovery.cancellation_recovery_service import CeleryRecoveryDispatcher


def test_beat_schedule_resumes_recoveries():
    entry = celery_app.conf.beat_schedule["resume-pending-recoveries"]

    assert entry["task"] == "app.tasks.recovery_tasks.resume_pending_recoveries"


def test_task_routes_cover_every_task_module():
    routes = celery_app.conf.task_routes

    assert routes["app.tasks.recovery_tasks.*"] == {"queue": "recovery"}
    assert routes["app.tasks.notification_tasks.*"] == {"queue": "notifications"}
    assert routes["app.tasks.customer_tasks.*"] == {"queue": "maintenance"}


def test_recovery_dispatcher_schedules_with_eta():
    attempt_id = uuid.uuid4()
    due = datetime(2030, 1, 8, 8, 0, tzinfo=timezone.utc)

    with patch("app.tasks.recovery_tasks.deliver_recovery_attempt.apply_async") as apply_async:
        CeleryRecoveryDispatcher().dispatch(attempt_id, due)

    apply_async.assert_called_once_with(
        kwargs={"attempt_id": str(attempt_id), "scheduled_for": due.isoformat()},
        eta=due,
    )


def test_notifier_queues_customer_message():
    with patch("app.tasks.notification_tasks.send_customer_message.delay") as delay:
        delay.return_value.id = "task-1"
        task_id = CeleryNotifier().send("+5511988887777", "hello")

    assert task_id == "task-1"
    assert delay.call_args.kwargs["to_phone"] == "+5511988887777"
    assert delay.call_args.kwargs["message_body"] == "hello"


def test_metrics_recompute_is_queued():
    business_id = uuid.uuid4()

    with patch("app.tasks.customer_tasks.recompute_customer_metrics.delay") as delay:
        CeleryMetricsRecomputer().recompute_customer_metrics(business_id, "cust-1")

    delay.assert_called_once_with(business_id=str(business_id), customer_ref="cust-1")
