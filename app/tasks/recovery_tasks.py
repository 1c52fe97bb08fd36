# ===== app/tasks/recovery_tasks.py =====
from uuid import UUID
import logging

from app.config.celery_config import celery_app
from app.config.database import SessionLocal
from app.schemas.task_payloads import RecoveryAttemptPayload
from app.services.container import get_worker_services

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def deliver_recovery_attempt(self, attempt_id: str, scheduled_for: str):
    """Deliver one cancellation-recovery attempt once it is due"""
    payload = RecoveryAttemptPayload(attempt_id=attempt_id, scheduled_for=scheduled_for)
    db = SessionLocal()
    try:
        attempt = get_worker_services().recovery.deliver_attempt(db, UUID(payload.attempt_id))
        if attempt is None:
            return {"status": "failed", "reason": "attempt_not_found"}
        return {"status": attempt.status, "attempt_id": payload.attempt_id}

    except Exception as exc:
        db.rollback()
        logger.error(f"Recovery attempt {payload.attempt_id} errored: {exc}", exc_info=True)
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
    finally:
        db.close()


@celery_app.task
def resume_pending_recoveries():
    """Send recovery attempts that came due while no worker held their eta task"""
    db = SessionLocal()
    try:
        processed = get_worker_services().recovery.resume_pending(db)
        return {"status": "success", "processed": processed}
    finally:
        db.close()
