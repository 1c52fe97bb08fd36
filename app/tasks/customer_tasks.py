# ===== app/tasks/customer_tasks.py =====
from uuid import UUID
import logging

from app.config.celery_config import celery_app
from app.config.database import SessionLocal
from app.schemas.task_payloads import RecomputeCustomerMetricsPayload
from app.services.customer.customer_metrics_service import CustomerMetricsService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def recompute_customer_metrics(self, business_id: str, customer_ref: str):
    """Rebuild visit count and total spend after a completed or paid appointment"""
    payload = RecomputeCustomerMetricsPayload(business_id=business_id, customer_ref=customer_ref)
    db = SessionLocal()
    try:
        metrics = CustomerMetricsService.recompute(db, UUID(payload.business_id), payload.customer_ref)
        return {
            "status": "success",
            "customer_ref": payload.customer_ref,
            "visit_count": metrics.visit_count,
        }

    except Exception as exc:
        logger.error(f"Metrics recompute failed for customer {payload.customer_ref}: {exc}")
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
    finally:
        db.close()
