# ===== app/services/customer/customer_metrics_service.py =====
from decimal import Decimal
from typing import Protocol
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.appointment import Appointment
from app.models.customer_metrics import CustomerMetrics
from app.models.enums import AppointmentStatus
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class MetricsRecomputer(Protocol):
    def recompute_customer_metrics(self, business_id: UUID, customer_ref: str) -> None:
        ...


class CustomerMetricsService:
    """Visit count, total spend and last visit per customer, rebuilt from completed appointments"""

    @staticmethod
    def recompute(db: Session, business_id: UUID, customer_ref: str) -> CustomerMetrics:
        visit_count, total_spent, last_visit_at = db.query(
            func.count(Appointment.id),
            func.sum(func.coalesce(Appointment.amount_paid, Appointment.price, 0)),
            func.max(Appointment.completed_at),
        ).filter(
            Appointment.business_id == business_id,
            Appointment.customer_ref == customer_ref,
            Appointment.status == AppointmentStatus.COMPLETED,
        ).one()

        metrics = db.query(CustomerMetrics).filter(
            CustomerMetrics.business_id == business_id,
            CustomerMetrics.customer_ref == customer_ref,
        ).first()
        if not metrics:
            metrics = CustomerMetrics(business_id=business_id, customer_ref=customer_ref)
            db.add(metrics)

        metrics.visit_count = visit_count or 0
        metrics.total_spent = Decimal(str(total_spent or 0))
        metrics.last_visit_at = last_visit_at
        metrics.updated_at = utcnow()

        try:
            db.commit()
            db.refresh(metrics)
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Customer metrics for {customer_ref} (business {business_id}): "
            f"{metrics.visit_count} visit(s), total {metrics.total_spent}"
        )
        return metrics

    @staticmethod
    def get(db: Session, business_id: UUID, customer_ref: str):
        return db.query(CustomerMetrics).filter(
            CustomerMetrics.business_id == business_id,
            CustomerMetrics.customer_ref == customer_ref,
        ).first()


class CeleryMetricsRecomputer:
    """Hands the recompute to a worker so completing an appointment never waits on it"""

    def recompute_customer_metrics(self, business_id: UUID, customer_ref: str) -> None:
        from app.tasks.customer_tasks import recompute_customer_metrics

        recompute_customer_metrics.delay(business_id=str(business_id), customer_ref=customer_ref)
        logger.info(f"Queued metrics recompute for customer {customer_ref} (business {business_id})")
