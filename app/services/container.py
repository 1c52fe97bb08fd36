# ===== app/services/container.py =====
"""
Wires the scheduling engine together.

The API process builds one container at startup (app.state.services); each
Celery worker process builds its own through get_worker_services().
"""
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Callable, Optional
import logging

from app.config.settings import Settings, get_settings
from app.services.appointment.appointment_query_service import AppointmentQueryService
from app.services.appointment.appointment_service import AppointmentService
from app.services.appointment.booking_lock import BookingLock
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.capacity_service import CapacityChecker
from app.services.calendar.calendar_rules import CalendarRules
from app.services.customer.customer_metrics_service import CeleryMetricsRecomputer, MetricsRecomputer
from app.services.events.appointment_events import AppointmentEventPublisher
from app.services.notification.notification_service import (
    CeleryNotifier, NotificationService, Notifier, subscribe_customer_notifications,
)
from app.services.recovery.cancellation_recovery_service import (
    CancellationRecoveryService, CeleryRecoveryDispatcher, RecoveryDispatcher,
)
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class Services:
    calendar_rules: CalendarRules
    capacity: CapacityChecker
    availability: AvailabilityService
    appointments: AppointmentService
    queries: AppointmentQueryService
    recovery: CancellationRecoveryService
    publisher: AppointmentEventPublisher


def build_services(
        settings: Optional[Settings] = None,
        notifier: Optional[Notifier] = None,
        recovery_dispatcher: Optional[RecoveryDispatcher] = None,
        metrics: Optional[MetricsRecomputer] = None,
        clock: Callable[[], datetime] = utcnow,
        notify_customers: bool = True
) -> Services:
    """Build the engine; collaborators default to their Celery-backed implementations"""
    settings = settings or get_settings()
    notifier = notifier or CeleryNotifier()
    recovery_dispatcher = recovery_dispatcher or CeleryRecoveryDispatcher()
    metrics = metrics or CeleryMetricsRecomputer()

    calendar_rules = CalendarRules()
    capacity = CapacityChecker(calendar_rules)
    availability = AvailabilityService(
        calendar_rules,
        capacity,
        slot_step_minutes=settings.SLOT_STEP_MINUTES,
        suggestion_days=settings.SUGGESTION_DAYS,
        suggestion_limit=settings.SUGGESTION_LIMIT,
        clock=clock,
    )
    recovery = CancellationRecoveryService(
        availability,
        notifier,
        dispatcher=recovery_dispatcher,
        enabled=settings.RECOVERY_ENABLED,
        max_attempts=settings.RECOVERY_MAX_ATTEMPTS,
        nudge_delay_hours=settings.RECOVERY_NUDGE_DELAY_HOURS,
        suggestion_days=settings.RECOVERY_SUGGESTION_DAYS,
        suggestion_limit=settings.RECOVERY_SUGGESTION_LIMIT,
        suggestions_per_day=settings.RECOVERY_SUGGESTIONS_PER_DAY,
        slot_step_minutes=settings.RECOVERY_SLOT_STEP_MINUTES,
        clock=clock,
    )

    publisher = AppointmentEventPublisher()
    if notify_customers:
        subscribe_customer_notifications(publisher, notifier)

    appointments = AppointmentService(
        availability,
        capacity,
        BookingLock(timeout_seconds=settings.BOOKING_LOCK_TIMEOUT_SECONDS),
        publisher,
        recovery_service=recovery,
        metrics=metrics,
        clock=clock,
    )

    return Services(
        calendar_rules=calendar_rules,
        capacity=capacity,
        availability=availability,
        appointments=appointments,
        queries=AppointmentQueryService(availability),
        recovery=recovery,
        publisher=publisher,
    )


@lru_cache()
def get_worker_services() -> Services:
    """Worker-side container: recovery messages go straight to Twilio so failures are recorded"""
    settings = get_settings()
    logger.info("Building worker services")
    return build_services(settings, notifier=NotificationService(settings), notify_customers=False)
