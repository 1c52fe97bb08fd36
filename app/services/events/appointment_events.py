# ===== app/services/events/appointment_events.py =====
"""Appointment domain events, published to subscribers after the status write commits"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List
from uuid import UUID
import logging

from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

APPOINTMENT_CREATED = "appointment.created"
APPOINTMENT_CONFIRMED = "appointment.confirmed"
APPOINTMENT_CANCELLED = "appointment.cancelled"
APPOINTMENT_RESCHEDULED = "appointment.rescheduled"
APPOINTMENT_IN_SERVICE = "appointment.in_service"
APPOINTMENT_COMPLETED = "appointment.completed"
APPOINTMENT_NO_SHOW = "appointment.no_show"


@dataclass
class AppointmentEvent:
    name: str
    business_id: UUID
    appointment_id: UUID
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)


Subscriber = Callable[[AppointmentEvent], None]


class AppointmentEventPublisher:
    """
    In-process fan-out. A failing subscriber is logged and skipped, so a
    broken side effect never undoes or blocks a committed status change.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = {}

    def subscribe(self, event_name: str, subscriber: Subscriber):
        self._subscribers.setdefault(event_name, []).append(subscriber)

    def publish(self, event: AppointmentEvent):
        subscribers = self._subscribers.get(event.name, [])
        logger.info(
            f"Event {event.name} for appointment {event.appointment_id} "
            f"({len(subscribers)} subscriber(s))"
        )
        for subscriber in subscribers:
            try:
                subscriber(event)
            except Exception as e:
                logger.error(
                    f"Subscriber {getattr(subscriber, '__name__', subscriber)!r} failed on {event.name}: {e}",
                    exc_info=True
                )
