# ===== app/services/appointment/state_machine.py =====
"""
Appointment status transitions.

TRANSITIONS is the only place that says which status may follow which.
apply_transition mutates the appointment, stamps the matching timestamp and
returns the history row for the caller to add in the same commit.
"""
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from app.core.exceptions import InvalidTransition
from app.models.appointment import Appointment, AppointmentStatusHistory
from app.models.enums import Actor, AppointmentStatus

TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.IN_SERVICE,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.IN_SERVICE: frozenset({
        AppointmentStatus.COMPLETED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in TRANSITIONS.get(AppointmentStatus(current), frozenset())


def _stamp(appointment: Appointment, target: AppointmentStatus, actor: Actor, now: datetime, reason: Optional[str]):
    if target == AppointmentStatus.CONFIRMED:
        appointment.confirmed_at = now
    elif target == AppointmentStatus.IN_SERVICE:
        appointment.arrived_at = appointment.arrived_at or now
        appointment.started_at = now
    elif target == AppointmentStatus.COMPLETED:
        appointment.completed_at = now
    elif target == AppointmentStatus.CANCELLED:
        appointment.cancelled_at = now
        appointment.cancellation_reason = reason
        appointment.cancelled_by = actor.value
    elif target == AppointmentStatus.NO_SHOW:
        appointment.no_show_at = now


def apply_transition(
        appointment: Appointment,
        target: AppointmentStatus,
        actor: Actor,
        now: datetime,
        reason: Optional[str] = None
) -> AppointmentStatusHistory:
    """Move `appointment` to `target` or raise InvalidTransition; nothing is added to the session"""
    current = AppointmentStatus(appointment.status)
    target = AppointmentStatus(target)
    if not can_transition(current, target):
        raise InvalidTransition(current, target)

    appointment.status = target
    _stamp(appointment, target, Actor(actor), now, reason)

    return AppointmentStatusHistory(
        appointment_id=appointment.id,
        business_id=appointment.business_id,
        previous_status=current,
        new_status=target,
        actor=Actor(actor).value,
        reason=reason,
        created_at=now,
    )


def creation_history(appointment: Appointment, actor: Actor, now: datetime) -> AppointmentStatusHistory:
    """History row for a freshly created appointment (no previous status)"""
    return AppointmentStatusHistory(
        appointment_id=appointment.id,
        business_id=appointment.business_id,
        previous_status=None,
        new_status=AppointmentStatus.PENDING,
        actor=Actor(actor).value,
        created_at=now,
    )
