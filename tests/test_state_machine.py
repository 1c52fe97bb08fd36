"""Tests for the appointment status transition table"""
import uuid
from datetime import date, datetime, time, timezone

import pytest

from app.core.exceptions import InvalidTransition
from app.models import Appointment
from app.models.enums import Actor, AppointmentStatus, TERMINAL_STATUSES
from app.services.appointment.state_machine import TRANSITIONS, apply_transition, can_transition

NOW = datetime(2030, 1, 7, 8, 0, tzinfo=timezone.utc)


def _appointment(status):
    return Appointment(
        id=uuid.uuid4(),
        business_id=uuid.uuid4(),
        status=status,
        scheduled_date=date(2030, 1, 9),
        scheduled_time=time(10, 0),
        scheduled_end_time=time(11, 0),
    )


def test_table_covers_every_status():
    assert set(TRANSITIONS) == set(AppointmentStatus)
    for targets in TRANSITIONS.values():
        assert targets <= set(AppointmentStatus)


def test_terminal_statuses_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert TRANSITIONS[status] == frozenset()


@pytest.mark.parametrize("current", list(AppointmentStatus))
@pytest.mark.parametrize("target", list(AppointmentStatus))
def test_apply_transition_follows_the_table(current, target):
    appointment = _appointment(current)

    if can_transition(current, target):
        history = apply_transition(appointment, target, Actor.COMPANY, NOW)
        assert appointment.status == target
        assert history.previous_status == current
        assert history.new_status == target
    else:
        with pytest.raises(InvalidTransition):
            apply_transition(appointment, target, Actor.COMPANY, NOW)
        assert appointment.status == current


def test_cancellation_stamps_reason_and_actor():
    appointment = _appointment(AppointmentStatus.CONFIRMED)

    history = apply_transition(appointment, AppointmentStatus.CANCELLED, Actor.CUSTOMER, NOW, reason="Moving away")

    assert appointment.cancelled_at == NOW
    assert appointment.cancellation_reason == "Moving away"
    assert appointment.cancelled_by == "customer"
    assert history.actor == "customer"
    assert history.reason == "Moving away"


def test_arrival_stamps_arrived_and_started():
    appointment = _appointment(AppointmentStatus.CONFIRMED)

    apply_transition(appointment, AppointmentStatus.IN_SERVICE, Actor.COMPANY, NOW)

    assert appointment.arrived_at == NOW
    assert appointment.started_at == NOW


def test_pending_cannot_skip_to_service_or_no_show():
    assert not can_transition(AppointmentStatus.PENDING, AppointmentStatus.IN_SERVICE)
    assert not can_transition(AppointmentStatus.PENDING, AppointmentStatus.NO_SHOW)
    assert not can_transition(AppointmentStatus.IN_SERVICE, AppointmentStatus.CANCELLED)
