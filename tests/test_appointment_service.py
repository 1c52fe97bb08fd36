"""Tests for booking, confirmation, cancellation, rescheduling, payment and review"""
import uuid
from datetime import time, timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import AvailabilityConflict, InvalidTransition, NotFound, ValidationError
from app.models import AppointmentStatusHistory, CancellationRecovery
from app.models.enums import AppointmentStatus


def _confirm_both(db, services, business, appointment):
    services.appointments.confirm(db, business.id, appointment.id, "customer")
    return services.appointments.confirm(db, business.id, appointment.id, "company")


def _history(db, appointment):
    return db.query(AppointmentStatusHistory).filter(
        AppointmentStatusHistory.appointment_id == appointment.id
    ).all()


# =============================================================================
# Create
# =============================================================================

def test_create_snapshots_service_and_starts_pending(db, booked, notifier):
    assert booked.status == AppointmentStatus.PENDING
    assert booked.service_name == "Bath"
    assert booked.duration_minutes == 60
    assert booked.price == Decimal("50.00")
    assert booked.scheduled_end_time == time(11, 0)
    assert booked.confirmed_by_customer is False
    assert booked.confirmed_by_company is False

    history = _history(db, booked)
    assert len(history) == 1
    assert history[0].previous_status is None
    assert history[0].new_status == AppointmentStatus.PENDING

    # Booking acknowledgement goes to the customer
    assert notifier.sent[0][0] == "+5511988887777"
    assert "Rex" in notifier.sent[0][1]


def test_create_on_full_slot_raises_with_suggestions(db, services, business, booked, make_request):
    with pytest.raises(AvailabilityConflict) as exc_info:
        services.appointments.create(db, business.id, make_request(customer_ref="cust-2"))

    assert exc_info.value.reason == "capacity"
    assert [s.time() for s in exc_info.value.suggestions] == [time(9, 0), time(11, 0)]


def test_create_with_unknown_service_raises(db, services, business, window, make_request):
    with pytest.raises(NotFound):
        services.appointments.create(db, business.id, make_request(service_id=uuid.uuid4()))


def test_create_for_unknown_business_raises(db, services, window, make_request):
    with pytest.raises(NotFound):
        services.appointments.create(db, uuid.uuid4(), make_request())


def test_create_in_the_past_is_rejected(db, services, business, window, make_request, booking_day):
    with pytest.raises(ValidationError):
        services.appointments.create(db, business.id, make_request(day=booking_day - timedelta(days=3)))


def test_create_respects_minimum_advance(db, services, business, window, make_request):
    business.booking_settings = {"min_advance_hours": 72}
    db.commit()

    with pytest.raises(ValidationError):
        services.appointments.create(db, business.id, make_request())


def test_create_respects_maximum_advance(db, services, business, window, make_request):
    business.booking_settings = {"max_advance_days": 1}
    db.commit()

    with pytest.raises(ValidationError):
        services.appointments.create(db, business.id, make_request())


def test_zero_maximum_advance_is_not_replaced_by_default(db, services, business, window, make_request):
    business.booking_settings = {"max_advance_days": 0, "min_advance_hours": None}
    db.commit()

    assert business.booking_setting("max_advance_days", 30) == 0
    assert business.booking_setting("min_advance_hours", 2) == 2
    with pytest.raises(ValidationError) as exc_info:
        services.appointments.create(db, business.id, make_request())
    assert exc_info.value.field == "scheduled_date"


def test_create_uses_pet_size_tier_when_no_fixed_price(db, services, business, service, window, make_request):
    service.price = None
    service.price_large = Decimal("80.00")
    db.commit()

    appointment = services.appointments.create(db, business.id, make_request(pet_size="large"))

    assert appointment.price == Decimal("80.00")


# =============================================================================
# Confirmation
# =============================================================================

def test_confirmation_needs_both_parties(db, services, business, booked):
    appointment = services.appointments.confirm(db, business.id, booked.id, "customer")
    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.confirmed_by_customer is True

    appointment = services.appointments.confirm(db, business.id, booked.id, "company")
    assert appointment.status == AppointmentStatus.CONFIRMED
    assert appointment.confirmed_at is not None
    assert len(_history(db, booked)) == 2


def test_repeated_confirmation_is_a_noop(db, services, business, booked):
    services.appointments.confirm(db, business.id, booked.id, "customer")
    appointment = services.appointments.confirm(db, business.id, booked.id, "customer")

    assert appointment.status == AppointmentStatus.PENDING
    assert len(_history(db, booked)) == 1


def test_confirming_a_cancelled_appointment_fails(db, services, business, booked):
    services.appointments.cancel(db, business.id, booked.id, actor="company")

    with pytest.raises(InvalidTransition):
        services.appointments.confirm(db, business.id, booked.id, "customer")


def test_update_status_confirmed_counts_as_company_confirmation(db, services, business, booked):
    appointment = services.appointments.update_status(db, business.id, booked.id, AppointmentStatus.CONFIRMED)

    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.confirmed_by_company is True


def test_update_status_to_pending_is_invalid(db, services, business, booked):
    with pytest.raises(InvalidTransition):
        services.appointments.update_status(db, business.id, booked.id, AppointmentStatus.PENDING)


# =============================================================================
# Cancellation
# =============================================================================

def test_cancel_releases_capacity_and_starts_recovery(db, services, business, booked, booking_day, dispatcher):
    appointment = services.appointments.cancel(db, business.id, booked.id, reason="Sick pet")

    assert appointment.status == AppointmentStatus.CANCELLED
    assert appointment.cancellation_reason == "Sick pet"
    assert appointment.cancelled_by == "customer"
    assert services.capacity.remaining_capacity(db, business.id, booking_day, time(10, 0), 60) == 1
    assert len(dispatcher.dispatched) == 2


def test_system_cancellation_does_not_start_recovery(db, services, business, booked, dispatcher):
    services.appointments.cancel(db, business.id, booked.id, actor="system")

    assert db.query(CancellationRecovery).count() == 0
    assert dispatcher.dispatched == []


def test_cancelling_twice_fails(db, services, business, booked):
    services.appointments.cancel(db, business.id, booked.id)

    with pytest.raises(InvalidTransition):
        services.appointments.cancel(db, business.id, booked.id)


def test_customer_cancellation_needs_notice(db, services, business, booked):
    business.booking_settings = {"cancellation_notice_hours": 72}
    db.commit()

    with pytest.raises(ValidationError):
        services.appointments.cancel(db, business.id, booked.id, actor="customer")

    # The business itself may always cancel
    appointment = services.appointments.cancel(db, business.id, booked.id, actor="company")
    assert appointment.status == AppointmentStatus.CANCELLED


def test_customer_cancellation_can_be_disabled(db, services, business, booked):
    business.booking_settings = {"allow_cancellation": False}
    db.commit()

    with pytest.raises(ValidationError):
        services.appointments.cancel(db, business.id, booked.id)


# =============================================================================
# Reschedule
# =============================================================================

def test_reschedule_moves_and_keeps_status(db, services, business, booked, booking_day):
    _confirm_both(db, services, business, booked)

    appointment = services.appointments.reschedule(db, business.id, booked.id, booking_day, time(11, 0))

    assert appointment.scheduled_time == time(11, 0)
    assert appointment.scheduled_end_time == time(12, 0)
    assert appointment.status == AppointmentStatus.CONFIRMED
    assert appointment.rescheduled_at is not None


def test_reschedule_may_overlap_its_own_slot(db, services, business, booked, booking_day):
    appointment = services.appointments.reschedule(db, business.id, booked.id, booking_day, time(10, 30))

    assert appointment.scheduled_time == time(10, 30)


def test_reschedule_into_full_slot_raises(db, services, business, booked, booking_day, make_request):
    services.appointments.create(db, business.id, make_request(at=time(9, 0), customer_ref="cust-2"))

    with pytest.raises(AvailabilityConflict) as exc_info:
        services.appointments.reschedule(db, business.id, booked.id, booking_day, time(9, 0))

    assert exc_info.value.reason == "capacity"
    assert services.appointments.get(db, business.id, booked.id).scheduled_time == time(10, 0)


def test_reschedule_out_of_hours_raises(db, services, business, booked, booking_day):
    with pytest.raises(AvailabilityConflict) as exc_info:
        services.appointments.reschedule(db, business.id, booked.id, booking_day, time(13, 0))

    assert exc_info.value.reason == "out_of_hours"


def test_cancelled_appointment_cannot_be_rescheduled(db, services, business, booked, booking_day):
    services.appointments.cancel(db, business.id, booked.id)

    with pytest.raises(InvalidTransition):
        services.appointments.reschedule(db, business.id, booked.id, booking_day, time(11, 0))


# =============================================================================
# Service day
# =============================================================================

def test_full_lifecycle_to_completed(db, services, business, booked, metrics):
    _confirm_both(db, services, business, booked)
    services.appointments.register_arrival(db, business.id, booked.id)
    appointment = services.appointments.complete(db, business.id, booked.id)

    assert appointment.status == AppointmentStatus.COMPLETED
    assert appointment.arrived_at is not None
    assert appointment.completed_at is not None
    assert metrics.calls == [(business.id, "cust-1")]
    assert [h.new_status for h in _history(db, booked)].count(AppointmentStatus.COMPLETED) == 1


def test_arrival_requires_confirmation(db, services, business, booked):
    with pytest.raises(InvalidTransition):
        services.appointments.register_arrival(db, business.id, booked.id)


def test_no_show_from_confirmed(db, services, business, booked, booking_day):
    _confirm_both(db, services, business, booked)

    appointment = services.appointments.mark_no_show(db, business.id, booked.id)

    assert appointment.status == AppointmentStatus.NO_SHOW
    assert appointment.no_show_at is not None
    assert services.capacity.remaining_capacity(db, business.id, booking_day, time(10, 0), 60) == 1


# =============================================================================
# Payment / review
# =============================================================================

def test_register_payment(db, services, business, booked):
    appointment = services.appointments.register_payment(db, business.id, booked.id, Decimal("45.00"), "pix")

    assert appointment.is_paid is True
    assert appointment.amount_paid == Decimal("45.00")
    assert appointment.payment_method == "pix"


def test_payment_after_completion_recomputes_metrics(db, services, business, booked, metrics):
    _confirm_both(db, services, business, booked)
    services.appointments.register_arrival(db, business.id, booked.id)
    services.appointments.complete(db, business.id, booked.id)

    services.appointments.register_payment(db, business.id, booked.id, Decimal("50.00"), "cash")

    assert len(metrics.calls) == 2


def test_payment_rejected_for_cancelled_or_invalid(db, services, business, booked):
    with pytest.raises(ValidationError):
        services.appointments.register_payment(db, business.id, booked.id, Decimal("-1"), "cash")
    with pytest.raises(ValidationError):
        services.appointments.register_payment(db, business.id, booked.id, Decimal("10"), "bitcoin")

    services.appointments.cancel(db, business.id, booked.id)
    with pytest.raises(ValidationError):
        services.appointments.register_payment(db, business.id, booked.id, Decimal("10"), "cash")


def test_review_requires_completed_appointment(db, services, business, booked):
    with pytest.raises(ValidationError):
        services.appointments.add_review(db, business.id, booked.id, 5)


@pytest.mark.parametrize("rating", [0, 6, 4.5, True])
def test_review_rating_must_be_between_one_and_five(db, services, business, booked, rating):
    _confirm_both(db, services, business, booked)
    services.appointments.register_arrival(db, business.id, booked.id)
    services.appointments.complete(db, business.id, booked.id)

    with pytest.raises(ValidationError):
        services.appointments.add_review(db, business.id, booked.id, rating)


def test_review_is_stored(db, services, business, booked):
    _confirm_both(db, services, business, booked)
    services.appointments.register_arrival(db, business.id, booked.id)
    services.appointments.complete(db, business.id, booked.id)

    appointment = services.appointments.add_review(db, business.id, booked.id, 5, "Great cut")

    assert appointment.rating == 5
    assert appointment.review_comment == "Great cut"


def test_other_business_cannot_see_appointment(db, services, booked):
    with pytest.raises(NotFound):
        services.appointments.get(db, uuid.uuid4(), booked.id)
