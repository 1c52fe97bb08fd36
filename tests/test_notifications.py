"""Tests for appointment events and customer messaging"""
import uuid
from unittest.mock import MagicMock

import pytest
from twilio.base.exceptions import TwilioException

from app.config.settings import Settings
from app.services.events.appointment_events import (
    APPOINTMENT_CANCELLED, APPOINTMENT_CONFIRMED, AppointmentEvent, AppointmentEventPublisher,
)
from app.services.notification.notification_service import (
    NotificationError, NotificationService, subscribe_customer_notifications,
)


def _event(name, **payload):
    return AppointmentEvent(name=name, business_id=uuid.uuid4(), appointment_id=uuid.uuid4(), payload=payload)


def test_failing_subscriber_does_not_stop_the_others():
    publisher = AppointmentEventPublisher()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    publisher.subscribe(APPOINTMENT_CONFIRMED, broken)
    publisher.subscribe(APPOINTMENT_CONFIRMED, received.append)

    publisher.publish(_event(APPOINTMENT_CONFIRMED))

    assert len(received) == 1


def test_customer_messages_use_the_event_payload(notifier):
    publisher = AppointmentEventPublisher()
    subscribe_customer_notifications(publisher, notifier)

    publisher.publish(_event(
        APPOINTMENT_CONFIRMED,
        customer_phone="+5511988887777",
        customer_name="Ana",
        pet_name=None,
        service_name="Bath",
        scheduled_date="2030-01-09",
        scheduled_time="10:00",
    ))

    assert notifier.sent == [("+5511988887777", "Your Bath for your pet on 2030-01-09 at 10:00 is confirmed.")]


def test_events_without_template_or_phone_send_nothing(notifier):
    publisher = AppointmentEventPublisher()
    subscribe_customer_notifications(publisher, notifier)

    publisher.publish(_event(APPOINTMENT_CANCELLED, customer_phone="+5511988887777"))
    publisher.publish(_event(APPOINTMENT_CONFIRMED, customer_phone=None, service_name="Bath"))

    assert notifier.sent == []


def test_confirmation_message_is_sent_once_both_parties_confirm(db, services, business, booked, notifier):
    services.appointments.confirm(db, business.id, booked.id, "customer")
    assert not any("confirmed" in m for _, m in notifier.sent)

    services.appointments.confirm(db, business.id, booked.id, "company")
    assert sum("is confirmed" in m for _, m in notifier.sent) == 1


def test_twilio_send_returns_message_sid():
    client = MagicMock()
    client.messages.create.return_value.sid = "SM123"
    service = NotificationService(Settings(TWILIO_FROM_NUMBER="+15550000000"), client=client)

    assert service.send("+5511988887777", "hello") == "SM123"
    client.messages.create.assert_called_once_with(to="+5511988887777", from_="+15550000000", body="hello")


def test_twilio_errors_become_notification_errors():
    client = MagicMock()
    client.messages.create.side_effect = TwilioException("invalid number")
    service = NotificationService(Settings(), client=client)

    with pytest.raises(NotificationError):
        service.send("+5511988887777", "hello")


def test_send_without_credentials_or_recipient_fails():
    with pytest.raises(NotificationError):
        NotificationService(Settings(TWILIO_ACCOUNT_SID="")).send("+5511988887777", "hello")

    with pytest.raises(NotificationError):
        NotificationService(Settings(), client=MagicMock()).send("", "hello")
