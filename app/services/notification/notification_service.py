# ============================================================================
# app/services/notification/notification_service.py
# ============================================================================
"""Customer messaging collaborators (Twilio SMS, or queued through Celery)"""
from typing import Optional, Protocol

from twilio.base.exceptions import TwilioException
from twilio.rest import Client
import logging

from app.config.settings import Settings
from app.services.events.appointment_events import (
    APPOINTMENT_CONFIRMED, APPOINTMENT_CREATED, APPOINTMENT_RESCHEDULED, AppointmentEventPublisher,
)
from app.utils.my_logging import correlation_id_var

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Message could not be handed to the provider"""


class Notifier(Protocol):
    def send(self, recipient: str, message: str) -> Optional[str]:
        ...


class NotificationService:
    """Sends SMS through Twilio; raises NotificationError when delivery fails"""

    def __init__(self, settings: Settings, client: Optional[Client] = None):
        self.from_phone = settings.TWILIO_FROM_NUMBER
        if client is not None:
            self.client = client
        elif settings.TWILIO_ACCOUNT_SID:
            self.client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        else:
            self.client = None

    def send(self, recipient: str, message: str) -> Optional[str]:
        """Send SMS message via Twilio, returns the message SID"""
        if not self.client:
            raise NotificationError("Twilio client not initialized")
        if not recipient:
            raise NotificationError("Recipient phone number is missing")

        try:
            twilio_message = self.client.messages.create(
                to=recipient,
                from_=self.from_phone,
                body=message
            )
        except TwilioException as e:
            logger.error(f"Twilio error sending SMS to {recipient}: {str(e)}")
            raise NotificationError(str(e)) from e

        logger.info(f"SMS sent successfully to {recipient}: {twilio_message.sid}")
        return twilio_message.sid


class CeleryNotifier:
    """Queues the send on a worker; fire-and-forget with task-level retries"""

    def send(self, recipient: str, message: str) -> Optional[str]:
        from app.tasks.notification_tasks import send_customer_message

        result = send_customer_message.delay(
            to_phone=recipient,
            message_body=message,
            correlation_id=correlation_id_var.get(),
        )
        logger.info(f"Queued customer message to {recipient}: task {result.id}")
        return result.id


CUSTOMER_MESSAGES = {
    APPOINTMENT_CREATED: "Hi {customer_name}! We received your booking for {service_name} ({pet_name}) "
                         "on {scheduled_date} at {scheduled_time}. We will confirm it shortly.",
    APPOINTMENT_CONFIRMED: "Your {service_name} for {pet_name} on {scheduled_date} at {scheduled_time} is confirmed.",
    APPOINTMENT_RESCHEDULED: "Your {service_name} for {pet_name} was moved to {scheduled_date} at {scheduled_time}.",
}


def subscribe_customer_notifications(publisher: AppointmentEventPublisher, notifier: Notifier):
    """Send a short customer message for booking, confirmation and reschedule events"""

    def notify_customer(event):
        template = CUSTOMER_MESSAGES.get(event.name)
        phone = event.payload.get("customer_phone")
        if not template or not phone:
            return
        values = dict(event.payload)
        values["customer_name"] = values.get("customer_name") or "there"
        values["pet_name"] = values.get("pet_name") or "your pet"
        notifier.send(phone, template.format(**values))

    for event_name in CUSTOMER_MESSAGES:
        publisher.subscribe(event_name, notify_customer)
