# ===== app/tasks/notification_tasks.py =====
from typing import Optional
import logging

from app.config.celery_config import celery_app
from app.config.settings import get_settings
from app.schemas.task_payloads import SendCustomerMessagePayload
from app.services.notification.notification_service import NotificationService
from app.utils.my_logging import correlation_id_var

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def send_customer_message(
        self,
        to_phone: str,
        message_body: str,
        appointment_id: Optional[str] = None,
        correlation_id: Optional[str] = None
):
    """
    Send a customer SMS queued by the API process

    Args:
        to_phone: Recipient phone number
        message_body: Message content
        appointment_id: Related appointment (optional)
        correlation_id: Correlation ID of the request that queued the message
    """
    payload = SendCustomerMessagePayload(
        to_phone=to_phone,
        message_body=message_body,
        appointment_id=appointment_id,
        correlation_id=correlation_id,
    )
    token = correlation_id_var.set(payload.correlation_id or "-")
    try:
        logger.info(f"Sending customer message to {payload.to_phone}")
        sid = NotificationService(get_settings()).send(payload.to_phone, payload.message_body)
        return {"status": "success", "message_sid": sid}

    except Exception as exc:
        logger.error(f"Failed to send customer message to {payload.to_phone}: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
    finally:
        correlation_id_var.reset(token)
