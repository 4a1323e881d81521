"""
Celery tasks for notification delivery.

Tasks:
- deliver_notification: mark a stored notification delivered, emailing the
  recipient first when NOTIFICATIONS_EMAIL is on

Usage:
    from notifications.tasks import deliver_notification
    deliver_notification.delay(notification.pk)
"""
import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def deliver_notification(self, notification_id: int) -> dict:
    """
    Deliver one notification.

    Args:
        notification_id: Notification primary key

    Returns:
        Dict describing what happened
    """
    from notifications.models import Notification

    notification = Notification.objects.select_related("recipient").filter(pk=notification_id).first()
    if notification is None:
        logger.error(f"Notification {notification_id} not found")
        return {"status": "missing", "notification_id": notification_id}

    if notification.delivered_at is not None:
        return {"status": "already_delivered", "notification_id": notification_id}

    if getattr(settings, "NOTIFICATIONS_EMAIL", False) and notification.recipient.email:
        send_mail(
            notification.title,
            notification.message,
            settings.DEFAULT_FROM_EMAIL,
            [notification.recipient.email],
        )

    notification.delivered_at = timezone.now()
    notification.save(update_fields=["delivered_at"])
    logger.info(
        "Notification delivered",
        extra={
            "notification_id": notification.pk,
            "recipient_id": notification.recipient_id,
            "notification_type": notification.notification_type,
        },
    )
    return {"status": "delivered", "notification_id": notification_id}
