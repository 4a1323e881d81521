# notifications/service.py
"""
Notification queue.

Commands call ``enqueue`` while their transaction is still open. Nothing
happens until that transaction commits: then the Notification row is
written and delivery is handed to Celery (or run inline when
NOTIFICATIONS_ASYNC is off). A failure here is logged and never reaches
the command that asked for the notification.

The queue is an ordinary object; construct one where you need it, or pass
a different implementation into commands through their ``notifier``
argument.
"""

import logging
from typing import Iterable

from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)


class NotificationQueue:
    def __init__(self, async_delivery: bool = None):
        if async_delivery is None:
            async_delivery = getattr(settings, "NOTIFICATIONS_ASYNC", True)
        self.async_delivery = async_delivery

    def enqueue(self, recipient_id, notification_type: str, title: str, message: str, related_id=None):
        payload = {
            "recipient_id": recipient_id,
            "notification_type": notification_type,
            "title": title,
            "message": message,
            "related_id": "" if related_id is None else str(related_id),
        }
        transaction.on_commit(lambda: self._dispatch(payload))

    def enqueue_many(self, recipient_ids: Iterable, notification_type: str, title: str, message: str, related_id=None):
        for recipient_id in dict.fromkeys(recipient_ids):
            self.enqueue(recipient_id, notification_type, title, message, related_id)

    def _dispatch(self, payload: dict):
        from notifications.models import Notification
        from notifications.tasks import deliver_notification

        try:
            notification = Notification.objects.create(**payload)
            if self.async_delivery:
                deliver_notification.delay(notification.pk)
            else:
                deliver_notification(notification.pk)
        except Exception:
            logger.exception(
                "Notification dispatch failed",
                extra={
                    "recipient_id": payload["recipient_id"],
                    "notification_type": payload["notification_type"],
                    "related_id": payload["related_id"],
                },
            )
