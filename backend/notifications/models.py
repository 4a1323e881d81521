from django.conf import settings
from django.db import models


class Notification(models.Model):
    class Type(models.TextChoices):
        EXPENSE_APPROVAL_REQUEST = "EXPENSE_APPROVAL_REQUEST", "Expense approval request"
        EXPENSE_APPROVED = "EXPENSE_APPROVED", "Expense approved"
        EXPENSE_REJECTED = "EXPENSE_REJECTED", "Expense rejected"
        EXPENSE_PAID = "EXPENSE_PAID", "Expense paid"

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    notification_type = models.CharField(max_length=40, choices=Type.choices)
    title = models.CharField(max_length=200)
    message = models.TextField()
    related_id = models.CharField(max_length=64, blank=True, default="")
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notification_recipient_idx"),
        ]

    def __str__(self):
        return f"{self.notification_type} -> {self.recipient_id}"
