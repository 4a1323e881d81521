# expenses/models.py
"""
Expense reports and their approval steps.

A report carries two statuses. ``status`` is the accounting view
(PENDING until decided, then APPROVED / REJECTED / PAID) and is what the
budget execution counters read. ``workflow_status`` tracks the three-step
approval chain (DRAFT -> IN_PROGRESS -> APPROVED | REJECTED).
"""

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class ExpenseReport(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"
        PAID = "PAID", "Paid"

    class WorkflowStatus(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        IN_PROGRESS = "IN_PROGRESS", "In progress"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"

    class Category(models.TextChoices):
        OFFICE = "OFFICE", "Office supplies"
        FACILITY = "FACILITY", "Facility"
        EDUCATION = "EDUCATION", "Education"
        MISSION = "MISSION", "Mission"
        WELFARE = "WELFARE", "Welfare"
        EVENT = "EVENT", "Event"
        OTHER = "OTHER", "Other"

    # Statuses that count against a budget item.
    USED_STATUSES = (Status.APPROVED, Status.PAID)
    PENDING_STATUSES = (Status.PENDING,)
    TERMINAL_WORKFLOW = frozenset({WorkflowStatus.APPROVED, WorkflowStatus.REJECTED})

    church = models.ForeignKey("accounts.Church", on_delete=models.CASCADE, related_name="expense_reports")
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="expense_reports",
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    amount = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    category = models.CharField(max_length=10, choices=Category.choices, default=Category.OTHER)
    receipt_url = models.URLField(blank=True, default="")
    budget_item = models.ForeignKey(
        "budgets.BudgetItem",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="expense_reports",
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)
    workflow_status = models.CharField(
        max_length=12,
        choices=WorkflowStatus.choices,
        default=WorkflowStatus.DRAFT,
        db_index=True,
    )
    current_step = models.PositiveSmallIntegerField(default=0)
    total_steps = models.PositiveSmallIntegerField(default=3)
    request_date = models.DateTimeField(auto_now_add=True)
    approved_date = models.DateTimeField(null=True, blank=True)
    rejected_date = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-request_date", "-id"]
        indexes = [
            models.Index(fields=["budget_item", "status"], name="expense_item_status_idx"),
        ]

    def __str__(self):
        return f"{self.title} {self.amount} ({self.status})"

    @property
    def is_workflow_terminal(self) -> bool:
        return self.workflow_status in self.TERMINAL_WORKFLOW


class ApprovalStep(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"

    expense_report = models.ForeignKey(ExpenseReport, on_delete=models.CASCADE, related_name="approval_steps")
    step_order = models.PositiveSmallIntegerField()
    role = models.CharField(max_length=32)
    label = models.CharField(max_length=100, blank=True, default="")
    assigned_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="assigned_approval_steps",
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    approver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="processed_approval_steps",
    )
    comment = models.TextField(blank=True, default="")
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["expense_report", "step_order"]
        constraints = [
            models.UniqueConstraint(fields=["expense_report", "step_order"], name="uniq_step_per_report"),
        ]

    def __str__(self):
        return f"Step {self.step_order} {self.role} ({self.status})"
