# budgets/models.py
"""
Department budgets and their execution counters.

A Budget covers one department for one period (year, optional quarter or
month) and is split into BudgetItems whose amounts sum to the budget
total. Each item has exactly one BudgetExecution row holding the derived
used / pending / remaining figures; those are only ever written by
budgets.execution.recompute.
"""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Budget(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        SUBMITTED = "SUBMITTED", "Submitted"
        ACTIVE = "ACTIVE", "Active"
        REJECTED = "REJECTED", "Rejected"

    # Budgets in these states may still be edited.
    EDITABLE_STATUSES = frozenset({Status.DRAFT, Status.SUBMITTED})

    church = models.ForeignKey("accounts.Church", on_delete=models.CASCADE, related_name="budgets")
    department = models.ForeignKey("accounts.Department", on_delete=models.PROTECT, related_name="budgets")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    year = models.PositiveSmallIntegerField(validators=[MinValueValidator(2020), MaxValueValidator(2050)])
    quarter = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(4)],
    )
    month = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    start_date = models.DateField()
    end_date = models.DateField()
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT, db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_budgets",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="approved_budgets",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    decision_reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-year", "-created_at"]
        indexes = [
            models.Index(fields=["church", "department", "year"], name="budget_church_dept_year_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.year})"

    @property
    def period_key(self):
        return (self.church_id, self.department_id, self.year, self.quarter, self.month)


class BudgetItem(models.Model):
    class Category(models.TextChoices):
        PERSONNEL = "PERSONNEL", "Personnel"
        OPERATIONS = "OPERATIONS", "Operations"
        MINISTRY = "MINISTRY", "Ministry"
        MISSION = "MISSION", "Mission"
        EDUCATION = "EDUCATION", "Education"
        WELFARE = "WELFARE", "Welfare"
        FACILITIES = "FACILITIES", "Facilities"
        MANAGEMENT = "MANAGEMENT", "Management"
        EVENT = "EVENT", "Event"
        OTHER = "OTHER", "Other"

    budget = models.ForeignKey(Budget, on_delete=models.CASCADE, related_name="items")
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50)
    amount = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    category = models.CharField(max_length=12, choices=Category.choices)
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code", "id"]

    def __str__(self):
        return f"{self.code} {self.name}"


class BudgetExecution(models.Model):
    """Derived counters: total_budget == used + pending + remaining."""

    budget_item = models.OneToOneField(BudgetItem, on_delete=models.CASCADE, related_name="execution")
    total_budget = models.DecimalField(max_digits=14, decimal_places=2)
    used_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    pending_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    remaining_amount = models.DecimalField(max_digits=14, decimal_places=2)
    execution_rate = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.budget_item} {self.used_amount}/{self.total_budget}"


class BudgetChange(models.Model):
    class ChangeType(models.TextChoices):
        TRANSFER = "TRANSFER", "Transfer"
        INCREASE = "INCREASE", "Increase"
        DECREASE = "DECREASE", "Decrease"

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"

    budget = models.ForeignKey(Budget, on_delete=models.CASCADE, related_name="changes")
    change_type = models.CharField(max_length=10, choices=ChangeType.choices)
    amount = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    from_item = models.ForeignKey(
        BudgetItem,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="outgoing_changes",
    )
    to_item = models.ForeignKey(
        BudgetItem,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="incoming_changes",
    )
    reason = models.TextField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="requested_budget_changes",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="decided_budget_changes",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    decision_reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.change_type} {self.amount} ({self.status})"
