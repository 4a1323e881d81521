# accounting/models.py
"""
Chart of accounts and the transaction journal.

AccountCode rows with ``church=None`` are the shared, global chart every
church sees; a church may add its own accounts alongside them. A
Transaction moves one amount from a credit account to a debit account and
is never edited after it is posted.
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from common.lifecycle import LifecycleMixin


class AccountCode(LifecycleMixin):
    """
    Chart of Accounts entry.

    Codes look like ``1``, ``1-01``, ``1-01-02``, ``1-01-02-03``: the
    leading digit encodes the account type and each ``-NN`` segment is one
    level deeper. ``level`` and ``order`` are derived from the code and
    stored so trees and reports sort without parsing.
    """

    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Asset"
        LIABILITY = "LIABILITY", "Liability"
        EQUITY = "EQUITY", "Equity"
        REVENUE = "REVENUE", "Revenue"
        EXPENSE = "EXPENSE", "Expense"

    TYPE_BY_LEADING_DIGIT = {
        "1": AccountType.ASSET,
        "2": AccountType.LIABILITY,
        "3": AccountType.EQUITY,
        "4": AccountType.REVENUE,
        "5": AccountType.EXPENSE,
    }

    # Balance grows with debits for these; with credits for the rest.
    DEBIT_NORMAL_TYPES = frozenset({AccountType.ASSET, AccountType.EXPENSE})

    church = models.ForeignKey(
        "accounts.Church",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="account_codes",
    )
    code = models.CharField(max_length=20)
    name = models.CharField(max_length=200)
    english_name = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, default="")
    account_type = models.CharField(max_length=10, choices=AccountType.choices)
    level = models.PositiveSmallIntegerField()
    order = models.PositiveIntegerField(db_index=True)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )
    allow_transaction = models.BooleanField(default=True)
    is_system = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["order", "code"]
        constraints = [
            models.UniqueConstraint(
                fields=["church", "code"],
                name="uniq_account_code_per_church",
            ),
            models.UniqueConstraint(
                fields=["code"],
                condition=models.Q(church__isnull=True),
                name="uniq_global_account_code",
            ),
        ]
        indexes = [
            models.Index(fields=["church", "account_type", "level"], name="account_church_type_level_idx"),
        ]

    def __str__(self):
        return f"{self.code} {self.name}"

    @property
    def is_global(self) -> bool:
        return self.church_id is None

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type in self.DEBIT_NORMAL_TYPES


class Transaction(models.Model):
    """
    One double-entry posting: ``amount`` is debited to ``debit_account``
    and credited to ``credit_account``.
    """

    church = models.ForeignKey(
        "accounts.Church",
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    debit_account = models.ForeignKey(
        AccountCode,
        on_delete=models.PROTECT,
        related_name="debit_transactions",
    )
    credit_account = models.ForeignKey(
        AccountCode,
        on_delete=models.PROTECT,
        related_name="credit_transactions",
    )
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    transaction_date = models.DateField(db_index=True)
    description = models.CharField(max_length=500)
    reference = models.CharField(max_length=100, blank=True, default="")
    voucher_number = models.CharField(max_length=50, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="posted_transactions",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["transaction_date", "created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(debit_account=models.F("credit_account")),
                name="transaction_accounts_differ",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="transaction_amount_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["church", "transaction_date"], name="txn_church_date_idx"),
        ]

    def __str__(self):
        return f"{self.transaction_date} {self.debit_account.code}/{self.credit_account.code} {self.amount}"
