# budgets/execution.py
"""
Budget execution: the used / pending / remaining figures of a BudgetItem.

Figures are always re-derived from expense reports rather than adjusted
by deltas:

    used      = sum(amount) of reports APPROVED or PAID
    pending   = sum(amount) of reports PENDING
    remaining = item.amount - used - pending
    rate      = used / item.amount * 100   (0 when the item is empty)

``recompute`` is called after every expense decision and every applied
budget change. ``check_item_for_expense`` is the sufficiency test used when
an expense is created and again when it is finally approved.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db.models import Q, Sum
from django.utils import timezone

from budgets.models import Budget, BudgetExecution, BudgetItem
from common import errors
from common.money import ZERO, percent_of, to_money
from expenses.models import ExpenseReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionFigures:
    total_budget: Decimal
    used_amount: Decimal
    pending_amount: Decimal
    remaining_amount: Decimal
    execution_rate: Decimal

    def as_dict(self) -> dict:
        return asdict(self)


def compute_figures(total_budget, used, pending) -> ExecutionFigures:
    total_budget = to_money(total_budget)
    used = to_money(used)
    pending = to_money(pending)
    return ExecutionFigures(
        total_budget=total_budget,
        used_amount=used,
        pending_amount=pending,
        remaining_amount=total_budget - used - pending,
        execution_rate=percent_of(used, total_budget),
    )


def committed_amounts(budget_item_id: int, exclude_expense_id: int = None) -> tuple[Decimal, Decimal]:
    """(used, pending) for an item, optionally ignoring one report."""
    reports = ExpenseReport.objects.filter(budget_item_id=budget_item_id)
    if exclude_expense_id is not None:
        reports = reports.exclude(pk=exclude_expense_id)
    totals = reports.aggregate(
        used=Sum("amount", filter=Q(status__in=ExpenseReport.USED_STATUSES)),
        pending=Sum("amount", filter=Q(status__in=ExpenseReport.PENDING_STATUSES)),
    )
    return to_money(totals["used"]), to_money(totals["pending"])


def lock_execution(budget_item_id: int) -> Optional[BudgetExecution]:
    """Row-lock the item's execution for the rest of the transaction."""
    return BudgetExecution.objects.select_for_update().filter(budget_item_id=budget_item_id).first()


def recompute(budget_item_id: int) -> Optional[BudgetExecution]:
    """
    Re-derive one item's execution row from its expense reports.

    Must run inside the caller's transaction. Creates the execution row if
    it is somehow missing; returns None when the item itself is gone.
    """
    item = BudgetItem.objects.filter(pk=budget_item_id).first()
    if item is None:
        logger.warning("Recompute skipped; budget item missing", extra={"budget_item_id": budget_item_id})
        return None

    execution = lock_execution(item.pk)
    used, pending = committed_amounts(item.pk)
    figures = compute_figures(item.amount, used, pending)

    if execution is None:
        logger.warning("Budget execution row missing; recreating", extra={"budget_item_id": item.pk})
        return BudgetExecution.objects.create(budget_item=item, **figures.as_dict())

    for field, value in figures.as_dict().items():
        setattr(execution, field, value)
    execution.save()
    logger.debug(
        "Budget execution recomputed",
        extra={"budget_item_id": item.pk, **{k: str(v) for k, v in figures.as_dict().items()}},
    )
    return execution


def seed_execution(item: BudgetItem) -> BudgetExecution:
    """Fresh execution for a new item: nothing used, everything remaining."""
    return BudgetExecution.objects.create(budget_item=item, **compute_figures(item.amount, ZERO, ZERO).as_dict())


# =============================================================================
# Sufficiency checks
# =============================================================================

@dataclass(frozen=True)
class BudgetCheck:
    is_valid: bool
    budget_item_id: int
    request_amount: Decimal
    total_budget: Decimal = ZERO
    used_amount: Decimal = ZERO
    pending_amount: Decimal = ZERO
    remaining_amount: Decimal = ZERO
    exceed_amount: Decimal = ZERO
    error: str = ""

    def as_dict(self) -> dict:
        return asdict(self)

    def to_error(self) -> errors.BusinessRuleViolation:
        return errors.BusinessRuleViolation(
            self.error,
            budget_item_id=self.budget_item_id,
            request_amount=self.request_amount,
            remaining_amount=self.remaining_amount,
            exceed_amount=self.exceed_amount,
        )


def get_church_item(church, budget_item_id: int) -> BudgetItem:
    try:
        return BudgetItem.objects.select_related("budget").get(
            pk=budget_item_id,
            budget__church=church,
        )
    except BudgetItem.DoesNotExist:
        raise errors.NotFoundError("Budget item not found.", budget_item_id=budget_item_id)


def check_item_for_expense(
    item: BudgetItem,
    amount,
    exclude_expense_id: int = None,
    today: date = None,
    lock: bool = False,
) -> BudgetCheck:
    """
    Can ``amount`` still be spent from ``item``?

    The item's budget must be ACTIVE and ``today`` inside its period, and
    the remaining amount (excluding ``exclude_expense_id``) must cover the
    request. With ``lock=True`` the item's execution row is locked first so
    concurrent decisions on the same item serialize.
    """
    amount = to_money(amount)
    today = today or timezone.localdate()
    budget = item.budget

    if budget.status != Budget.Status.ACTIVE:
        return BudgetCheck(
            is_valid=False,
            budget_item_id=item.pk,
            request_amount=amount,
            error="The budget for this item is not active.",
        )
    if not (budget.start_date <= today <= budget.end_date):
        return BudgetCheck(
            is_valid=False,
            budget_item_id=item.pk,
            request_amount=amount,
            error="Today is outside the budget period.",
        )

    if lock:
        lock_execution(item.pk)

    used, pending = committed_amounts(item.pk, exclude_expense_id=exclude_expense_id)
    figures = compute_figures(item.amount, used, pending)
    remaining = figures.remaining_amount
    is_valid = remaining >= amount
    exceed = ZERO if is_valid else amount - remaining

    return BudgetCheck(
        is_valid=is_valid,
        budget_item_id=item.pk,
        request_amount=amount,
        total_budget=figures.total_budget,
        used_amount=used,
        pending_amount=pending,
        remaining_amount=remaining,
        exceed_amount=exceed,
        error="" if is_valid else (
            f"Insufficient budget: remaining {remaining}, requested {amount}, exceeds by {exceed}."
        ),
    )
