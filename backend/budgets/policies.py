# budgets/policies.py
"""
Business policy functions for budgets.

Policies are pure reads returning (bool, reason); commands decide which
error type a refusal becomes.
"""

from budgets.models import Budget, BudgetChange, BudgetExecution
from expenses.models import ExpenseReport


def can_edit_budget(budget: Budget) -> tuple[bool, str]:
    """
    Rules:
    - Only DRAFT or SUBMITTED budgets may change
    - No item may have spending recorded against it
    """
    if budget.status not in Budget.EDITABLE_STATUSES:
        return False, f"A {budget.status} budget cannot be edited."

    if BudgetExecution.objects.filter(budget_item__budget=budget, used_amount__gt=0).exists():
        return False, "Budget items already have spending recorded."

    if ExpenseReport.objects.filter(
        budget_item__budget=budget,
        status__in=ExpenseReport.USED_STATUSES,
    ).exists():
        return False, "Budget items are referenced by approved or paid expenses."

    return True, ""


def can_replace_items(budget: Budget) -> tuple[bool, str]:
    if ExpenseReport.objects.filter(budget_item__budget=budget).exists():
        return False, "Items referenced by expense reports cannot be replaced."
    return True, ""


def can_submit_budget(budget: Budget) -> tuple[bool, str]:
    if budget.status != Budget.Status.DRAFT:
        return False, f"Only DRAFT budgets can be submitted (budget is {budget.status})."
    return True, ""


def can_decide_budget(budget: Budget) -> tuple[bool, str]:
    if budget.status not in (Budget.Status.DRAFT, Budget.Status.SUBMITTED):
        return False, f"Budget has already been decided ({budget.status})."
    return True, ""


def can_request_change(budget: Budget) -> tuple[bool, str]:
    if budget.status != Budget.Status.ACTIVE:
        return False, "Changes can only be requested against an ACTIVE budget."
    return True, ""


def can_decide_change(change: BudgetChange) -> tuple[bool, str]:
    if change.status != BudgetChange.Status.PENDING:
        return False, f"Budget change has already been processed ({change.status})."
    return True, ""
