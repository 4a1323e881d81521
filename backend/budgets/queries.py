# budgets/queries.py
"""Read-side budget queries: lists, balance checks and summaries."""

from dataclasses import dataclass
from typing import Optional

from django.db.models import Q
from django.utils import timezone

from accounts.authz import ActorContext, require_member
from accounts.models import Department
from budgets.execution import committed_amounts, compute_figures, get_church_item
from budgets.models import Budget, BudgetExecution, BudgetItem
from common import errors
from common.money import ZERO, percent_of, to_money


# =============================================================================
# Predicates
# =============================================================================

def in_church(church) -> Q:
    return Q(church=church)


def for_department(department_id: int) -> Q:
    return Q(department_id=department_id)


def for_year(year: int) -> Q:
    return Q(year=year)


def for_quarter(quarter: int) -> Q:
    return Q(quarter=quarter)


def with_status(status: str) -> Q:
    return Q(status=status)


def matching_budget(search: str) -> Q:
    return Q(name__icontains=search) | Q(description__icontains=search)


@dataclass
class BudgetFilter:
    department_id: Optional[int] = None
    year: Optional[int] = None
    quarter: Optional[int] = None
    status: Optional[str] = None
    search: Optional[str] = None

    def to_q(self, church) -> Q:
        q = in_church(church)
        if self.department_id:
            q &= for_department(self.department_id)
        if self.year:
            q &= for_year(self.year)
        if self.quarter:
            q &= for_quarter(self.quarter)
        if self.status:
            q &= with_status(self.status)
        if self.search:
            q &= matching_budget(self.search)
        return q


def list_budgets(actor: ActorContext, filters: BudgetFilter = None):
    require_member(actor)
    filters = filters or BudgetFilter()
    return (
        Budget.objects.filter(filters.to_q(actor.church))
        .select_related("department", "created_by", "approved_by")
        .prefetch_related("items__execution")
    )


def get_budget(actor: ActorContext, budget_id: int) -> Budget:
    require_member(actor)
    try:
        return (
            Budget.objects.select_related("department", "created_by", "approved_by")
            .prefetch_related("items__execution", "changes")
            .get(church=actor.church, pk=budget_id)
        )
    except Budget.DoesNotExist:
        raise errors.NotFoundError("Budget not found.", budget_id=budget_id)


def check_balance(actor: ActorContext, budget_item_id: int, request_amount) -> dict:
    """
    Would ``request_amount`` fit in the item right now?

    Figures come from the expense reports themselves, so the answer does
    not depend on the execution row being current.
    """
    require_member(actor)
    item = get_church_item(actor.church, budget_item_id)
    request_amount = to_money(request_amount)
    if request_amount < ZERO:
        raise errors.ValidationError("Request amount must not be negative.")

    used, pending = committed_amounts(item.pk)
    figures = compute_figures(item.amount, used, pending)
    can_approve = figures.remaining_amount >= request_amount

    return {
        "budget_item_id": item.pk,
        "budget_item_name": item.name,
        "budget_name": item.budget.name,
        "budget_status": item.budget.status,
        "total_budget": figures.total_budget,
        "used_amount": figures.used_amount,
        "pending_amount": figures.pending_amount,
        "remaining_amount": figures.remaining_amount,
        "request_amount": request_amount,
        "can_approve": can_approve,
        "would_exceed": not can_approve,
        "exceed_amount": ZERO if can_approve else request_amount - figures.remaining_amount,
        "execution_rate": figures.execution_rate,
        "projected_rate": percent_of(used + pending + request_amount, figures.total_budget),
    }


def department_summary(actor: ActorContext, department_id: int, year: int, quarter: int = None) -> dict:
    """Active budgets of one department for a year, with summed execution."""
    require_member(actor)
    department = Department.objects.filter(church=actor.church, pk=department_id).first()
    if department is None:
        raise errors.NotFoundError("Department not found.", department_id=department_id)

    filters = BudgetFilter(department_id=department_id, year=year, quarter=quarter, status=Budget.Status.ACTIVE)
    budgets = list(list_budgets(actor, filters))

    total = used = pending = remaining = ZERO
    for budget in budgets:
        total += budget.total_amount
        for item in budget.items.all():
            execution = getattr(item, "execution", None)
            if execution is None:
                continue
            used += execution.used_amount
            pending += execution.pending_amount
            remaining += execution.remaining_amount

    return {
        "department": {"id": department.pk, "name": department.name},
        "budgets": budgets,
        "summary": {
            "total_budget": total,
            "used_amount": used,
            "pending_amount": pending,
            "remaining_amount": remaining,
            "execution_rate": percent_of(used, total),
        },
    }


def available_items(actor: ActorContext, department_id: int = None, category: str = None, min_amount=0):
    """Items of active, in-period budgets with at least ``min_amount`` remaining."""
    require_member(actor)
    today = timezone.localdate()
    items = BudgetItem.objects.filter(
        budget__church=actor.church,
        budget__status=Budget.Status.ACTIVE,
        budget__start_date__lte=today,
        budget__end_date__gte=today,
        execution__remaining_amount__gte=to_money(min_amount),
    )
    if department_id:
        items = items.filter(budget__department_id=department_id)
    if category:
        items = items.filter(category=category)
    return items.select_related("budget", "budget__department", "execution").order_by(
        "-budget__year", "budget__department_id", "name"
    )


def execution_overview(actor: ActorContext, department_id: int = None, year: int = None):
    require_member(actor)
    executions = BudgetExecution.objects.filter(budget_item__budget__church=actor.church)
    if department_id:
        executions = executions.filter(budget_item__budget__department_id=department_id)
    if year:
        executions = executions.filter(budget_item__budget__year=year)
    return executions.select_related("budget_item", "budget_item__budget").order_by(
        "-budget_item__budget__year", "budget_item__code"
    )
