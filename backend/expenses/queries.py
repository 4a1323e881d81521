# expenses/queries.py
"""Read-side expense queries."""

from dataclasses import dataclass
from typing import Optional

from django.db.models import F, Q

from accounts.authz import ActorContext, require_member
from budgets.execution import check_item_for_expense, get_church_item
from common import errors
from common.money import ZERO, to_money
from expenses.models import ApprovalStep, ExpenseReport


def in_church(church) -> Q:
    return Q(church=church)


def with_status(status: str) -> Q:
    return Q(status=status)


def with_workflow_status(workflow_status: str) -> Q:
    return Q(workflow_status=workflow_status)


def of_category(category: str) -> Q:
    return Q(category=category)


def charged_to(budget_item_id: int) -> Q:
    return Q(budget_item_id=budget_item_id)


def requested_by(user_id: int) -> Q:
    return Q(requester_id=user_id)


def matching_expense(search: str) -> Q:
    return Q(title__icontains=search) | Q(description__icontains=search)


@dataclass
class ExpenseFilter:
    status: Optional[str] = None
    workflow_status: Optional[str] = None
    category: Optional[str] = None
    budget_item_id: Optional[int] = None
    requester_id: Optional[int] = None
    search: Optional[str] = None

    def to_q(self, church) -> Q:
        q = in_church(church)
        if self.status:
            q &= with_status(self.status)
        if self.workflow_status:
            q &= with_workflow_status(self.workflow_status)
        if self.category:
            q &= of_category(self.category)
        if self.budget_item_id:
            q &= charged_to(self.budget_item_id)
        if self.requester_id:
            q &= requested_by(self.requester_id)
        if self.search:
            q &= matching_expense(self.search)
        return q


def _reports():
    return (
        ExpenseReport.objects
        .select_related("requester", "budget_item__budget")
        .prefetch_related("approval_steps")
    )


def list_expenses(actor: ActorContext, filters: ExpenseFilter = None):
    require_member(actor)
    filters = filters or ExpenseFilter()
    return _reports().filter(filters.to_q(actor.church))


def get_expense(actor: ActorContext, expense_id: int) -> ExpenseReport:
    require_member(actor)
    try:
        return _reports().get(church=actor.church, pk=expense_id)
    except ExpenseReport.DoesNotExist:
        raise errors.NotFoundError("Expense report not found.", expense_id=expense_id)


def validate_budget_expense(
    actor: ActorContext,
    budget_item_id: int,
    amount,
    exclude_expense_id: int = None,
) -> dict:
    """
    Would an expense of ``amount`` be accepted against the item today?

    Uses the same check as creation and final approval.
    """
    require_member(actor)
    amount = to_money(amount)
    if amount < ZERO:
        raise errors.ValidationError("Amount must not be negative.")
    item = get_church_item(actor.church, budget_item_id)
    return check_item_for_expense(item, amount, exclude_expense_id=exclude_expense_id).as_dict()


def pending_approvals(actor: ActorContext):
    """
    Reports waiting on a step the actor may act on.

    Elevated roles see every report in the workflow; everyone else sees
    current steps for their role that are unassigned or assigned to them.
    """
    require_member(actor)

    steps = ApprovalStep.objects.filter(
        expense_report__church=actor.church,
        expense_report__workflow_status=ExpenseReport.WorkflowStatus.IN_PROGRESS,
        status=ApprovalStep.Status.PENDING,
        step_order=F("expense_report__current_step"),
    )
    if not actor.is_elevated:
        steps = steps.filter(
            Q(role=actor.role),
            Q(assigned_user_id=actor.user_id) | Q(assigned_user__isnull=True),
        )
    return _reports().filter(pk__in=steps.values("expense_report_id")).order_by("request_date", "id")
