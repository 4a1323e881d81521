# expenses/commands.py
"""
Command layer for expense reports.

Every transition runs in one database transaction together with the
recompute of the affected budget item. Decisions that depend on the
remaining budget lock the item's execution row before reading it, so two
approvals on the same item serialize instead of both passing the check.

Notifications are queued on the passed ``notifier`` and only go out after
the transaction commits.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, require_member, require_role
from accounts.models import Membership
from accounts.roles import ELEVATED_APPROVER_ROLES, EXPENSE_DECISION_ROLES, MANAGER_ROLES, STEP_ROLES
from budgets.execution import check_item_for_expense, get_church_item, recompute
from common import errors
from common.commands import CommandResult
from common.money import to_money
from expenses.models import ApprovalStep, ExpenseReport
from expenses.policies import (
    can_act_on_step,
    can_decide_directly,
    can_delete_report,
    can_edit_report,
    can_enter_workflow,
    can_manage_report,
    can_submit_report,
)
from expenses.workflow import TOTAL_STEPS, build_steps, notify_requester, notify_step_approvers
from notifications.models import Notification
from notifications.service import NotificationQueue
from ops import metrics

logger = logging.getLogger(__name__)

Status = ExpenseReport.Status
Workflow = ExpenseReport.WorkflowStatus


def _clean_amount(amount):
    """(Decimal, None) or (None, ValidationError)."""
    try:
        amount = to_money(amount)
    except (InvalidOperation, ValueError, TypeError):
        return None, errors.ValidationError("Amount must be a number.")
    if amount <= Decimal("0"):
        return None, errors.ValidationError("Amount must be positive.", amount=amount)
    return amount, None


def _clean_assignments(church, assignments) -> tuple[dict, errors.LedgerError]:
    """
    Map step order -> user id. Each assignee must be an active member who
    holds the step's role or an elevated one.
    """
    if not assignments:
        return {}, None
    cleaned = {}
    for step, user_id in dict(assignments).items():
        try:
            step = int(step)
        except (TypeError, ValueError):
            return None, errors.ValidationError(f"Unknown approval step: {step!r}.")
        if not 1 <= step <= TOTAL_STEPS:
            return None, errors.ValidationError(f"Approval steps run from 1 to {TOTAL_STEPS}.", step=step)
        if user_id is None:
            continue
        role = (
            Membership.objects.live()
            .filter(church=church, user_id=user_id)
            .values_list("role", flat=True)
            .first()
        )
        if role is None:
            return None, errors.ValidationError(
                "Assigned approver is not an active member of this church.",
                step=step,
                user_id=user_id,
            )
        if role != STEP_ROLES[step] and role not in ELEVATED_APPROVER_ROLES:
            return None, errors.ValidationError(
                f"Step {step} must be assigned to a {STEP_ROLES[step]}.",
                step=step,
                user_id=user_id,
                role=role,
            )
        cleaned[step] = user_id
    return cleaned, None


def _get_report(actor: ActorContext, expense_id: int, lock: bool = True) -> ExpenseReport:
    reports = ExpenseReport.objects.filter(church=actor.church, pk=expense_id)
    if lock:
        reports = reports.select_for_update()
    return reports.first()


def _final_budget_check(report: ExpenseReport):
    """Re-validate the report against its item under lock; error or None."""
    if not report.budget_item_id:
        return None
    check = check_item_for_expense(
        report.budget_item,
        report.amount,
        exclude_expense_id=report.pk,
        lock=True,
    )
    if not check.is_valid:
        return check.to_error()
    return None


# =============================================================================
# Report Commands
# =============================================================================

@transaction.atomic
def create_expense(
    actor: ActorContext,
    title: str,
    amount,
    category: str,
    budget_item_id: int = None,
    description: str = "",
    receipt_url: str = "",
    approver_assignments: dict = None,
) -> CommandResult:
    """
    Create a PENDING report in DRAFT workflow with its three approval steps.

    Args:
        actor: The requester
        title: Short description of the spend
        amount: Positive amount
        category: One of ExpenseReport.Category
        budget_item_id: Item to charge; must currently have room for amount
        approver_assignments: Optional {step_order: user_id} pre-assignments

    Returns:
        CommandResult with the created ExpenseReport or error
    """
    require_member(actor)

    if not (title or "").strip():
        return CommandResult.fail(errors.ValidationError("Title is required."))
    amount, problem = _clean_amount(amount)
    if problem:
        return CommandResult.fail(problem)
    if category not in ExpenseReport.Category.values:
        return CommandResult.fail(errors.ValidationError(f"Unknown category: {category!r}."))

    assignments, problem = _clean_assignments(actor.church, approver_assignments)
    if problem:
        return CommandResult.fail(problem)

    item = None
    if budget_item_id is not None:
        try:
            item = get_church_item(actor.church, budget_item_id)
        except errors.NotFoundError as e:
            return CommandResult.fail(e)
        check = check_item_for_expense(item, amount, lock=True)
        if not check.is_valid:
            logger.info(
                "Expense refused by budget check",
                extra={"church_id": actor.church_id, "budget_item_id": item.pk, "amount": str(amount)},
            )
            return CommandResult.fail(check.to_error())

    report = ExpenseReport.objects.create(
        church=actor.church,
        requester=actor.user,
        title=title.strip(),
        description=description or "",
        amount=amount,
        category=category,
        receipt_url=receipt_url or "",
        budget_item=item,
        status=Status.PENDING,
        workflow_status=Workflow.DRAFT,
        current_step=0,
        total_steps=TOTAL_STEPS,
    )
    build_steps(report, assignments)
    if item is not None:
        recompute(item.pk)

    metrics.record_expense_transition("created")
    logger.info(
        "Expense created",
        extra={
            "church_id": actor.church_id,
            "expense_id": report.pk,
            "budget_item_id": item.pk if item else None,
            "amount": str(amount),
        },
    )
    return CommandResult.ok(report)


@transaction.atomic
def update_expense(actor: ActorContext, expense_id: int, **updates) -> CommandResult:
    """
    Edit a report before it enters the approval chain.

    Allowed fields: title, description, amount, category, receipt_url,
    budget_item_id. A new amount or item is checked against the item's
    remaining budget, not counting this report.
    """
    require_member(actor)

    allowed_fields = {"title", "description", "amount", "category", "receipt_url", "budget_item_id"}
    unknown = set(updates) - allowed_fields
    if unknown:
        return CommandResult.fail(errors.ValidationError(
            f"Cannot update fields: {', '.join(sorted(unknown))}",
        ))

    report = _get_report(actor, expense_id)
    if report is None:
        return CommandResult.fail(errors.NotFoundError("Expense report not found.", expense_id=expense_id))

    allowed, reason = can_manage_report(actor, report)
    if not allowed:
        return CommandResult.fail(errors.ForbiddenError(reason))
    allowed, reason = can_edit_report(report)
    if not allowed:
        return CommandResult.fail(errors.BusinessRuleViolation(reason, expense_id=report.pk))

    if "title" in updates:
        if not (updates["title"] or "").strip():
            return CommandResult.fail(errors.ValidationError("Title is required."))
        report.title = updates["title"].strip()
    if "category" in updates:
        if updates["category"] not in ExpenseReport.Category.values:
            return CommandResult.fail(errors.ValidationError(f"Unknown category: {updates['category']!r}."))
        report.category = updates["category"]
    for field in ("description", "receipt_url"):
        if field in updates:
            setattr(report, field, updates[field] or "")

    old_item_id = report.budget_item_id
    if "amount" in updates:
        amount, problem = _clean_amount(updates["amount"])
        if problem:
            return CommandResult.fail(problem)
        report.amount = amount
    if "budget_item_id" in updates:
        new_item_id = updates["budget_item_id"]
        try:
            report.budget_item = get_church_item(actor.church, new_item_id) if new_item_id else None
        except errors.NotFoundError as e:
            return CommandResult.fail(e)

    if report.budget_item_id and ("amount" in updates or report.budget_item_id != old_item_id):
        check = check_item_for_expense(report.budget_item, report.amount, exclude_expense_id=report.pk, lock=True)
        if not check.is_valid:
            return CommandResult.fail(check.to_error())

    report.save()
    for item_id in {old_item_id, report.budget_item_id} - {None}:
        recompute(item_id)

    logger.info(
        "Expense updated",
        extra={"church_id": actor.church_id, "expense_id": report.pk, "fields": sorted(updates)},
    )
    return CommandResult.ok(report)


@transaction.atomic
def submit_expense(actor: ActorContext, expense_id: int, notifier=None) -> CommandResult:
    """DRAFT -> IN_PROGRESS at step 1; step-1 approvers are notified."""
    require_member(actor)
    notifier = notifier or NotificationQueue()

    report = _get_report(actor, expense_id)
    if report is None:
        return CommandResult.fail(errors.NotFoundError("Expense report not found.", expense_id=expense_id))

    allowed, reason = can_submit_report(actor, report)
    if not allowed:
        return CommandResult.fail(errors.ForbiddenError(reason))
    allowed, reason = can_enter_workflow(report)
    if not allowed:
        return CommandResult.fail(errors.BusinessRuleViolation(reason, expense_id=report.pk))

    report.workflow_status = Workflow.IN_PROGRESS
    report.current_step = 1
    report.status = Status.PENDING
    report.save(update_fields=["workflow_status", "current_step", "status", "updated_at"])

    first_step = report.approval_steps.get(step_order=1)
    notify_step_approvers(notifier, report, first_step)

    metrics.record_expense_transition("submitted")
    logger.info("Expense submitted", extra={"church_id": actor.church_id, "expense_id": report.pk})
    return CommandResult.ok(report)


@transaction.atomic
def approve_workflow_step(
    actor: ActorContext,
    expense_id: int,
    action: str,
    comment: str = "",
    step_order: int = None,
    notifier=None,
) -> CommandResult:
    """
    Approve or reject the report's current approval step.

    REJECT at any step ends the workflow. APPROVE advances to the next
    step, or at the last step re-checks the budget item (under lock, not
    counting this report) and marks the report APPROVED. A failed final
    check leaves everything as it was.

    Args:
        actor: The approver
        expense_id: Report to act on
        action: APPROVE or REJECT
        comment: Optional note stored on the step
        step_order: When given, must equal the report's current step
        notifier: Notification queue (defaults to NotificationQueue())
    """
    require_member(actor)
    notifier = notifier or NotificationQueue()

    if action not in ("APPROVE", "REJECT"):
        return CommandResult.fail(errors.ValidationError("Action must be APPROVE or REJECT."))

    report = _get_report(actor, expense_id)
    if report is None:
        return CommandResult.fail(errors.NotFoundError("Expense report not found.", expense_id=expense_id))

    if report.workflow_status != Workflow.IN_PROGRESS:
        return CommandResult.fail(errors.BusinessRuleViolation(
            f"Report is not in the approval workflow ({report.workflow_status}).",
            expense_id=report.pk,
        ))
    if step_order is not None and step_order != report.current_step:
        return CommandResult.fail(errors.BusinessRuleViolation(
            f"Report is at step {report.current_step}, not step {step_order}.",
            expense_id=report.pk,
            current_step=report.current_step,
        ))

    step = (
        ApprovalStep.objects.select_for_update()
        .filter(expense_report=report, step_order=report.current_step, status=ApprovalStep.Status.PENDING)
        .first()
    )
    if step is None:
        return CommandResult.fail(errors.ConflictError(
            f"No pending approval at step {report.current_step}.",
            expense_id=report.pk,
        ))

    allowed, reason = can_act_on_step(actor, step)
    if not allowed:
        return CommandResult.fail(errors.ForbiddenError(reason, expense_id=report.pk, step=step.step_order))

    now = timezone.now()
    is_final = step.step_order >= report.total_steps

    if action == "APPROVE" and is_final:
        problem = _final_budget_check(report)
        if problem:
            logger.info(
                "Final approval refused by budget check",
                extra={"church_id": actor.church_id, "expense_id": report.pk},
            )
            return CommandResult.fail(problem)

    step.status = ApprovalStep.Status.APPROVED if action == "APPROVE" else ApprovalStep.Status.REJECTED
    step.approver = actor.user
    step.comment = comment or ""
    step.processed_at = now
    step.save()

    if action == "REJECT":
        report.workflow_status = Workflow.REJECTED
        report.status = Status.REJECTED
        report.rejected_date = now
        report.rejection_reason = comment or ""
        report.save()
        if report.budget_item_id:
            recompute(report.budget_item_id)
        notify_requester(notifier, report, Notification.Type.EXPENSE_REJECTED)
        transition = "rejected"
    elif not is_final:
        report.current_step += 1
        report.save(update_fields=["current_step", "updated_at"])
        next_step = report.approval_steps.get(step_order=report.current_step)
        notify_step_approvers(notifier, report, next_step)
        transition = "step_approved"
    else:
        report.workflow_status = Workflow.APPROVED
        report.status = Status.APPROVED
        report.approved_date = now
        report.save()
        if report.budget_item_id:
            recompute(report.budget_item_id)
        notify_requester(notifier, report, Notification.Type.EXPENSE_APPROVED)
        transition = "approved"

    metrics.record_expense_transition(transition)
    logger.info(
        "Expense approval step processed",
        extra={
            "church_id": actor.church_id,
            "expense_id": report.pk,
            "step": step.step_order,
            "action": action,
            "transition": transition,
        },
    )
    return CommandResult.ok(report)


@transaction.atomic
def approve_expense(
    actor: ActorContext,
    expense_id: int,
    decision: str,
    rejection_reason: str = "",
    notifier=None,
) -> CommandResult:
    """
    Decide a report outside the approval chain.

    Unsubmitted PENDING reports may be APPROVED, REJECTED or PAID outright;
    APPROVED reports may be marked PAID. Moving a pending report to
    APPROVED or PAID re-checks its budget item first.
    """
    require_role(actor, MANAGER_ROLES)
    require_role(actor, EXPENSE_DECISION_ROLES)
    notifier = notifier or NotificationQueue()

    if decision not in (Status.APPROVED, Status.REJECTED, Status.PAID):
        return CommandResult.fail(errors.ValidationError("Decision must be APPROVED, REJECTED or PAID."))

    report = _get_report(actor, expense_id)
    if report is None:
        return CommandResult.fail(errors.NotFoundError("Expense report not found.", expense_id=expense_id))

    allowed, reason = can_decide_directly(report, decision)
    if not allowed:
        return CommandResult.fail(errors.ConflictError(reason, expense_id=report.pk))

    now = timezone.now()
    if decision == Status.REJECTED:
        report.status = Status.REJECTED
        report.workflow_status = Workflow.REJECTED
        report.rejected_date = now
        report.rejection_reason = rejection_reason or ""
        notification_type = Notification.Type.EXPENSE_REJECTED
    else:
        if report.status == Status.PENDING:
            problem = _final_budget_check(report)
            if problem:
                return CommandResult.fail(problem)
            report.approved_date = now
        report.status = decision
        report.workflow_status = Workflow.APPROVED
        notification_type = (
            Notification.Type.EXPENSE_PAID if decision == Status.PAID else Notification.Type.EXPENSE_APPROVED
        )
    report.save()

    if report.budget_item_id:
        recompute(report.budget_item_id)
    notify_requester(notifier, report, notification_type)

    metrics.record_expense_transition(decision.lower())
    logger.info(
        "Expense decided",
        extra={"church_id": actor.church_id, "expense_id": report.pk, "decision": decision},
    )
    return CommandResult.ok(report)


@transaction.atomic
def delete_expense(actor: ActorContext, expense_id: int) -> CommandResult:
    """Delete a PENDING or REJECTED report and free its budget."""
    require_member(actor)

    report = _get_report(actor, expense_id)
    if report is None:
        return CommandResult.fail(errors.NotFoundError("Expense report not found.", expense_id=expense_id))

    allowed, reason = can_manage_report(actor, report)
    if not allowed:
        return CommandResult.fail(errors.ForbiddenError(reason))
    allowed, reason = can_delete_report(report)
    if not allowed:
        return CommandResult.fail(errors.BusinessRuleViolation(reason, expense_id=report.pk))

    report_id, item_id = report.pk, report.budget_item_id
    report.delete()
    if item_id:
        recompute(item_id)

    metrics.record_expense_transition("deleted")
    logger.info("Expense deleted", extra={"church_id": actor.church_id, "expense_id": report_id})
    return CommandResult.ok({"id": report_id})
