# expenses/workflow.py
"""
The fixed three-step approval chain and who gets told about it.

    step 1  DEPARTMENT_ACCOUNTANT
    step 2  DEPARTMENT_HEAD
    step 3  COMMITTEE_CHAIR

A step may be pre-assigned to one user; otherwise every active member
holding the step's role is an approver for it.
"""

from accounts.commands import active_members_with_role
from accounts.roles import APPROVAL_CHAIN
from expenses.models import ApprovalStep, ExpenseReport
from notifications.models import Notification

TOTAL_STEPS = len(APPROVAL_CHAIN)


def build_steps(report: ExpenseReport, assignments: dict = None) -> list:
    assignments = assignments or {}
    return ApprovalStep.objects.bulk_create([
        ApprovalStep(
            expense_report=report,
            step_order=order,
            role=role,
            label=label,
            assigned_user_id=assignments.get(order),
        )
        for order, role, label in APPROVAL_CHAIN
    ])


def step_recipients(report: ExpenseReport, step: ApprovalStep) -> list:
    if step.assigned_user_id:
        return [step.assigned_user_id]
    return list(
        active_members_with_role(report.church, step.role).values_list("user_id", flat=True)
    )


def notify_step_approvers(notifier, report: ExpenseReport, step: ApprovalStep):
    notifier.enqueue_many(
        step_recipients(report, step),
        Notification.Type.EXPENSE_APPROVAL_REQUEST,
        "Expense awaiting your approval",
        f"'{report.title}' ({report.amount}) is waiting at step {step.step_order} of {report.total_steps}.",
        report.pk,
    )


_REQUESTER_MESSAGES = {
    Notification.Type.EXPENSE_APPROVED: ("Expense approved", "'{title}' ({amount}) was approved."),
    Notification.Type.EXPENSE_REJECTED: ("Expense rejected", "'{title}' ({amount}) was rejected. {reason}"),
    Notification.Type.EXPENSE_PAID: ("Expense paid", "'{title}' ({amount}) was marked paid."),
}


def notify_requester(notifier, report: ExpenseReport, notification_type: str):
    title, template = _REQUESTER_MESSAGES[notification_type]
    message = template.format(
        title=report.title,
        amount=report.amount,
        reason=report.rejection_reason,
    ).strip()
    notifier.enqueue(report.requester_id, notification_type, title, message, report.pk)
