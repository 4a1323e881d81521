# expenses/policies.py
"""
Business policy functions for expense reports.

Policies are pure reads returning (bool, reason); commands decide which
error type a refusal becomes.
"""

from accounts.roles import EXPENSE_DECISION_ROLES
from expenses.models import ApprovalStep, ExpenseReport

Status = ExpenseReport.Status
Workflow = ExpenseReport.WorkflowStatus


def is_requester(actor, report: ExpenseReport) -> bool:
    return report.requester_id == actor.user.pk


def can_manage_report(actor, report: ExpenseReport) -> tuple[bool, str]:
    """Requester, or someone who may decide expenses."""
    if is_requester(actor, report) or actor.in_roles(EXPENSE_DECISION_ROLES):
        return True, ""
    return False, "Only the requester or an expense approver may do this."


def can_edit_report(report: ExpenseReport) -> tuple[bool, str]:
    if report.status != Status.PENDING or report.workflow_status != Workflow.DRAFT:
        return False, "Only unsubmitted, pending reports can be edited."
    return True, ""


def can_submit_report(actor, report: ExpenseReport) -> tuple[bool, str]:
    if not is_requester(actor, report):
        return False, "Only the requester can submit this report."
    return True, ""


def can_enter_workflow(report: ExpenseReport) -> tuple[bool, str]:
    if report.workflow_status != Workflow.DRAFT:
        return False, f"Report is already {report.workflow_status}."
    if report.status != Status.PENDING:
        return False, f"Report has already been decided ({report.status})."
    return True, ""


def can_act_on_step(actor, step: ApprovalStep) -> tuple[bool, str]:
    """
    The actor must hold the step's role or an elevated one. A pre-assigned
    step is further limited to its assignee, unless the actor is elevated.
    """
    if actor.is_elevated:
        return True, ""
    if not actor.has_role(step.role):
        return False, f"Step {step.step_order} requires role {step.role}."
    if step.assigned_user_id and step.assigned_user_id != actor.user.pk:
        return False, f"Step {step.step_order} is assigned to another approver."
    return True, ""


def can_decide_directly(report: ExpenseReport, decision: str) -> tuple[bool, str]:
    """
    The single-step path: unsubmitted pending reports may be approved,
    rejected or paid outright; approved reports may be marked paid.
    """
    if report.status == Status.APPROVED and decision == Status.PAID:
        return True, ""
    if report.status != Status.PENDING:
        return False, f"Report has already been processed ({report.status})."
    if report.workflow_status != Workflow.DRAFT:
        return False, "Report is in the approval workflow; decide it step by step."
    return True, ""


def can_delete_report(report: ExpenseReport) -> tuple[bool, str]:
    if report.status not in (Status.PENDING, Status.REJECTED):
        return False, f"A {report.status} report cannot be deleted."
    return True, ""
