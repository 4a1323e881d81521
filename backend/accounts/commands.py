# accounts/commands.py
"""
Commands for church structure: departments and their hierarchy.

Departments are mostly read by the ledger (budgets belong to one,
memberships point at one), but the hierarchy is owned here.
"""

import logging

from django.db import transaction

from accounts.authz import ActorContext, require_role
from accounts.models import Department, Membership
from accounts.roles import MANAGER_ROLES
from common.commands import CommandResult
from common import errors

logger = logging.getLogger(__name__)

# Church org charts are shallow; anything deeper is almost certainly a loop.
MAX_DEPARTMENT_DEPTH = 16


def _creates_cycle(department: Department, new_parent: Department) -> bool:
    """Walk up from ``new_parent``; reaching ``department`` means a cycle."""
    visited = set()
    node = new_parent
    depth = 0
    while node is not None:
        if node.pk == department.pk or node.pk in visited:
            return True
        visited.add(node.pk)
        depth += 1
        if depth > MAX_DEPARTMENT_DEPTH:
            return True
        node = node.parent
    return False


@transaction.atomic
def create_department(
    actor: ActorContext,
    name: str,
    parent_id: int = None,
    budget_manager_id: int = None,
) -> CommandResult:
    require_role(actor, MANAGER_ROLES)

    name = (name or "").strip()
    if not name:
        return CommandResult.fail(errors.ValidationError("Department name is required."))

    if Department.objects.filter(church=actor.church, name=name).exists():
        return CommandResult.fail(errors.ConflictError(f"Department '{name}' already exists."))

    parent = None
    if parent_id is not None:
        parent = Department.objects.live().filter(church=actor.church, pk=parent_id).first()
        if parent is None:
            return CommandResult.fail(errors.NotFoundError("Parent department not found."))

    department = Department.objects.create(
        church=actor.church,
        name=name,
        parent=parent,
        budget_manager_id=budget_manager_id,
    )
    logger.info(
        "Department created",
        extra={"church_id": actor.church_id, "department_id": department.pk},
    )
    return CommandResult.ok(department)


@transaction.atomic
def move_department(actor: ActorContext, department_id: int, new_parent_id: int = None) -> CommandResult:
    """
    Reassign a department's parent.

    Args:
        actor: The actor context
        department_id: Department to move
        new_parent_id: New parent, or None to make it a root

    Returns:
        CommandResult with the updated Department, or BusinessRuleViolation
        if the move would create a cycle.
    """
    require_role(actor, MANAGER_ROLES)

    try:
        department = Department.objects.select_for_update().get(church=actor.church, pk=department_id)
    except Department.DoesNotExist:
        return CommandResult.fail(errors.NotFoundError("Department not found."))

    new_parent = None
    if new_parent_id is not None:
        new_parent = Department.objects.filter(church=actor.church, pk=new_parent_id).first()
        if new_parent is None:
            return CommandResult.fail(errors.NotFoundError("Parent department not found."))
        if _creates_cycle(department, new_parent):
            return CommandResult.fail(errors.BusinessRuleViolation(
                "Moving the department there would create a cycle.",
                department_id=department.pk,
                parent_id=new_parent.pk,
            ))

    department.parent = new_parent
    department.save(update_fields=["parent"])
    logger.info(
        "Department moved",
        extra={"church_id": actor.church_id, "department_id": department.pk, "parent_id": new_parent_id},
    )
    return CommandResult.ok(department)


def active_members_with_role(church, role: str):
    """Active memberships in ``church`` holding ``role``, with users loaded."""
    return (
        Membership.objects.live()
        .filter(church=church, role=role, user__is_active=True)
        .select_related("user")
    )
