# budgets/commands.py
"""
Command layer for budgets.

Every command runs in one database transaction: a budget is never visible
without its items, and an item never without its execution row. Rows a
decision depends on are locked with select_for_update before they are read.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, require_member, require_role
from accounts.models import Department
from accounts.roles import MANAGER_ROLES
from budgets.execution import committed_amounts, compute_figures, lock_execution, recompute, seed_execution
from budgets.models import Budget, BudgetChange, BudgetExecution, BudgetItem
from budgets.policies import (
    can_decide_budget,
    can_decide_change,
    can_edit_budget,
    can_replace_items,
    can_request_change,
    can_submit_budget,
)
from common import errors
from common.commands import CommandResult
from common.money import ZERO, to_money, within_tolerance
from ops import metrics

logger = logging.getLogger(__name__)

MIN_YEAR, MAX_YEAR = 2020, 2050
MIN_CHANGE_AMOUNT = Decimal("0.01")


def _clean_items(items) -> tuple[list, errors.LedgerError]:
    """Normalize item dicts; return (items, None) or (None, error)."""
    if not items:
        return None, errors.ValidationError("A budget needs at least one item.")

    cleaned = []
    for index, raw in enumerate(items, start=1):
        name = (raw.get("name") or "").strip()
        code = (raw.get("code") or "").strip()
        category = raw.get("category")
        if not name or not code:
            return None, errors.ValidationError(f"Item {index}: name and code are required.")
        if category not in BudgetItem.Category.values:
            return None, errors.ValidationError(f"Item {index}: unknown category {category!r}.")
        if raw.get("amount") is None:
            return None, errors.ValidationError(f"Item {index}: amount is required.")
        try:
            amount = to_money(raw.get("amount"))
        except (InvalidOperation, ValueError, TypeError):
            return None, errors.ValidationError(f"Item {index}: amount must be a number.")
        if amount < ZERO:
            return None, errors.ValidationError(f"Item {index}: amount must not be negative.")
        cleaned.append({
            "name": name,
            "code": code,
            "category": category,
            "amount": amount,
            "description": raw.get("description") or "",
        })
    return cleaned, None


def _check_period(year, quarter, month, start_date: date, end_date: date):
    if year is None or not (MIN_YEAR <= year <= MAX_YEAR):
        return errors.ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}.")
    if quarter is not None and not (1 <= quarter <= 4):
        return errors.ValidationError("Quarter must be between 1 and 4.")
    if month is not None and not (1 <= month <= 12):
        return errors.ValidationError("Month must be between 1 and 12.")
    if not start_date or not end_date or start_date >= end_date:
        return errors.ValidationError("start_date must be before end_date.")
    return None


def _check_total(items: list, total_amount: Decimal):
    items_total = sum((item["amount"] for item in items), ZERO)
    if not within_tolerance(items_total, total_amount):
        return errors.BusinessRuleViolation(
            "Budget items do not add up to the budget total.",
            items_total=items_total,
            total_amount=total_amount,
            difference=items_total - total_amount,
        )
    return None


def _period_taken(church, department_id, year, quarter, month, exclude_id=None) -> bool:
    existing = Budget.objects.filter(
        church=church,
        department_id=department_id,
        year=year,
        quarter=quarter,
        month=month,
    )
    if exclude_id:
        existing = existing.exclude(pk=exclude_id)
    return existing.exists()


def _create_items(budget: Budget, items: list) -> list:
    created = []
    for data in items:
        item = BudgetItem.objects.create(budget=budget, **data)
        seed_execution(item)
        created.append(item)
    return created


# =============================================================================
# Budget Commands
# =============================================================================

@transaction.atomic
def create_budget(
    actor: ActorContext,
    department_id: int,
    name: str,
    year: int,
    start_date: date,
    end_date: date,
    total_amount,
    items: list,
    quarter: int = None,
    month: int = None,
    description: str = "",
) -> CommandResult:
    """
    Create a DRAFT budget with its items and a seeded execution per item.

    Args:
        actor: The actor context
        department_id: Department the budget belongs to
        name: Budget name
        year, quarter, month: Budget period (one budget per exact tuple)
        start_date, end_date: Spending window
        total_amount: Must equal the sum of item amounts (to the cent)
        items: [{"name", "code", "amount", "category", "description"?}, ...]

    Returns:
        CommandResult with the created Budget or error
    """
    require_role(actor, MANAGER_ROLES)

    if not (name or "").strip():
        return CommandResult.fail(errors.ValidationError("Budget name is required."))

    problem = _check_period(year, quarter, month, start_date, end_date)
    if problem:
        return CommandResult.fail(problem)

    cleaned, problem = _clean_items(items)
    if problem:
        return CommandResult.fail(problem)

    total_amount = to_money(total_amount)
    if total_amount < ZERO:
        return CommandResult.fail(errors.ValidationError("Total amount must not be negative."))

    department = Department.objects.live().filter(church=actor.church, pk=department_id).first()
    if department is None:
        return CommandResult.fail(errors.NotFoundError("Department not found.", department_id=department_id))

    problem = _check_total(cleaned, total_amount)
    if problem:
        return CommandResult.fail(problem)

    if _period_taken(actor.church, department.pk, year, quarter, month):
        return CommandResult.fail(errors.ConflictError(
            "A budget already exists for this department and period.",
            department_id=department.pk,
            year=year,
            quarter=quarter,
            month=month,
        ))

    budget = Budget.objects.create(
        church=actor.church,
        department=department,
        name=name.strip(),
        description=description or "",
        year=year,
        quarter=quarter,
        month=month,
        start_date=start_date,
        end_date=end_date,
        total_amount=total_amount,
        status=Budget.Status.DRAFT,
        created_by=actor.user,
    )
    _create_items(budget, cleaned)

    logger.info(
        "Budget created",
        extra={
            "church_id": actor.church_id,
            "budget_id": budget.pk,
            "department_id": department.pk,
            "total_amount": str(total_amount),
            "items": len(cleaned),
        },
    )
    return CommandResult.ok(budget)


@transaction.atomic
def update_budget(actor: ActorContext, budget_id: int, **updates) -> CommandResult:
    """
    Edit a DRAFT or SUBMITTED budget.

    Allowed fields: name, description, year, quarter, month, start_date,
    end_date, total_amount, items. Passing ``items`` replaces every item
    and its execution row.
    """
    require_role(actor, MANAGER_ROLES)

    allowed_fields = {
        "name", "description", "year", "quarter", "month",
        "start_date", "end_date", "total_amount", "items",
    }
    unknown = set(updates) - allowed_fields
    if unknown:
        return CommandResult.fail(errors.ValidationError(
            f"Cannot update fields: {', '.join(sorted(unknown))}",
        ))

    budget = Budget.objects.select_for_update().filter(church=actor.church, pk=budget_id).first()
    if budget is None:
        return CommandResult.fail(errors.NotFoundError("Budget not found.", budget_id=budget_id))

    allowed, reason = can_edit_budget(budget)
    if not allowed:
        return CommandResult.fail(errors.BusinessRuleViolation(reason, budget_id=budget.pk))

    year = updates.get("year", budget.year)
    quarter = updates.get("quarter", budget.quarter)
    month = updates.get("month", budget.month)
    start_date = updates.get("start_date", budget.start_date)
    end_date = updates.get("end_date", budget.end_date)
    problem = _check_period(year, quarter, month, start_date, end_date)
    if problem:
        return CommandResult.fail(problem)

    if "name" in updates and not (updates["name"] or "").strip():
        return CommandResult.fail(errors.ValidationError("Budget name is required."))

    new_items = None
    if "items" in updates:
        new_items, problem = _clean_items(updates["items"])
        if problem:
            return CommandResult.fail(problem)
        allowed, reason = can_replace_items(budget)
        if not allowed:
            return CommandResult.fail(errors.ConflictError(reason, budget_id=budget.pk))

    total_amount = to_money(updates.get("total_amount", budget.total_amount))
    if total_amount < ZERO:
        return CommandResult.fail(errors.ValidationError("Total amount must not be negative."))
    items_for_total = new_items if new_items is not None else [
        {"amount": item.amount} for item in budget.items.all()
    ]
    problem = _check_total(items_for_total, total_amount)
    if problem:
        return CommandResult.fail(problem)

    if (year, quarter, month) != (budget.year, budget.quarter, budget.month):
        if _period_taken(actor.church, budget.department_id, year, quarter, month, exclude_id=budget.pk):
            return CommandResult.fail(errors.ConflictError(
                "A budget already exists for this department and period.",
            ))

    if new_items is not None:
        BudgetExecution.objects.filter(budget_item__budget=budget).delete()
        budget.items.all().delete()
        _create_items(budget, new_items)

    budget.year, budget.quarter, budget.month = year, quarter, month
    budget.start_date, budget.end_date = start_date, end_date
    budget.total_amount = total_amount
    if "name" in updates:
        budget.name = updates["name"].strip()
    if "description" in updates:
        budget.description = updates["description"] or ""
    budget.save()

    logger.info(
        "Budget updated",
        extra={"church_id": actor.church_id, "budget_id": budget.pk, "fields": sorted(updates)},
    )
    return CommandResult.ok(budget)


@transaction.atomic
def submit_budget(actor: ActorContext, budget_id: int) -> CommandResult:
    """DRAFT -> SUBMITTED."""
    require_role(actor, MANAGER_ROLES)

    budget = Budget.objects.select_for_update().filter(church=actor.church, pk=budget_id).first()
    if budget is None:
        return CommandResult.fail(errors.NotFoundError("Budget not found.", budget_id=budget_id))

    allowed, reason = can_submit_budget(budget)
    if not allowed:
        return CommandResult.fail(errors.ConflictError(reason))

    budget.status = Budget.Status.SUBMITTED
    budget.save(update_fields=["status", "updated_at"])
    logger.info("Budget submitted", extra={"church_id": actor.church_id, "budget_id": budget.pk})
    return CommandResult.ok(budget)


@transaction.atomic
def approve_budget(actor: ActorContext, budget_id: int, decision: str, reason: str = "") -> CommandResult:
    """
    Decide a DRAFT or SUBMITTED budget.

    APPROVED activates the budget; REJECTED records the reason.
    """
    require_role(actor, MANAGER_ROLES)

    if decision not in ("APPROVED", "REJECTED"):
        return CommandResult.fail(errors.ValidationError("Decision must be APPROVED or REJECTED."))

    budget = Budget.objects.select_for_update().filter(church=actor.church, pk=budget_id).first()
    if budget is None:
        return CommandResult.fail(errors.NotFoundError("Budget not found.", budget_id=budget_id))

    allowed, why = can_decide_budget(budget)
    if not allowed:
        return CommandResult.fail(errors.ConflictError(why))

    budget.status = Budget.Status.ACTIVE if decision == "APPROVED" else Budget.Status.REJECTED
    budget.approved_by = actor.user
    budget.approved_at = timezone.now()
    budget.decision_reason = reason or ""
    budget.save()

    logger.info(
        "Budget decided",
        extra={"church_id": actor.church_id, "budget_id": budget.pk, "decision": decision},
    )
    return CommandResult.ok(budget)


# =============================================================================
# Budget Change Commands
# =============================================================================

def _source_shortfall(item: BudgetItem, amount: Decimal):
    """BusinessRuleViolation if ``item`` cannot give up ``amount``, else None."""
    lock_execution(item.pk)
    used, pending = committed_amounts(item.pk)
    remaining = compute_figures(item.amount, used, pending).remaining_amount
    if remaining < amount:
        return errors.BusinessRuleViolation(
            f"Insufficient remaining budget on item {item.code}.",
            budget_item_id=item.pk,
            remaining_amount=remaining,
            request_amount=amount,
            exceed_amount=amount - remaining,
        )
    return None


@transaction.atomic
def request_budget_change(
    actor: ActorContext,
    budget_id: int,
    change_type: str,
    amount,
    reason: str,
    from_item_id: int = None,
    to_item_id: int = None,
) -> CommandResult:
    """
    Record a PENDING TRANSFER, INCREASE or DECREASE. Amounts are untouched
    until the change is approved.

    TRANSFER needs from_item_id and to_item_id (distinct, same budget);
    INCREASE needs to_item_id; DECREASE needs from_item_id. The source item
    must have at least ``amount`` remaining now.
    """
    require_member(actor)

    if change_type not in BudgetChange.ChangeType.values:
        return CommandResult.fail(errors.ValidationError(f"Unknown change type: {change_type}."))
    try:
        amount = to_money(amount)
    except (InvalidOperation, ValueError, TypeError):
        return CommandResult.fail(errors.ValidationError("Amount must be a number."))
    if amount < MIN_CHANGE_AMOUNT:
        return CommandResult.fail(errors.ValidationError("Amount must be at least 0.01."))
    if not (reason or "").strip():
        return CommandResult.fail(errors.ValidationError("A reason is required."))

    needs_source = change_type in (BudgetChange.ChangeType.TRANSFER, BudgetChange.ChangeType.DECREASE)
    needs_target = change_type in (BudgetChange.ChangeType.TRANSFER, BudgetChange.ChangeType.INCREASE)
    if needs_source and not from_item_id:
        return CommandResult.fail(errors.ValidationError(f"{change_type} requires from_item_id."))
    if needs_target and not to_item_id:
        return CommandResult.fail(errors.ValidationError(f"{change_type} requires to_item_id."))
    if change_type == BudgetChange.ChangeType.TRANSFER and from_item_id == to_item_id:
        return CommandResult.fail(errors.ValidationError("Transfer source and target must differ."))

    budget = Budget.objects.select_for_update().filter(church=actor.church, pk=budget_id).first()
    if budget is None:
        return CommandResult.fail(errors.NotFoundError("Budget not found.", budget_id=budget_id))

    allowed, why = can_request_change(budget)
    if not allowed:
        return CommandResult.fail(errors.BusinessRuleViolation(why, budget_id=budget.pk))

    items = {item.pk: item for item in budget.items.all()}
    from_item = items.get(from_item_id) if needs_source else None
    to_item = items.get(to_item_id) if needs_target else None
    if needs_source and from_item is None:
        return CommandResult.fail(errors.NotFoundError("Source item not found on this budget.", item_id=from_item_id))
    if needs_target and to_item is None:
        return CommandResult.fail(errors.NotFoundError("Target item not found on this budget.", item_id=to_item_id))

    if from_item is not None:
        problem = _source_shortfall(from_item, amount)
        if problem:
            return CommandResult.fail(problem)

    change = BudgetChange.objects.create(
        budget=budget,
        change_type=change_type,
        amount=amount,
        from_item=from_item,
        to_item=to_item,
        reason=reason.strip(),
        requested_by=actor.user,
    )
    logger.info(
        "Budget change requested",
        extra={
            "church_id": actor.church_id,
            "budget_id": budget.pk,
            "change_id": change.pk,
            "change_type": change_type,
            "amount": str(amount),
        },
    )
    return CommandResult.ok(change)


@transaction.atomic
def approve_budget_change(actor: ActorContext, change_id: int, decision: str, reason: str = "") -> CommandResult:
    """
    Decide a PENDING budget change.

    REJECTED only stamps the decision. APPROVED moves the amount between
    (or onto / off) items, keeps the budget total equal to the item sum,
    and recomputes every touched item. When
    settings.BUDGET_CHANGE_RECHECK_ON_APPROVAL is on, the source item's
    remaining amount is checked again under lock; a change that no longer
    fits fails without mutating anything.
    """
    require_role(actor, MANAGER_ROLES)

    if decision not in ("APPROVED", "REJECTED"):
        return CommandResult.fail(errors.ValidationError("Decision must be APPROVED or REJECTED."))

    change = (
        BudgetChange.objects.select_for_update()
        .filter(budget__church=actor.church, pk=change_id)
        .first()
    )
    if change is None:
        return CommandResult.fail(errors.NotFoundError("Budget change not found.", change_id=change_id))

    allowed, why = can_decide_change(change)
    if not allowed:
        return CommandResult.fail(errors.ConflictError(why))

    if decision == "APPROVED":
        budget = Budget.objects.select_for_update().get(pk=change.budget_id)
        allowed, why = can_request_change(budget)
        if not allowed:
            return CommandResult.fail(errors.BusinessRuleViolation(why, budget_id=budget.pk))

        item_ids = [i for i in (change.from_item_id, change.to_item_id) if i]
        items = {item.pk: item for item in BudgetItem.objects.select_for_update().filter(pk__in=item_ids)}
        from_item = items.get(change.from_item_id)
        to_item = items.get(change.to_item_id)

        if from_item is not None:
            if settings.BUDGET_CHANGE_RECHECK_ON_APPROVAL:
                problem = _source_shortfall(from_item, change.amount)
                if problem:
                    logger.info(
                        "Budget change no longer fits source item",
                        extra={"church_id": actor.church_id, "change_id": change.pk},
                    )
                    return CommandResult.fail(problem)
            if from_item.amount < change.amount:
                return CommandResult.fail(errors.BusinessRuleViolation(
                    f"Item {from_item.code} is smaller than the change amount.",
                    budget_item_id=from_item.pk,
                    item_amount=from_item.amount,
                    request_amount=change.amount,
                ))

        if from_item is not None:
            from_item.amount -= change.amount
            from_item.save(update_fields=["amount"])
        if to_item is not None:
            to_item.amount += change.amount
            to_item.save(update_fields=["amount"])
        if change.change_type == BudgetChange.ChangeType.INCREASE:
            budget.total_amount += change.amount
            budget.save(update_fields=["total_amount", "updated_at"])
        elif change.change_type == BudgetChange.ChangeType.DECREASE:
            budget.total_amount -= change.amount
            budget.save(update_fields=["total_amount", "updated_at"])

        for item_id in item_ids:
            recompute(item_id)
        metrics.record_budget_change_applied(change.change_type)

    change.status = decision
    change.approved_by = actor.user
    change.approved_at = timezone.now()
    change.decision_reason = reason or ""
    change.save()

    logger.info(
        "Budget change decided",
        extra={
            "church_id": actor.church_id,
            "change_id": change.pk,
            "change_type": change.change_type,
            "decision": decision,
        },
    )
    return CommandResult.ok(change)
