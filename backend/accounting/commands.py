# accounting/commands.py
"""
Command layer for ledger operations.

Commands are the single point where business operations happen.
Views call commands; commands enforce rules and write rows.

Pattern:
1. Validate role (require_role)
2. Apply business policies (can_*)
3. Perform the operation (model changes)
4. Return CommandResult

ALL state changes to accounts and transactions MUST go through commands.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from django.db import transaction

from accounting.codes import MAX_LEVEL, parse_code
from accounting.models import AccountCode, Transaction
from accounting.policies import (
    can_allow_postings,
    can_change_account_code,
    can_deactivate_account,
    can_modify_account,
    can_post_to_account,
)
from accounting.queries import visible_accounts
from accounts.authz import ActorContext, require_role
from accounts.roles import LEDGER_ADMIN_ROLES, MANAGER_ROLES
from common import errors
from common.commands import CommandResult
from common.money import to_money
from ops import metrics

logger = logging.getLogger(__name__)


def _check_hierarchy(church, parsed, account_type: str, parent: AccountCode = None, exclude_id: int = None):
    """
    Validate a code against its type and parent.

    Returns a LedgerError, or None when the placement is consistent.
    """
    if account_type not in AccountCode.AccountType.values:
        return errors.ValidationError(f"Unknown account type: {account_type}.")

    if parsed.account_type != account_type:
        return errors.BusinessRuleViolation(
            f"Code {parsed.code} belongs to {parsed.account_type} accounts, not {account_type}.",
        )

    duplicates = visible_accounts(church).filter(code=parsed.code)
    if exclude_id:
        duplicates = duplicates.exclude(pk=exclude_id)
    if duplicates.exists():
        return errors.ConflictError(f"Account code {parsed.code} already exists.")

    if parsed.level > MAX_LEVEL:
        return errors.BusinessRuleViolation(f"Accounts may be at most {MAX_LEVEL} levels deep.")

    if parent is None:
        if parsed.level > 1:
            return errors.BusinessRuleViolation(
                f"Account {parsed.code} needs parent account {parsed.parent_code}.",
            )
        return None

    if not parent.is_live:
        return errors.BusinessRuleViolation(f"Parent account {parent.code} is inactive.")
    if parent.account_type != account_type:
        return errors.BusinessRuleViolation(
            "Account type must match the parent's type.",
            parent_type=parent.account_type,
        )
    if parsed.level != parent.level + 1 or parsed.parent_code != parent.code:
        return errors.BusinessRuleViolation(
            f"Code {parsed.code} does not sit directly under parent {parent.code}.",
        )
    if parent.allow_transaction:
        return errors.BusinessRuleViolation(
            f"Parent account {parent.code} accepts transactions; only leaf accounts may post.",
        )
    return None


# =============================================================================
# Account Commands
# =============================================================================

@transaction.atomic
def create_account(
    actor: ActorContext,
    code: str,
    name: str,
    account_type: str,
    parent_id: int = None,
    allow_transaction: bool = True,
    english_name: str = "",
    description: str = "",
) -> CommandResult:
    """
    Create a new account in the church's chart of accounts.

    Args:
        actor: The actor context (user + church)
        code: Account code such as ``5-01-02``; leading digit is the type
        name: Display name
        account_type: One of AccountCode.AccountType
        parent_id: Parent account (required below level 1)
        allow_transaction: Whether the account accepts postings
        english_name: Optional English name
        description: Optional description

    Returns:
        CommandResult with the created AccountCode or error
    """
    require_role(actor, MANAGER_ROLES)

    try:
        parsed = parse_code(code)
    except ValueError:
        return CommandResult.fail(errors.ValidationError(
            "Code must look like 1, 1-01, 1-01-01 or 1-01-01-01 (leading digit 1-5).",
            code=code,
        ))

    if not (name or "").strip():
        return CommandResult.fail(errors.ValidationError("Account name is required."))

    parent = None
    if parent_id is not None:
        parent = visible_accounts(actor.church).filter(pk=parent_id).first()
        if parent is None:
            return CommandResult.fail(errors.NotFoundError("Parent account not found.", parent_id=parent_id))

    problem = _check_hierarchy(actor.church, parsed, account_type, parent)
    if problem:
        return CommandResult.fail(problem)

    account = AccountCode.objects.create(
        church=actor.church,
        code=parsed.code,
        name=name.strip(),
        english_name=english_name or "",
        description=description or "",
        account_type=account_type,
        level=parsed.level,
        order=parsed.order,
        parent=parent,
        allow_transaction=allow_transaction,
        is_system=False,
    )
    logger.info(
        "Account created",
        extra={"church_id": actor.church_id, "account_id": account.pk, "code": account.code},
    )
    return CommandResult.ok(account)


@transaction.atomic
def update_account(actor: ActorContext, account_id: int, **updates) -> CommandResult:
    """
    Update a church-owned account.

    Allowed fields: code, name, english_name, description, account_type,
    allow_transaction. Code or type changes re-derive level and order and
    are refused once the account has transactions.
    """
    require_role(actor, MANAGER_ROLES)

    allowed_fields = {"code", "name", "english_name", "description", "account_type", "allow_transaction"}
    unknown = set(updates) - allowed_fields
    if unknown:
        return CommandResult.fail(errors.ValidationError(
            f"Cannot update fields: {', '.join(sorted(unknown))}",
        ))

    account = visible_accounts(actor.church).select_for_update().filter(pk=account_id).first()
    if account is None:
        return CommandResult.fail(errors.NotFoundError("Account not found.", account_id=account_id))

    allowed, reason = can_modify_account(actor, account)
    if not allowed:
        return CommandResult.fail(errors.ForbiddenError(reason))

    new_code = updates.get("code", account.code)
    new_type = updates.get("account_type", account.account_type)
    if new_code != account.code or new_type != account.account_type:
        allowed, reason = can_change_account_code(actor, account)
        if not allowed:
            return CommandResult.fail(errors.ConflictError(reason))
        if account.children.exists():
            return CommandResult.fail(errors.ConflictError(
                "Cannot change the code or type of an account that has child accounts.",
            ))
        try:
            parsed = parse_code(new_code)
        except ValueError:
            return CommandResult.fail(errors.ValidationError("Invalid account code format.", code=new_code))
        problem = _check_hierarchy(actor.church, parsed, new_type, account.parent, exclude_id=account.pk)
        if problem:
            return CommandResult.fail(problem)
        account.code = parsed.code
        account.level = parsed.level
        account.order = parsed.order
        account.account_type = new_type

    if updates.get("allow_transaction") and not account.allow_transaction:
        allowed, reason = can_allow_postings(account)
        if not allowed:
            return CommandResult.fail(errors.BusinessRuleViolation(reason))

    if "name" in updates:
        if not (updates["name"] or "").strip():
            return CommandResult.fail(errors.ValidationError("Account name is required."))
        account.name = updates["name"].strip()
    for field in ("english_name", "description"):
        if field in updates:
            setattr(account, field, updates[field] or "")
    if "allow_transaction" in updates:
        account.allow_transaction = bool(updates["allow_transaction"])

    account.save()
    logger.info(
        "Account updated",
        extra={"church_id": actor.church_id, "account_id": account.pk, "fields": sorted(updates)},
    )
    return CommandResult.ok(account)


@transaction.atomic
def deactivate_account(actor: ActorContext, account_id: int) -> CommandResult:
    """
    Soft-delete an account. Refused while it has active children or any
    transaction references it.
    """
    require_role(actor, MANAGER_ROLES)

    account = visible_accounts(actor.church).select_for_update().filter(pk=account_id).first()
    if account is None:
        return CommandResult.fail(errors.NotFoundError("Account not found.", account_id=account_id))

    allowed, reason = can_modify_account(actor, account)
    if not allowed:
        return CommandResult.fail(errors.ForbiddenError(reason))

    allowed, reason = can_deactivate_account(actor, account)
    if not allowed:
        return CommandResult.fail(errors.ConflictError(reason))

    account.retire()
    logger.info(
        "Account deactivated",
        extra={"church_id": actor.church_id, "account_id": account.pk, "code": account.code},
    )
    return CommandResult.ok(account)


# =============================================================================
# Transaction Commands
# =============================================================================

@transaction.atomic
def post_transaction(
    actor: ActorContext,
    debit_account_id: int,
    credit_account_id: int,
    amount,
    transaction_date: date,
    description: str,
    reference: str = "",
    voucher_number: str = "",
) -> CommandResult:
    """
    Post one debit/credit pair.

    Args:
        actor: The actor context
        debit_account_id: Account receiving the debit
        credit_account_id: Account receiving the credit
        amount: Positive amount
        transaction_date: Accounting date
        description: Required memo
        reference: Optional external reference
        voucher_number: Optional voucher number

    Returns:
        CommandResult with the created Transaction or error
    """
    require_role(actor, MANAGER_ROLES)

    if debit_account_id == credit_account_id:
        return CommandResult.fail(errors.ValidationError("Debit and credit accounts must differ."))

    try:
        amount = to_money(amount)
    except (InvalidOperation, ValueError, TypeError):
        return CommandResult.fail(errors.ValidationError("Amount must be a number.", amount=str(amount)))
    if amount <= Decimal("0"):
        return CommandResult.fail(errors.ValidationError("Amount must be positive.", amount=amount))

    if transaction_date is None:
        return CommandResult.fail(errors.ValidationError("Transaction date is required."))
    if not (description or "").strip():
        return CommandResult.fail(errors.ValidationError("Description is required."))

    accounts = {
        a.pk: a
        for a in visible_accounts(actor.church).filter(pk__in=[debit_account_id, credit_account_id])
    }
    debit_account = accounts.get(debit_account_id)
    credit_account = accounts.get(credit_account_id)
    if debit_account is None or credit_account is None:
        return CommandResult.fail(errors.NotFoundError(
            "Account not found.",
            account_id=debit_account_id if debit_account is None else credit_account_id,
        ))

    for account in (debit_account, credit_account):
        allowed, reason = can_post_to_account(account)
        if not allowed:
            return CommandResult.fail(errors.BusinessRuleViolation(reason, account_id=account.pk))

    txn = Transaction.objects.create(
        church=actor.church,
        debit_account=debit_account,
        credit_account=credit_account,
        amount=amount,
        transaction_date=transaction_date,
        description=description.strip(),
        reference=reference or "",
        voucher_number=voucher_number or "",
        created_by=actor.user,
    )
    metrics.record_transaction_posted()
    logger.info(
        "Transaction posted",
        extra={
            "church_id": actor.church_id,
            "transaction_id": txn.pk,
            "debit": debit_account.code,
            "credit": credit_account.code,
            "amount": str(amount),
        },
    )
    return CommandResult.ok(txn)


@transaction.atomic
def delete_transaction(actor: ActorContext, transaction_id: int) -> CommandResult:
    """Remove a posted transaction. Restricted to ledger administrators."""
    require_role(actor, LEDGER_ADMIN_ROLES)

    txn = Transaction.objects.select_for_update().filter(church=actor.church, pk=transaction_id).first()
    if txn is None:
        return CommandResult.fail(errors.NotFoundError("Transaction not found.", transaction_id=transaction_id))

    txn_id = txn.pk
    txn.delete()
    logger.info(
        "Transaction deleted",
        extra={"church_id": actor.church_id, "transaction_id": txn_id},
    )
    return CommandResult.ok({"id": txn_id})
