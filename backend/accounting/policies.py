# accounting/policies.py
"""
Business policy functions for ledger operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that's the command's job.

Usage:
    allowed, reason = can_post_to_account(actor, account)
    if not allowed:
        return CommandResult.fail(errors.BusinessRuleViolation(reason))

Policies are pure reads and return (bool, str) tuples.
"""

from accounting.models import AccountCode, Transaction


# =============================================================================
# Tenant Boundary Policies
# =============================================================================

def check_tenant_boundary(actor, entity) -> bool:
    """
    Verify entity belongs to actor's church.
    This is the fundamental multi-tenant security check.
    """
    return getattr(entity, "church_id", None) == actor.church.id


def is_visible_account(actor, account: AccountCode) -> bool:
    """Global accounts are visible to every church; others only to their owner."""
    return account.church_id is None or account.church_id == actor.church.id


# =============================================================================
# Account Policies
# =============================================================================

def account_has_transactions(account: AccountCode) -> bool:
    return Transaction.objects.filter(debit_account=account).exists() or \
        Transaction.objects.filter(credit_account=account).exists()


def can_modify_account(actor, account: AccountCode) -> tuple[bool, str]:
    """
    Only church-owned, non-system accounts can be edited or retired.
    Global and system accounts are shared by every church.
    """
    if account.church_id is None or account.is_system:
        return False, "System or global accounts cannot be modified."
    if not check_tenant_boundary(actor, account):
        return False, "Cross-church action denied."
    return True, ""


def can_change_account_code(actor, account: AccountCode) -> tuple[bool, str]:
    """Code and type are frozen once postings reference the account."""
    allowed, reason = can_modify_account(actor, account)
    if not allowed:
        return allowed, reason
    if account_has_transactions(account):
        return False, "Cannot change the code or type of an account that has transactions."
    return True, ""


def can_allow_postings(account: AccountCode) -> tuple[bool, str]:
    if account.children.live().exists():
        return False, "Only leaf accounts may accept transactions; this account has active children."
    return True, ""


def can_deactivate_account(actor, account: AccountCode) -> tuple[bool, str]:
    """
    Rules:
    - Must be church-owned and not a system account
    - Cannot have active child accounts
    - Cannot be referenced by any transaction
    """
    allowed, reason = can_modify_account(actor, account)
    if not allowed:
        return allowed, reason
    if not account.is_live:
        return False, "Account is already inactive."
    if account.children.live().exists():
        return False, "Cannot deactivate an account that has active child accounts."
    if account_has_transactions(account):
        return False, "Cannot deactivate an account that has transactions."
    return True, ""


def can_post_to_account(account: AccountCode) -> tuple[bool, str]:
    if not account.is_live:
        return False, f"Account {account.code} is inactive."
    if not account.allow_transaction:
        return False, f"Account {account.code} does not accept transactions."
    return True, ""
