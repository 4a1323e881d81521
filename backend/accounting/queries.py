# accounting/queries.py
"""
Read-side queries for the chart of accounts and the journal.

List operations take a typed filter whose ``to_q()`` composes small named
predicates. Hierarchy reads walk the tree breadth-first with an explicit
depth bound instead of recursing per node.
"""

from collections import deque
from dataclasses import dataclass
from datetime import date
from typing import Optional

from django.db.models import Q

from accounting.codes import MAX_LEVEL, is_well_formed, parent_code_of, derive_level
from accounting.models import AccountCode, Transaction
from accounts.authz import ActorContext, require_member
from common import errors
from common.lifecycle import LifecycleStatus


# =============================================================================
# Predicates
# =============================================================================

def visible_to(church) -> Q:
    return Q(church__isnull=True) | Q(church=church)


def owned_by(church) -> Q:
    return Q(church=church)


def of_type(account_type: str) -> Q:
    return Q(account_type=account_type)


def at_level(level: int) -> Q:
    return Q(level=level)


def at_most_level(level: int) -> Q:
    return Q(level__lte=level)


def child_of(parent_id: int) -> Q:
    return Q(parent_id=parent_id)


def is_live() -> Q:
    return Q(status=LifecycleStatus.ACTIVE)


def postable() -> Q:
    return Q(allow_transaction=True)


def matching_account(search: str) -> Q:
    return Q(code__icontains=search) | Q(name__icontains=search) | Q(english_name__icontains=search)


def touches_account(account_id: int) -> Q:
    return Q(debit_account_id=account_id) | Q(credit_account_id=account_id)


def dated_from(start: date) -> Q:
    return Q(transaction_date__gte=start)


def dated_until(end: date) -> Q:
    return Q(transaction_date__lte=end)


def matching_transaction(search: str) -> Q:
    return (
        Q(description__icontains=search)
        | Q(reference__icontains=search)
        | Q(voucher_number__icontains=search)
    )


# =============================================================================
# Filters
# =============================================================================

@dataclass
class AccountFilter:
    search: Optional[str] = None
    account_type: Optional[str] = None
    level: Optional[int] = None
    parent_id: Optional[int] = None
    include_inactive: bool = False
    church_only: bool = False
    postable_only: bool = False

    def to_q(self, church) -> Q:
        q = owned_by(church) if self.church_only else visible_to(church)
        if not self.include_inactive:
            q &= is_live()
        if self.account_type:
            q &= of_type(self.account_type)
        if self.level:
            q &= at_level(self.level)
        if self.parent_id:
            q &= child_of(self.parent_id)
        if self.postable_only:
            q &= postable()
        if self.search:
            q &= matching_account(self.search)
        return q


@dataclass
class TransactionFilter:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    account_id: Optional[int] = None
    search: Optional[str] = None

    def to_q(self, church) -> Q:
        q = Q(church=church)
        if self.start_date:
            q &= dated_from(self.start_date)
        if self.end_date:
            q &= dated_until(self.end_date)
        if self.account_id:
            q &= touches_account(self.account_id)
        if self.search:
            q &= matching_transaction(self.search)
        return q


# =============================================================================
# Accounts
# =============================================================================

def visible_accounts(church):
    return AccountCode.objects.filter(visible_to(church))


def get_visible_account(actor: ActorContext, account_id: int) -> AccountCode:
    try:
        return visible_accounts(actor.church).get(pk=account_id)
    except AccountCode.DoesNotExist:
        raise errors.NotFoundError("Account not found.", account_id=account_id)


def list_accounts(actor: ActorContext, filters: AccountFilter = None):
    require_member(actor)
    filters = filters or AccountFilter()
    return AccountCode.objects.filter(filters.to_q(actor.church)).order_by("order", "code")


def transaction_accounts(actor: ActorContext, account_type: str = None, search: str = None):
    """Active leaf accounts a transaction may be posted against."""
    return list_accounts(
        actor,
        AccountFilter(account_type=account_type, search=search, postable_only=True),
    )


def validate_code(actor: ActorContext, code: str, exclude_id: int = None) -> dict:
    """
    Check a proposed code without creating anything.

    Returns:
        {"is_valid": True, "level": n, "account_type": T}
        {"is_valid": False, "error": "..."}
    """
    require_member(actor)
    code = (code or "").strip()
    if not is_well_formed(code):
        return {
            "is_valid": False,
            "error": "Code must look like 1, 1-01, 1-01-01 or 1-01-01-01 (leading digit 1-5).",
        }

    existing = visible_accounts(actor.church).filter(code=code)
    if exclude_id:
        existing = existing.exclude(pk=exclude_id)
    if existing.exists():
        return {"is_valid": False, "error": f"Account code {code} already exists."}

    parent_code = parent_code_of(code)
    if parent_code is not None:
        parent_exists = visible_accounts(actor.church).filter(is_live(), code=parent_code).exists()
        if not parent_exists:
            return {"is_valid": False, "error": f"Parent account {parent_code} does not exist or is inactive."}

    return {
        "is_valid": True,
        "level": derive_level(code),
        "account_type": AccountCode.TYPE_BY_LEADING_DIGIT[code[0]],
    }


def account_tree(
    actor: ActorContext,
    account_type: str = None,
    max_level: int = MAX_LEVEL,
    church_only: bool = False,
) -> list[dict]:
    """
    Nested chart of accounts.

    Loads the visible accounts once, then links them breadth-first from
    the roots. Nodes deeper than ``max_level`` are dropped; a parent
    reference that revisits a node is ignored.
    """
    require_member(actor)
    max_level = max(1, min(max_level or MAX_LEVEL, MAX_LEVEL))
    q = AccountFilter(account_type=account_type, church_only=church_only).to_q(actor.church)
    accounts = list(AccountCode.objects.filter(q & at_most_level(max_level)).order_by("order", "code"))

    children_of = {}
    for account in accounts:
        children_of.setdefault(account.parent_id, []).append(account)

    ids = {account.pk for account in accounts}
    roots = [a for a in accounts if a.parent_id is None or a.parent_id not in ids]

    def _node(account):
        return {
            "id": account.pk,
            "code": account.code,
            "name": account.name,
            "english_name": account.english_name,
            "account_type": account.account_type,
            "level": account.level,
            "allow_transaction": account.allow_transaction,
            "is_system": account.is_system,
            "church_id": account.church_id,
            "children": [],
        }

    tree = []
    visited = set()
    queue = deque()
    for root in roots:
        node = _node(root)
        tree.append(node)
        queue.append((root, node, 1))
        visited.add(root.pk)

    while queue:
        account, node, depth = queue.popleft()
        if depth >= max_level:
            continue
        for child in children_of.get(account.pk, []):
            if child.pk in visited:
                continue
            visited.add(child.pk)
            child_node = _node(child)
            node["children"].append(child_node)
            queue.append((child, child_node, depth + 1))

    return tree


# =============================================================================
# Transactions
# =============================================================================

def list_transactions(actor: ActorContext, filters: TransactionFilter = None):
    require_member(actor)
    filters = filters or TransactionFilter()
    return (
        Transaction.objects.filter(filters.to_q(actor.church))
        .select_related("debit_account", "credit_account", "created_by")
        .order_by("-transaction_date", "-created_at", "-id")
    )


def get_transaction(actor: ActorContext, transaction_id: int) -> Transaction:
    require_member(actor)
    try:
        return Transaction.objects.select_related(
            "debit_account", "credit_account", "created_by"
        ).get(church=actor.church, pk=transaction_id)
    except Transaction.DoesNotExist:
        raise errors.NotFoundError("Transaction not found.", transaction_id=transaction_id)
