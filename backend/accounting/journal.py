# accounting/journal.py
"""
Balances derived from the journal.

Nothing here is stored: every balance is a fold over Transaction rows.
ASSET and EXPENSE accounts grow with debits; LIABILITY, EQUITY and
REVENUE grow with credits.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from django.db.models import Sum

from accounting.codes import ancestor_code_at
from accounting.models import AccountCode, Transaction
from accounting.queries import get_visible_account, touches_account, visible_accounts
from accounts.authz import ActorContext, require_member
from common import errors
from common.money import ZERO, to_money, within_tolerance
from ops import metrics

logger = logging.getLogger(__name__)


def signed_balance(account_type: str, debit: Decimal, credit: Decimal) -> Decimal:
    if account_type in AccountCode.DEBIT_NORMAL_TYPES:
        return to_money(debit) - to_money(credit)
    return to_money(credit) - to_money(debit)


def signed_movement(account: AccountCode, txn: Transaction) -> Decimal:
    """Effect of one transaction on one side's balance."""
    is_debit = txn.debit_account_id == account.pk
    if is_debit:
        return signed_balance(account.account_type, txn.amount, ZERO)
    return signed_balance(account.account_type, ZERO, txn.amount)


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise errors.ValidationError("start_date must not be after end_date.")


# =============================================================================
# Account ledger
# =============================================================================

def get_account_ledger(
    actor: ActorContext,
    account_id: int,
    start_date: date = None,
    end_date: date = None,
) -> dict:
    """
    Running-balance ledger for one account.

    The beginning balance folds every transaction dated before
    ``start_date``. Lines inside the range are ordered by
    (transaction_date, created_at, id) and each carries the balance after
    it is applied.
    """
    require_member(actor)
    _check_range(start_date, end_date)
    account = get_visible_account(actor, account_id)

    base = Transaction.objects.filter(touches_account(account.pk), church=actor.church)

    beginning = ZERO
    if start_date:
        prior = base.filter(transaction_date__lt=start_date)
        prior_debit = prior.filter(debit_account=account).aggregate(total=Sum("amount"))["total"] or ZERO
        prior_credit = prior.filter(credit_account=account).aggregate(total=Sum("amount"))["total"] or ZERO
        beginning = signed_balance(account.account_type, prior_debit, prior_credit)

    in_range = base
    if start_date:
        in_range = in_range.filter(transaction_date__gte=start_date)
    if end_date:
        in_range = in_range.filter(transaction_date__lte=end_date)
    in_range = in_range.select_related("debit_account", "credit_account").order_by(
        "transaction_date", "created_at", "id"
    )

    balance = beginning
    lines = []
    for txn in in_range:
        is_debit = txn.debit_account_id == account.pk
        balance += signed_movement(account, txn)
        counterpart = txn.credit_account if is_debit else txn.debit_account
        lines.append({
            "id": txn.pk,
            "transaction_date": txn.transaction_date,
            "description": txn.description,
            "reference": txn.reference,
            "voucher_number": txn.voucher_number,
            "debit_amount": txn.amount if is_debit else ZERO,
            "credit_amount": ZERO if is_debit else txn.amount,
            "counterpart_code": counterpart.code,
            "counterpart_name": counterpart.name,
            "balance": balance,
        })

    return {
        "account": {
            "id": account.pk,
            "code": account.code,
            "name": account.name,
            "account_type": account.account_type,
        },
        "start_date": start_date,
        "end_date": end_date,
        "beginning_balance": beginning,
        "ending_balance": balance,
        "transactions": lines,
    }


# =============================================================================
# Trial balance
# =============================================================================

def _side_totals(queryset, field: str) -> dict:
    rows = queryset.values(field).annotate(total=Sum("amount"))
    return {row[field]: to_money(row["total"]) for row in rows}


def get_trial_balance(
    actor: ActorContext,
    start_date: date = None,
    end_date: date = None,
    level: int = None,
) -> dict:
    """
    Trial balance over [start_date, end_date].

    Each transaction contributes its amount once to the debit side and once
    to the credit side, so ``total_debit == total_credit`` holds whenever
    the journal is intact. With ``level`` set, activity is rolled up into
    the ancestor account at that level.

    Raises:
        LedgerIntegrityError: If debit and credit totals disagree
    """
    require_member(actor)
    _check_range(start_date, end_date)

    txns = Transaction.objects.filter(church=actor.church)
    if start_date:
        txns = txns.filter(transaction_date__gte=start_date)
    if end_date:
        txns = txns.filter(transaction_date__lte=end_date)

    debits = _side_totals(txns, "debit_account_id")
    credits = _side_totals(txns, "credit_account_id")

    accounts = {a.pk: a for a in visible_accounts(actor.church)}
    by_code = {a.code: a for a in accounts.values()}

    totals = defaultdict(lambda: [ZERO, ZERO])
    for account_id in set(debits) | set(credits):
        account = accounts.get(account_id)
        if account is None:
            # Posted against an account this church can no longer see.
            account = AccountCode.objects.get(pk=account_id)
        if level and account.level > level:
            account = by_code.get(ancestor_code_at(account.code, level), account)
        totals[account.pk][0] += debits.get(account_id, ZERO)
        totals[account.pk][1] += credits.get(account_id, ZERO)
        accounts.setdefault(account.pk, account)

    rows = []
    summary = {choice: ZERO for choice in AccountCode.AccountType.values}
    total_debit = ZERO
    total_credit = ZERO
    for account_id, (debit, credit) in totals.items():
        account = accounts[account_id]
        balance = signed_balance(account.account_type, debit, credit)
        total_debit += debit
        total_credit += credit
        if debit == ZERO and credit == ZERO:
            continue
        rows.append({
            "account_id": account.pk,
            "code": account.code,
            "name": account.name,
            "account_type": account.account_type,
            "level": account.level,
            "order": account.order,
            "debit": debit,
            "credit": credit,
            "balance": balance,
        })
        summary[account.account_type] += max(ZERO, balance)

    rows.sort(key=lambda row: (row["order"], row["code"]))
    is_balanced = within_tolerance(total_debit, total_credit)

    if not is_balanced:
        metrics.record_integrity_error("trial_balance")
        logger.error(
            "Trial balance out of balance",
            extra={
                "church_id": actor.church_id,
                "total_debit": str(total_debit),
                "total_credit": str(total_credit),
            },
        )
        raise errors.LedgerIntegrityError(
            "Trial balance does not balance.",
            total_debit=total_debit,
            total_credit=total_credit,
        )

    return {
        "start_date": start_date,
        "end_date": end_date,
        "level": level,
        "accounts": rows,
        "summary": summary,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "is_balanced": is_balanced,
    }


# =============================================================================
# General ledger
# =============================================================================

def get_general_ledger(
    actor: ActorContext,
    start_date: date = None,
    end_date: date = None,
    account_ids: Iterable[int] = None,
) -> list[dict]:
    """Account ledgers for every account with activity (or the ones asked for)."""
    require_member(actor)
    _check_range(start_date, end_date)

    if account_ids:
        ids = list(account_ids)
    else:
        txns = Transaction.objects.filter(church=actor.church)
        if end_date:
            txns = txns.filter(transaction_date__lte=end_date)
        ids = set(txns.values_list("debit_account_id", flat=True)) | set(
            txns.values_list("credit_account_id", flat=True)
        )

    ledgers = []
    for account in visible_accounts(actor.church).filter(pk__in=ids).order_by("order", "code"):
        ledger = get_account_ledger(actor, account.pk, start_date, end_date)
        if ledger["transactions"] or ledger["beginning_balance"] != ZERO:
            ledgers.append(ledger)
    return ledgers
