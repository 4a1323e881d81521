# tests/test_accounting.py
"""
Tests for the chart of accounts and the transaction journal.

Tests cover:
- Account code grammar and derived level / order / type
- Hierarchy rules when creating and editing accounts
- Posting rules and tenant isolation
- Account ledger running balances
- Trial balance totals, summaries and level roll-up
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied

from accounting import codes
from accounting.commands import (
    create_account,
    deactivate_account,
    delete_transaction,
    post_transaction,
    update_account,
)
from accounting.journal import get_account_ledger, get_general_ledger, get_trial_balance
from accounting.models import AccountCode, Transaction
from accounting.queries import AccountFilter, account_tree, list_accounts, validate_code
from common import errors

from .conftest import make_account


TODAY = date(2025, 3, 15)


def post(actor, debit, credit, amount, on=TODAY, description="Posting"):
    result = post_transaction(actor, debit.pk, credit.pk, amount, on, description)
    assert result.success, result.error
    return result.data


# =============================================================================
# Code Grammar
# =============================================================================

class TestCodeGrammar:

    @pytest.mark.parametrize("code", ["1", "1-01", "5-01-02", "1-11-01-01"])
    def test_well_formed(self, code):
        assert codes.is_well_formed(code)

    @pytest.mark.parametrize("code", ["", "0", "6", "9-00", "1-1", "1-01-01-01-01", "1--01", "A-01"])
    def test_malformed(self, code):
        assert not codes.is_well_formed(code)

    def test_parse_derives_level_order_type_and_parent(self):
        parsed = codes.parse_code("1-11-01-01")

        assert parsed.level == 4
        assert parsed.order == 1110101
        assert parsed.account_type == "ASSET"
        assert parsed.parent_code == "1-11-01"

    def test_order_sorts_children_under_parent(self):
        ordered = sorted(["1-02", "1", "1-01-05", "2", "1-01"], key=codes.derive_order)

        assert ordered == ["1", "1-01", "1-01-05", "1-02", "2"]

    def test_ancestor_code_at(self):
        assert codes.ancestor_code_at("5-01-02-03", 2) == "5-01"
        assert codes.ancestor_code_at("5-01", 3) == "5-01"

    def test_parse_rejects_bad_code(self):
        with pytest.raises(ValueError):
            codes.parse_code("9-00")


# =============================================================================
# Account Commands
# =============================================================================

@pytest.mark.django_db
class TestAccounts:

    def test_validate_code_at_level_four(self, member_actor, church):
        assets = make_account(church, "1", "Assets", allow_transaction=False)
        current = make_account(church, "1-11", "Current assets", allow_transaction=False, parent=assets)
        make_account(church, "1-11-01", "Cash", allow_transaction=False, parent=current)

        result = validate_code(member_actor, "1-11-01-01")

        assert result == {"is_valid": True, "level": 4, "account_type": "ASSET"}

    def test_validate_code_requires_parent(self, member_actor):
        result = validate_code(member_actor, "1-11-01-01")

        assert result["is_valid"] is False
        assert "1-11-01" in result["error"]

    def test_validate_code_rejects_unknown_leading_digit(self, member_actor):
        assert validate_code(member_actor, "9-00")["is_valid"] is False

    def test_create_child_derives_fields(self, head_actor, chart):
        result = create_account(head_actor, "5-02", "Utilities", "EXPENSE", parent_id=chart["expense"].pk)

        assert result.success, result.error
        account = result.data
        assert account.level == 2
        assert account.order == 5020000
        assert account.church_id == head_actor.church_id

    def test_type_must_match_leading_digit(self, head_actor, chart):
        result = create_account(head_actor, "5-02", "Utilities", "ASSET", parent_id=chart["expense"].pk)

        assert isinstance(result.error, errors.BusinessRuleViolation)

    def test_child_needs_parent(self, head_actor, chart):
        result = create_account(head_actor, "5-02", "Utilities", "EXPENSE")

        assert isinstance(result.error, errors.BusinessRuleViolation)

    def test_child_must_sit_directly_under_parent(self, head_actor, chart):
        result = create_account(head_actor, "5-02-01", "Water", "EXPENSE", parent_id=chart["expense"].pk)

        assert isinstance(result.error, errors.BusinessRuleViolation)

    def test_postable_parent_rejects_children(self, head_actor, chart):
        result = create_account(head_actor, "1-01-01", "Petty cash", "ASSET", parent_id=chart["cash"].pk)

        assert isinstance(result.error, errors.BusinessRuleViolation)

    def test_duplicate_code_conflicts(self, head_actor, chart):
        result = create_account(head_actor, "1-01", "Cash again", "ASSET", parent_id=chart["assets"].pk)

        assert isinstance(result.error, errors.ConflictError)

    def test_global_code_blocks_church_duplicate(self, head_actor):
        AccountCode.objects.create(
            church=None, code="3", name="Equity", account_type="EQUITY",
            level=1, order=codes.derive_order("3"), allow_transaction=False, is_system=True,
        )

        result = create_account(head_actor, "3", "Our equity", "EQUITY")

        assert isinstance(result.error, errors.ConflictError)

    def test_general_user_cannot_create(self, member_actor):
        with pytest.raises(PermissionDenied):
            create_account(member_actor, "1", "Assets", "ASSET")

    def test_code_frozen_once_posted(self, head_actor, chart):
        post(head_actor, chart["cash"], chart["offering"], "100")

        result = update_account(head_actor, chart["cash"].pk, code="1-02")

        assert isinstance(result.error, errors.ConflictError)

    def test_rename_is_always_allowed(self, head_actor, chart):
        post(head_actor, chart["cash"], chart["offering"], "100")

        result = update_account(head_actor, chart["cash"].pk, name="Cash on hand")

        assert result.success
        assert result.data.name == "Cash on hand"

    def test_recode_rederives_order(self, head_actor, chart):
        result = update_account(head_actor, chart["supplies"].pk, code="5-09")

        assert result.success, result.error
        assert result.data.order == 5090000

    def test_deactivate_unused_leaf(self, head_actor, chart):
        result = deactivate_account(head_actor, chart["supplies"].pk)

        assert result.success
        chart["supplies"].refresh_from_db()
        assert not chart["supplies"].is_live

    def test_deactivate_refused_with_transactions(self, head_actor, chart):
        post(head_actor, chart["cash"], chart["offering"], "100")

        result = deactivate_account(head_actor, chart["cash"].pk)

        assert isinstance(result.error, errors.ConflictError)

    def test_deactivate_refused_with_live_children(self, head_actor, chart):
        result = deactivate_account(head_actor, chart["assets"].pk)

        assert isinstance(result.error, errors.ConflictError)

    def test_list_hides_inactive_by_default(self, member_actor, head_actor, chart):
        deactivate_account(head_actor, chart["supplies"].pk)

        live = {a.code for a in list_accounts(member_actor)}
        everything = {a.code for a in list_accounts(member_actor, AccountFilter(include_inactive=True))}

        assert "5-01" not in live
        assert "5-01" in everything

    def test_tree_nests_children(self, member_actor, chart):
        tree = account_tree(member_actor)

        roots = {node["code"]: node for node in tree}
        assert set(roots) == {"1", "4", "5"}
        assert [child["code"] for child in roots["1"]["children"]] == ["1-01"]

    def test_tree_respects_max_level(self, member_actor, chart):
        tree = account_tree(member_actor, max_level=1)

        assert all(node["children"] == [] for node in tree)


# =============================================================================
# Posting
# =============================================================================

@pytest.mark.django_db
class TestPosting:

    def test_accounts_must_differ(self, head_actor, chart):
        result = post_transaction(head_actor, chart["cash"].pk, chart["cash"].pk, "10", TODAY, "Loop")

        assert isinstance(result.error, errors.ValidationError)

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_amount_must_be_positive(self, head_actor, chart, amount):
        result = post_transaction(head_actor, chart["cash"].pk, chart["offering"].pk, amount, TODAY, "Bad")

        assert isinstance(result.error, errors.ValidationError)

    def test_header_account_rejects_postings(self, head_actor, chart):
        result = post_transaction(head_actor, chart["assets"].pk, chart["offering"].pk, "10", TODAY, "Header")

        assert isinstance(result.error, errors.BusinessRuleViolation)

    def test_inactive_account_rejects_postings(self, head_actor, chart):
        chart["supplies"].retire()

        result = post_transaction(head_actor, chart["supplies"].pk, chart["cash"].pk, "10", TODAY, "Retired")

        assert isinstance(result.error, errors.BusinessRuleViolation)

    def test_other_church_accounts_are_not_found(self, head_actor, second_church, chart):
        foreign = make_account(second_church, "1", "Their assets")

        result = post_transaction(head_actor, foreign.pk, chart["offering"].pk, "10", TODAY, "Foreign")

        assert isinstance(result.error, errors.NotFoundError)
        assert not Transaction.objects.exists()

    def test_delete_needs_ledger_admin(self, head_actor, finance_actor, chart):
        txn = post(head_actor, chart["cash"], chart["offering"], "10")

        with pytest.raises(PermissionDenied):
            delete_transaction(head_actor, txn.pk)
        assert delete_transaction(finance_actor, txn.pk).success
        assert not Transaction.objects.exists()


# =============================================================================
# Ledgers & Trial Balance
# =============================================================================

@pytest.mark.django_db
class TestJournalReports:

    def test_offering_shows_in_trial_balance(self, head_actor, chart):
        """Debit cash / credit offering 100,000."""
        post(head_actor, chart["cash"], chart["offering"], "100000")

        report = get_trial_balance(head_actor, TODAY - timedelta(days=1), TODAY + timedelta(days=1))

        assert report["summary"]["ASSET"] == Decimal("100000.00")
        assert report["summary"]["REVENUE"] == Decimal("100000.00")
        assert report["total_debit"] == Decimal("100000.00")
        assert report["total_credit"] == Decimal("100000.00")
        assert report["is_balanced"] is True

    def test_balanced_after_every_post(self, head_actor, chart):
        postings = [
            (chart["cash"], chart["offering"], "500"),
            (chart["supplies"], chart["cash"], "120.50"),
            (chart["cash"], chart["offering"], "75.25"),
            (chart["supplies"], chart["cash"], "10"),
        ]
        for debit, credit, amount in postings:
            post(head_actor, debit, credit, amount)
            report = get_trial_balance(head_actor)
            assert report["total_debit"] == report["total_credit"]

    def test_accounts_with_activity_stay_even_at_zero_balance(self, head_actor, chart):
        post(head_actor, chart["cash"], chart["offering"], "100")
        post(head_actor, chart["supplies"], chart["cash"], "100")

        report = get_trial_balance(head_actor)
        rows = {row["code"]: row for row in report["accounts"]}

        assert set(rows) == {"1-01", "4-01", "5-01"}
        assert (rows["1-01"]["debit"], rows["1-01"]["credit"]) == (Decimal("100.00"), Decimal("100.00"))
        assert rows["1-01"]["balance"] == Decimal("0.00")
        assert sum(row["debit"] for row in rows.values()) == report["total_debit"]
        assert sum(row["credit"] for row in rows.values()) == report["total_credit"]

    def test_level_rolls_up_to_ancestor(self, head_actor, church, chart):
        make_account(church, "5-02", "Utilities", parent=chart["expense"])
        utilities = AccountCode.objects.get(code="5-02")
        post(head_actor, chart["supplies"], chart["cash"], "30")
        post(head_actor, utilities, chart["cash"], "20")

        rows = {row["code"]: row for row in get_trial_balance(head_actor, level=1)["accounts"]}

        assert rows["5"]["balance"] == Decimal("50.00")
        assert rows["1"]["balance"] == Decimal("-50.00")
        assert "5-01" not in rows

    def test_range_is_validated(self, head_actor):
        with pytest.raises(errors.ValidationError):
            get_trial_balance(head_actor, TODAY, TODAY - timedelta(days=1))

    def test_unbalanced_journal_raises(self, head_actor, chart, monkeypatch):
        from accounting import journal

        post(head_actor, chart["cash"], chart["offering"], "100")
        real_totals = journal._side_totals

        def skewed(queryset, field):
            totals = real_totals(queryset, field)
            if field == "credit_account_id":
                return {key: value - Decimal("5") for key, value in totals.items()}
            return totals

        monkeypatch.setattr(journal, "_side_totals", skewed)

        with pytest.raises(errors.LedgerIntegrityError):
            get_trial_balance(head_actor)

    def test_account_ledger_running_balance(self, head_actor, chart):
        post(head_actor, chart["cash"], chart["offering"], "1000", on=TODAY - timedelta(days=10))
        post(head_actor, chart["cash"], chart["offering"], "200", on=TODAY)
        post(head_actor, chart["supplies"], chart["cash"], "50", on=TODAY + timedelta(days=1))

        ledger = get_account_ledger(head_actor, chart["cash"].pk, start_date=TODAY)

        assert ledger["beginning_balance"] == Decimal("1000.00")
        assert [line["balance"] for line in ledger["transactions"]] == [Decimal("1200.00"), Decimal("1150.00")]
        assert ledger["ending_balance"] == Decimal("1150.00")
        assert ledger["transactions"][1]["credit_amount"] == Decimal("50.00")
        assert ledger["transactions"][1]["counterpart_code"] == "5-01"

    def test_revenue_ledger_grows_with_credits(self, head_actor, chart):
        post(head_actor, chart["cash"], chart["offering"], "300")

        ledger = get_account_ledger(head_actor, chart["offering"].pk)

        assert ledger["ending_balance"] == Decimal("300.00")

    def test_general_ledger_covers_accounts_with_activity(self, head_actor, chart):
        post(head_actor, chart["cash"], chart["offering"], "300")

        ledgers = get_general_ledger(head_actor)

        codes_seen = {ledger["account"]["code"] for ledger in ledgers}
        assert {"1-01", "4-01"} <= codes_seen
