# tests/test_budgets.py
"""
Tests for budgets and budget changes.

Tests cover:
- Items must add up to the budget total
- One budget per department and period
- Editing and approving budgets
- Transfers, increases and decreases, including stale requests
- Balance checks and summaries
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied
from django.utils import timezone

from budgets.commands import (
    approve_budget,
    approve_budget_change,
    create_budget,
    request_budget_change,
    submit_budget,
    update_budget,
)
from budgets.models import Budget, BudgetChange, BudgetExecution, BudgetItem
from budgets.queries import available_items, check_balance, department_summary, execution_overview
from common import errors
from common.money import within_tolerance
from expenses.commands import create_expense

from .conftest import make_budget


def items_payload(*amounts):
    return [
        {"name": f"Item {i}", "code": f"E-{i}", "amount": amount, "category": "EDUCATION"}
        for i, amount in enumerate(amounts, start=1)
    ]


def period():
    today = timezone.localdate()
    return {"year": today.year, "start_date": today - timedelta(days=10), "end_date": today + timedelta(days=80)}


def assert_sum_invariant(budget):
    budget.refresh_from_db()
    items_total = sum((item.amount for item in budget.items.all()), Decimal("0"))
    assert within_tolerance(items_total, budget.total_amount)


def execution_of(item):
    return BudgetExecution.objects.get(budget_item=item)


# =============================================================================
# Budget Creation
# =============================================================================

@pytest.mark.django_db
class TestCreateBudget:

    def test_creates_draft_with_seeded_executions(self, head_actor, department):
        result = create_budget(
            head_actor, department.pk, "Youth 2025", total_amount="1500.00",
            items=items_payload("1000.00", "500.00"), **period(),
        )

        assert result.success, result.error
        budget = result.data
        assert budget.status == Budget.Status.DRAFT
        assert budget.items.count() == 2
        for item in budget.items.all():
            execution = execution_of(item)
            assert execution.total_budget == item.amount
            assert execution.remaining_amount == item.amount
            assert execution.used_amount == Decimal("0.00")
        assert_sum_invariant(budget)

    def test_items_must_match_total(self, head_actor, department):
        result = create_budget(
            head_actor, department.pk, "Youth", total_amount="1500.00",
            items=items_payload("1000.00", "400.00"), **period(),
        )

        assert isinstance(result.error, errors.BusinessRuleViolation)
        assert result.error.context["difference"] == Decimal("-100.00")
        assert not Budget.objects.exists()

    def test_item_without_amount_is_rejected(self, head_actor, department):
        items = items_payload("100")
        del items[0]["amount"]

        result = create_budget(head_actor, department.pk, "Youth", total_amount="0", items=items, **period())

        assert isinstance(result.error, errors.ValidationError)
        assert "amount is required" in result.error.message
        assert not Budget.objects.exists()

    def test_one_budget_per_period(self, head_actor, department):
        kwargs = dict(total_amount="100", items=items_payload("100"), **period())
        assert create_budget(head_actor, department.pk, "First", **kwargs).success

        result = create_budget(head_actor, department.pk, "Second", **kwargs)

        assert isinstance(result.error, errors.ConflictError)

    def test_different_quarter_is_a_different_period(self, head_actor, department):
        kwargs = dict(total_amount="100", items=items_payload("100"), **period())
        assert create_budget(head_actor, department.pk, "Q1", quarter=1, **kwargs).success

        assert create_budget(head_actor, department.pk, "Q2", quarter=2, **kwargs).success

    def test_start_must_precede_end(self, head_actor, department):
        today = timezone.localdate()
        result = create_budget(
            head_actor, department.pk, "Backwards", year=today.year,
            start_date=today, end_date=today, total_amount="100", items=items_payload("100"),
        )

        assert isinstance(result.error, errors.ValidationError)

    def test_requires_manager_role(self, member_actor, department):
        with pytest.raises(PermissionDenied):
            create_budget(member_actor, department.pk, "Nope", total_amount="100", items=items_payload("100"), **period())


# =============================================================================
# Editing & Approval
# =============================================================================

@pytest.mark.django_db
class TestBudgetLifecycle:

    @pytest.fixture
    def draft(self, head_actor, department):
        return create_budget(
            head_actor, department.pk, "Choir", total_amount="300",
            items=items_payload("200", "100"), **period(),
        ).data

    def test_replacing_items_keeps_sum(self, head_actor, draft):
        result = update_budget(head_actor, draft.pk, total_amount="900", items=items_payload("400", "300", "200"))

        assert result.success, result.error
        assert draft.items.count() == 3
        assert BudgetExecution.objects.filter(budget_item__budget=draft).count() == 3
        assert_sum_invariant(draft)

    def test_total_change_without_items_must_still_match(self, head_actor, draft):
        result = update_budget(head_actor, draft.pk, total_amount="500")

        assert isinstance(result.error, errors.BusinessRuleViolation)

    def test_submit_then_approve_activates(self, head_actor, finance_actor, draft):
        assert submit_budget(head_actor, draft.pk).success

        result = approve_budget(finance_actor, draft.pk, "APPROVED")

        assert result.success
        draft.refresh_from_db()
        assert draft.status == Budget.Status.ACTIVE
        assert draft.approved_by_id == finance_actor.user_id
        assert draft.approved_at is not None

    def test_active_budget_cannot_be_edited(self, head_actor, finance_actor, draft):
        approve_budget(finance_actor, draft.pk, "APPROVED")

        result = update_budget(head_actor, draft.pk, name="Renamed")

        assert isinstance(result.error, errors.BusinessRuleViolation)

    def test_decided_budget_cannot_be_decided_again(self, finance_actor, draft):
        approve_budget(finance_actor, draft.pk, "REJECTED", reason="Too high")

        result = approve_budget(finance_actor, draft.pk, "APPROVED")

        assert isinstance(result.error, errors.ConflictError)


# =============================================================================
# Budget Changes
# =============================================================================

@pytest.mark.django_db
class TestBudgetChanges:

    @pytest.fixture
    def budget(self, church, department, admin_user):
        """Item A 300,000 and item B 200,000."""
        return make_budget(church, department, admin_user, [("A", "300000"), ("B", "200000")])

    def test_transfer_moves_amount_between_items(self, member_actor, finance_actor, budget):
        item_a, item_b = budget.items.get(code="A"), budget.items.get(code="B")
        change = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "200000", "Move to outreach",
            from_item_id=item_a.pk, to_item_id=item_b.pk,
        ).data

        result = approve_budget_change(finance_actor, change.pk, "APPROVED")

        assert result.success, result.error
        item_a.refresh_from_db()
        item_b.refresh_from_db()
        assert item_a.amount == Decimal("100000.00")
        assert item_b.amount == Decimal("400000.00")
        assert execution_of(item_a).total_budget == Decimal("100000.00")
        assert execution_of(item_b).total_budget == Decimal("400000.00")
        budget.refresh_from_db()
        assert budget.total_amount == Decimal("500000.00")
        assert_sum_invariant(budget)

    def test_transfer_rates_are_recomputed(self, member_actor, finance_actor, budget):
        item_a, item_b = budget.items.get(code="A"), budget.items.get(code="B")
        create_expense(member_actor, "Books", "50000", "EDUCATION", budget_item_id=item_b.pk)
        report = item_b.expense_reports.get()
        report.status = "APPROVED"
        report.save()
        change = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "50000", "More for B",
            from_item_id=item_a.pk, to_item_id=item_b.pk,
        ).data

        approve_budget_change(finance_actor, change.pk, "APPROVED")

        execution = execution_of(item_b)
        assert execution.used_amount == Decimal("50000.00")
        assert execution.execution_rate == Decimal("20.00")

    def test_stale_transfer_is_refused_without_mutation(self, member_actor, finance_actor, budget):
        item_a, item_b = budget.items.get(code="A"), budget.items.get(code="B")
        first = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "200000", "First",
            from_item_id=item_a.pk, to_item_id=item_b.pk,
        ).data
        second = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "200000", "Second",
            from_item_id=item_a.pk, to_item_id=item_b.pk,
        ).data
        approve_budget_change(finance_actor, first.pk, "APPROVED")

        result = approve_budget_change(finance_actor, second.pk, "APPROVED")

        assert isinstance(result.error, errors.BusinessRuleViolation)
        item_a.refresh_from_db()
        item_b.refresh_from_db()
        assert item_a.amount == Decimal("100000.00")
        assert item_b.amount == Decimal("400000.00")
        second.refresh_from_db()
        assert second.status == BudgetChange.Status.PENDING

    def test_recheck_sees_pending_expenses(self, member_actor, finance_actor, budget):
        item_a, item_b = budget.items.get(code="A"), budget.items.get(code="B")
        change = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "100000", "Shift",
            from_item_id=item_a.pk, to_item_id=item_b.pk,
        ).data
        create_expense(member_actor, "Camp", "250000", "EDUCATION", budget_item_id=item_a.pk)

        result = approve_budget_change(finance_actor, change.pk, "APPROVED")

        assert isinstance(result.error, errors.BusinessRuleViolation)
        assert result.error.context["remaining_amount"] == Decimal("50000.00")

    def test_recheck_can_be_switched_off(self, settings, member_actor, finance_actor, budget):
        settings.BUDGET_CHANGE_RECHECK_ON_APPROVAL = False
        item_a, item_b = budget.items.get(code="A"), budget.items.get(code="B")
        change = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "100000", "Shift",
            from_item_id=item_a.pk, to_item_id=item_b.pk,
        ).data
        create_expense(member_actor, "Camp", "250000", "EDUCATION", budget_item_id=item_a.pk)

        result = approve_budget_change(finance_actor, change.pk, "APPROVED")

        assert result.success
        item_a.refresh_from_db()
        assert item_a.amount == Decimal("200000.00")

    def test_request_checks_source_remaining(self, member_actor, budget):
        item_a, item_b = budget.items.get(code="A"), budget.items.get(code="B")

        result = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "300001", "Too much",
            from_item_id=item_a.pk, to_item_id=item_b.pk,
        )

        assert isinstance(result.error, errors.BusinessRuleViolation)
        assert result.error.context["exceed_amount"] == Decimal("1.00")

    def test_transfer_needs_distinct_items(self, member_actor, budget):
        item_a = budget.items.get(code="A")

        result = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "10", "Loop",
            from_item_id=item_a.pk, to_item_id=item_a.pk,
        )

        assert isinstance(result.error, errors.ValidationError)

    def test_items_must_belong_to_budget(self, member_actor, church, admin_user, budget):
        from accounts.models import Department

        other_department = Department.objects.create(church=church, name="Mission")
        other = make_budget(church, other_department, admin_user, [("X", "1000")])
        item_a = budget.items.get(code="A")

        result = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "10", "Cross budget",
            from_item_id=item_a.pk, to_item_id=other.items.get().pk,
        )

        assert isinstance(result.error, errors.NotFoundError)

    def test_increase_grows_item_and_total(self, member_actor, finance_actor, budget):
        item_b = budget.items.get(code="B")
        change = request_budget_change(member_actor, budget.pk, "INCREASE", "50000", "Donation", to_item_id=item_b.pk).data

        approve_budget_change(finance_actor, change.pk, "APPROVED")

        item_b.refresh_from_db()
        assert item_b.amount == Decimal("250000.00")
        budget.refresh_from_db()
        assert budget.total_amount == Decimal("550000.00")
        assert_sum_invariant(budget)

    def test_decrease_shrinks_item_and_total(self, member_actor, finance_actor, budget):
        item_a = budget.items.get(code="A")
        change = request_budget_change(member_actor, budget.pk, "DECREASE", "100000", "Cut", from_item_id=item_a.pk).data

        approve_budget_change(finance_actor, change.pk, "APPROVED")

        budget.refresh_from_db()
        assert budget.total_amount == Decimal("400000.00")
        assert execution_of(item_a).remaining_amount == Decimal("200000.00")
        assert_sum_invariant(budget)

    def test_rejected_change_mutates_nothing(self, member_actor, finance_actor, budget):
        item_a, item_b = budget.items.get(code="A"), budget.items.get(code="B")
        change = request_budget_change(
            member_actor, budget.pk, "TRANSFER", "1000", "Maybe",
            from_item_id=item_a.pk, to_item_id=item_b.pk,
        ).data

        approve_budget_change(finance_actor, change.pk, "REJECTED", reason="No")

        item_a.refresh_from_db()
        assert item_a.amount == Decimal("300000.00")
        change.refresh_from_db()
        assert change.status == BudgetChange.Status.REJECTED
        assert approve_budget_change(finance_actor, change.pk, "APPROVED").error.status_code == 409

    def test_changes_need_an_active_budget(self, member_actor, church, department, admin_user):
        draft = make_budget(church, department, admin_user, [("A", "100")], status=Budget.Status.DRAFT)

        result = request_budget_change(member_actor, draft.pk, "INCREASE", "10", "Why", to_item_id=draft.items.get().pk)

        assert isinstance(result.error, errors.BusinessRuleViolation)


# =============================================================================
# Read Services
# =============================================================================

@pytest.mark.django_db
class TestBudgetQueries:

    def test_check_balance(self, member_actor, item_a):
        create_expense(member_actor, "Books", "600000", "EDUCATION", budget_item_id=item_a.pk)

        result = check_balance(member_actor, item_a.pk, "500000")

        assert result["remaining_amount"] == Decimal("400000.00")
        assert result["can_approve"] is False
        assert result["would_exceed"] is True
        assert result["exceed_amount"] == Decimal("100000.00")
        assert result["projected_rate"] == Decimal("110.00")

    def test_department_summary(self, member_actor, department, item_a):
        create_expense(member_actor, "Books", "100000", "EDUCATION", budget_item_id=item_a.pk)

        summary = department_summary(member_actor, department.pk, timezone.localdate().year)

        assert summary["summary"]["total_budget"] == Decimal("1500000.00")
        assert summary["summary"]["pending_amount"] == Decimal("100000.00")
        assert summary["summary"]["remaining_amount"] == Decimal("1400000.00")

    def test_available_items_filters_by_remaining(self, member_actor, item_a, item_b):
        items = available_items(member_actor, min_amount="600000")

        assert [item.pk for item in items] == [item_a.pk]

    def test_execution_overview_is_church_scoped(self, member_actor, second_church, make_member, item_a):
        from accounts.authz import actor_for

        outsider = actor_for(make_member("x@hope.test", "GENERAL_USER", target_church=second_church), second_church)

        assert execution_overview(member_actor).count() == 2
        assert execution_overview(outsider).count() == 0
