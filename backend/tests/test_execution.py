# tests/test_execution.py
"""Tests for budget execution figures and the sufficiency check."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from budgets.execution import check_item_for_expense, compute_figures, recompute
from budgets.models import Budget, BudgetExecution, BudgetItem
from expenses.models import ExpenseReport


def add_report(item, user, amount, status):
    return ExpenseReport.objects.create(
        church=item.budget.church,
        requester=user,
        title=f"{status} {amount}",
        amount=Decimal(amount),
        budget_item=item,
        status=status,
    )


class TestComputeFigures:

    def test_remaining_and_rate(self):
        figures = compute_figures(Decimal("1000000"), Decimal("250000"), Decimal("100000"))

        assert figures.remaining_amount == Decimal("650000.00")
        assert figures.execution_rate == Decimal("25.00")

    def test_empty_item_has_zero_rate(self):
        figures = compute_figures(Decimal("0"), Decimal("0"), Decimal("0"))

        assert figures.execution_rate == Decimal("0")
        assert figures.remaining_amount == Decimal("0")


@pytest.mark.django_db
class TestRecompute:

    def test_counts_each_status_once(self, item_a, member_user):
        add_report(item_a, member_user, "100000", ExpenseReport.Status.APPROVED)
        add_report(item_a, member_user, "50000", ExpenseReport.Status.PAID)
        add_report(item_a, member_user, "30000", ExpenseReport.Status.PENDING)
        add_report(item_a, member_user, "999999", ExpenseReport.Status.REJECTED)

        execution = recompute(item_a.pk)

        assert execution.used_amount == Decimal("150000.00")
        assert execution.pending_amount == Decimal("30000.00")
        assert execution.remaining_amount == Decimal("820000.00")
        assert execution.used_amount + execution.pending_amount + execution.remaining_amount == item_a.amount
        assert execution.execution_rate == Decimal("15.00")

    def test_is_idempotent(self, item_a, member_user):
        add_report(item_a, member_user, "100000", ExpenseReport.Status.PENDING)

        first = recompute(item_a.pk)
        second = recompute(item_a.pk)

        assert (first.used_amount, first.pending_amount, first.remaining_amount) == (
            second.used_amount,
            second.pending_amount,
            second.remaining_amount,
        )

    def test_missing_row_is_recreated(self, item_a):
        BudgetExecution.objects.filter(budget_item=item_a).delete()

        execution = recompute(item_a.pk)

        assert execution.pk is not None
        assert execution.remaining_amount == item_a.amount

    def test_missing_item_is_skipped(self, db):
        assert recompute(987654) is None


@pytest.mark.django_db
class TestCheckItemForExpense:

    def test_fits(self, item_a):
        check = check_item_for_expense(item_a, "1000000")

        assert check.is_valid
        assert check.exceed_amount == Decimal("0")

    def test_shortfall(self, item_a, member_user):
        add_report(item_a, member_user, "900000", ExpenseReport.Status.PENDING)

        check = check_item_for_expense(item_a, "150000")

        assert not check.is_valid
        assert check.remaining_amount == Decimal("100000.00")
        assert check.exceed_amount == Decimal("50000.00")
        error = check.to_error()
        assert error.context["exceed_amount"] == Decimal("50000.00")

    def test_excluded_report_does_not_count(self, item_a, member_user):
        report = add_report(item_a, member_user, "900000", ExpenseReport.Status.PENDING)

        check = check_item_for_expense(item_a, "950000", exclude_expense_id=report.pk)

        assert check.is_valid

    def test_inactive_budget_refuses(self, item_a):
        Budget.objects.filter(pk=item_a.budget_id).update(status=Budget.Status.DRAFT)
        item = BudgetItem.objects.select_related("budget").get(pk=item_a.pk)

        check = check_item_for_expense(item, "1")

        assert not check.is_valid
        assert "not active" in check.error

    def test_outside_period_refuses(self, item_a):
        after_end = item_a.budget.end_date + timedelta(days=1)

        check = check_item_for_expense(item_a, "1", today=after_end)

        assert not check.is_valid
        assert "outside the budget period" in check.error

    def test_period_bounds_are_inclusive(self, item_a):
        budget = item_a.budget

        assert check_item_for_expense(item_a, "1", today=budget.start_date).is_valid
        assert check_item_for_expense(item_a, "1", today=budget.end_date).is_valid
        assert budget.start_date < timezone.localdate() < budget.end_date
