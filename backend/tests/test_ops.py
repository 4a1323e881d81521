# tests/test_ops.py
"""Tests for health checks and the metrics endpoint."""

from decimal import Decimal

import pytest

from budgets.models import BudgetExecution
from ops import health


@pytest.mark.django_db
class TestHealthEndpoints:

    def test_live(self, client):
        response = client.get("/_health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_ready(self, client):
        response = client.get("/_health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_full_is_healthy_on_a_clean_database(self, client, item_a):
        response = client.get("/_health/full")

        body = response.json()
        assert response.status_code == 200, body
        assert body["checks"]["broker"]["status"] == "skipped"
        assert body["checks"]["execution_drift"]["drifted_count"] == 0


@pytest.mark.django_db
class TestExecutionDrift:

    def test_stale_execution_row_is_reported(self, item_a):
        BudgetExecution.objects.filter(budget_item=item_a).update(used_amount=Decimal("1.00"))

        result = health.check_execution_drift()

        assert result["status"] == "degraded"
        assert result["drifted_items"] == [item_a.pk]

    def test_overall_status_prefers_the_worst_check(self):
        assert health.overall_status({"a": {"status": "healthy"}, "b": {"status": "skipped"}}) == "healthy"
        assert health.overall_status({"a": {"status": "healthy"}, "b": {"status": "degraded"}}) == "degraded"
        assert health.overall_status({"a": {"status": "degraded"}, "b": {"status": "unhealthy"}}) == "unhealthy"


@pytest.mark.django_db
class TestMetricsEndpoint:

    def test_exposes_ledger_counters(self, client, church):
        response = client.get("/_metrics/")

        assert response.status_code == 200
        assert b"churchledger_transactions_posted_total" in response.content
        assert b"churchledger_request_duration_seconds" in response.content
