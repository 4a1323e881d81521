"""
Prometheus metrics endpoint.

Exposes application metrics in Prometheus format for scraping.

Metrics exposed:
- churchledger_transactions_posted_total: Journal postings
- churchledger_expense_transitions_total: Expense workflow transitions by kind
- churchledger_budget_changes_applied_total: Approved budget changes by type
- churchledger_integrity_errors_total: Derived-total mismatches by check
- churchledger_expense_reports: Expense reports by church and status
- churchledger_request_duration_seconds: HTTP request duration histogram
"""
import logging
import re
import time

from django.db.models import Count
from django.http import HttpResponse
from django.views import View
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

logger = logging.getLogger(__name__)

_transactions_posted = Counter(
    "churchledger_transactions_posted_total",
    "Number of journal transactions posted",
)

_expense_transitions = Counter(
    "churchledger_expense_transitions_total",
    "Expense workflow transitions",
    ["transition"],
)

_budget_changes_applied = Counter(
    "churchledger_budget_changes_applied_total",
    "Approved budget changes applied to items",
    ["change_type"],
)

_integrity_errors = Counter(
    "churchledger_integrity_errors_total",
    "Derived totals that failed their consistency check",
    ["check"],
)

_expense_reports = Gauge(
    "churchledger_expense_reports",
    "Expense reports by church and status",
    ["church_slug", "status"],
)

_request_duration = Histogram(
    "churchledger_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


def record_transaction_posted():
    _transactions_posted.inc()


def record_expense_transition(transition: str):
    _expense_transitions.labels(transition=transition).inc()


def record_budget_change_applied(change_type: str):
    _budget_changes_applied.labels(change_type=change_type).inc()


def record_integrity_error(check: str):
    _integrity_errors.labels(check=check).inc()


def collect_metrics():
    """Refresh gauges from the database."""
    from expenses.models import ExpenseReport

    try:
        rows = (
            ExpenseReport.objects
            .values("church__slug", "status")
            .annotate(count=Count("id"))
        )
        for row in rows:
            _expense_reports.labels(
                church_slug=row["church__slug"] or "unknown",
                status=row["status"],
            ).set(row["count"])
    except Exception as e:
        logger.error(f"Error collecting metrics: {e}")


def get_prometheus_response():
    """Generate Prometheus metrics response."""
    try:
        collect_metrics()
        output = generate_latest()
        return HttpResponse(output, content_type=CONTENT_TYPE_LATEST)
    except Exception as e:
        logger.error(f"Error generating metrics: {e}")
        return HttpResponse(
            f"# Error generating metrics: {e}\n",
            content_type="text/plain",
            status=500,
        )


class MetricsView(View):
    """
    Prometheus metrics endpoint.

    Exposes metrics in Prometheus format at /_metrics.
    Should be protected in production (internal network only).
    """

    def get(self, request):
        return get_prometheus_response()


def track_request_metrics(get_response):
    """
    Middleware to track request duration metrics.

    Add to MIDDLEWARE after SecurityMiddleware:
        "ops.metrics.track_request_metrics",
    """

    def middleware(request):
        start = time.time()
        status = 500
        try:
            response = get_response(request)
            status = response.status_code
            return response
        finally:
            # Normalize endpoint for cardinality control
            endpoint = re.sub(r"/\d+/", "/{id}/", request.path)
            _request_duration.labels(
                method=request.method,
                endpoint=endpoint[:50],
                status=f"{status // 100}xx",
            ).observe(time.time() - start)

    return middleware
