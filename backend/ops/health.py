"""
Health check endpoints for operations monitoring.

Checks:
- database: every configured database answers SELECT 1
- broker: the Celery broker answers PING (skipped when tasks run eagerly)
- notification_backlog: notifications stored but still undelivered
- execution_drift: budget execution rows that disagree with the expense
  reports they are derived from

Endpoints:
- /_health/live    - liveness probe, no external calls
- /_health/ready   - readiness probe, default database only
- /_health/full    - every check, for dashboards
"""
import logging
import time
from datetime import timedelta
from typing import Any, Callable, Dict

import redis
from django.conf import settings
from django.db import connections
from django.http import JsonResponse
from django.utils import timezone
from django.views import View

from ops.metrics import record_integrity_error

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
SKIPPED = "skipped"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"


def _timed(probe: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    """Run ``probe`` and stamp the result with its duration; failures become UNHEALTHY."""
    start = time.time()
    try:
        result = probe()
    except Exception as e:
        logger.warning("Health probe failed: %s", e)
        result = {"status": UNHEALTHY, "error": str(e)}
    result["duration_ms"] = round((time.time() - start) * 1000, 2)
    return result


def check_database(alias: str = "default") -> Dict[str, Any]:
    def probe():
        conn = connections[alias]
        conn.ensure_connection()
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        return {"status": HEALTHY, "alias": alias}

    return _timed(probe)


def check_databases() -> Dict[str, Any]:
    results = {alias: check_database(alias) for alias in settings.DATABASES}
    all_healthy = all(r["status"] == HEALTHY for r in results.values())
    return {"status": HEALTHY if all_healthy else DEGRADED, "databases": results}


def check_broker() -> Dict[str, Any]:
    broker_url = getattr(settings, "CELERY_BROKER_URL", None)
    if not broker_url or getattr(settings, "CELERY_TASK_ALWAYS_EAGER", False):
        return {"status": SKIPPED, "reason": "Broker not in use"}

    def probe():
        redis.from_url(broker_url).ping()
        return {"status": HEALTHY}

    return _timed(probe)


def check_notification_backlog() -> Dict[str, Any]:
    from notifications.models import Notification

    grace = timedelta(seconds=settings.NOTIFICATION_BACKLOG_GRACE_SECONDS)
    threshold = settings.NOTIFICATION_BACKLOG_THRESHOLD

    def probe():
        stuck = Notification.objects.filter(
            delivered_at__isnull=True,
            created_at__lt=timezone.now() - grace,
        ).count()
        return {
            "status": HEALTHY if stuck < threshold else DEGRADED,
            "undelivered": stuck,
            "threshold": threshold,
        }

    return _timed(probe)


def check_execution_drift() -> Dict[str, Any]:
    """
    Compare each stored execution row against figures derived from the
    item's expense reports. Any difference means a recompute was missed.
    """
    from budgets.execution import committed_amounts, compute_figures
    from budgets.models import BudgetExecution

    def probe():
        drifted = []
        executions = BudgetExecution.objects.select_related("budget_item")
        for execution in executions.iterator():
            item = execution.budget_item
            used, pending = committed_amounts(item.pk)
            expected = compute_figures(item.amount, used, pending)
            stored = (execution.used_amount, execution.pending_amount, execution.remaining_amount)
            if stored != (expected.used_amount, expected.pending_amount, expected.remaining_amount):
                drifted.append(item.pk)

        if drifted:
            record_integrity_error("budget_execution")
            logger.error("Budget execution drift detected", extra={"budget_item_ids": drifted[:20]})
        return {
            "status": HEALTHY if not drifted else DEGRADED,
            "drifted_items": drifted[:20],
            "drifted_count": len(drifted),
        }

    return _timed(probe)


def overall_status(checks: Dict[str, Dict[str, Any]]) -> str:
    statuses = {c.get("status") for c in checks.values()}
    if statuses <= {HEALTHY, SKIPPED}:
        return HEALTHY
    if UNHEALTHY in statuses:
        return UNHEALTHY
    return DEGRADED


def full_health() -> Dict[str, Any]:
    checks = {
        "databases": check_databases(),
        "broker": check_broker(),
        "notification_backlog": check_notification_backlog(),
        "execution_drift": check_execution_drift(),
    }
    return {
        "status": overall_status(checks),
        "checks": checks,
        "version": getattr(settings, "VERSION", "unknown"),
        "environment": "development" if settings.DEBUG else "production",
    }


class LivenessView(View):
    """Liveness probe. Answers without touching the database."""

    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    """Readiness probe: 503 until the default database answers."""

    def get(self, request):
        db_check = check_database("default")
        ready = db_check["status"] == HEALTHY
        return JsonResponse(
            {"status": "ready" if ready else "not_ready", "database": db_check},
            status=200 if ready else 503,
        )


class FullHealthView(View):
    """
    Every check in one report.

    Should be protected in production (internal network only).
    """

    def get(self, request):
        health = full_health()
        return JsonResponse(health, status=200 if health["status"] == HEALTHY else 503)
