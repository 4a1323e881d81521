"""
Operations endpoints.

Mounted outside /api/ and left unauthenticated; protect them at the
network level in production.
"""
from django.urls import path

from ops.health import LivenessView, ReadinessView, FullHealthView
from ops.metrics import MetricsView

urlpatterns = [
    path("live", LivenessView.as_view(), name="health-live"),
    path("ready", ReadinessView.as_view(), name="health-ready"),
    path("full", FullHealthView.as_view(), name="health-full"),
]

# Mounted at /_metrics/ by the root urlconf
metrics_patterns = [
    path("", MetricsView.as_view(), name="metrics"),
]
