"""
Celery application configuration.

Runs notification delivery off the request path.

Usage:
    # Start worker
    celery -A churchledger_backend worker -l INFO
"""
import os

from celery import Celery

# Set default Django settings
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "churchledger_backend.settings")

app = Celery("churchledger_backend")

# Load config from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()
