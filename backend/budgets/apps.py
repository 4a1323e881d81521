# budgets/apps.py
"""Budgets app configuration."""

from django.apps import AppConfig


class BudgetsConfig(AppConfig):
    """Department budgets, budget changes and execution counters."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "budgets"
    verbose_name = "Budgets"
