# expenses/apps.py
"""Expenses app configuration."""

from django.apps import AppConfig


class ExpensesConfig(AppConfig):
    """Expense reports and the three-step approval workflow."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "expenses"
    verbose_name = "Expenses"
