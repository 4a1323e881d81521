# accounting/apps.py
"""Accounting app configuration."""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    """Chart of accounts and the transaction journal."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Ledger"
