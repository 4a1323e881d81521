# accounts/apps.py
"""Accounts app configuration."""

from django.apps import AppConfig


class AccountsConfig(AppConfig):
    """Users, churches (tenants), memberships and departments."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "accounts"
    verbose_name = "Accounts & Churches"
