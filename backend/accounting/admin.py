# accounting/admin.py
"""
Django admin configuration for ledger models.

The admin is read-only: postings and chart changes must go through
accounting/commands.py so roles and ledger rules are enforced.
"""

from django.contrib import admin

from .models import AccountCode, Transaction


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AccountCode)
class AccountCodeAdmin(ReadOnlyAdmin):
    list_display = ("code", "name", "account_type", "level", "church", "allow_transaction", "is_system", "status")
    list_filter = ("account_type", "level", "status", "is_system")
    search_fields = ("code", "name", "english_name")
    ordering = ("order", "code")


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyAdmin):
    list_display = ("transaction_date", "church", "debit_account", "credit_account", "amount", "reference")
    list_filter = ("church",)
    search_fields = ("description", "reference", "voucher_number")
    date_hierarchy = "transaction_date"
