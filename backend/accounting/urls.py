# accounting/urls.py
"""
URL configuration for the ledger API.

Endpoints:
- /accounts/ - Chart of accounts
- /transactions/ - Journal postings
- /trial-balance/, /general-ledger/ - Derived reports
"""

from django.urls import path

from .views import (
    AccountListCreateView,
    AccountDetailView,
    AccountLedgerView,
    AccountTreeView,
    ValidateCodeView,
    TransactionAccountsView,
    TransactionListCreateView,
    TransactionDetailView,
    TrialBalanceView,
    GeneralLedgerView,
)

app_name = "accounting"

urlpatterns = [
    # Accounts
    path("accounts/", AccountListCreateView.as_view(), name="account-list"),
    path("accounts/tree/", AccountTreeView.as_view(), name="account-tree"),
    path("accounts/validate-code/", ValidateCodeView.as_view(), name="account-validate-code"),
    path("accounts/postable/", TransactionAccountsView.as_view(), name="account-postable"),
    path("accounts/<int:pk>/", AccountDetailView.as_view(), name="account-detail"),
    path("accounts/<int:pk>/ledger/", AccountLedgerView.as_view(), name="account-ledger"),

    # Transactions
    path("transactions/", TransactionListCreateView.as_view(), name="transaction-list"),
    path("transactions/<int:pk>/", TransactionDetailView.as_view(), name="transaction-detail"),

    # Reports
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("general-ledger/", GeneralLedgerView.as_view(), name="general-ledger"),
]
