# budgets/urls.py
from django.urls import path

from .views import (
    AvailableItemsView,
    BudgetApproveView,
    BudgetChangeApproveView,
    BudgetChangeRequestView,
    BudgetDetailView,
    BudgetListCreateView,
    BudgetSubmitView,
    CheckBalanceView,
    DepartmentSummaryView,
    ExecutionOverviewView,
)

app_name = "budgets"

urlpatterns = [
    path("", BudgetListCreateView.as_view(), name="budget-list"),
    path("<int:pk>/", BudgetDetailView.as_view(), name="budget-detail"),
    path("<int:pk>/submit/", BudgetSubmitView.as_view(), name="budget-submit"),
    path("<int:pk>/approve/", BudgetApproveView.as_view(), name="budget-approve"),
    path("<int:pk>/changes/", BudgetChangeRequestView.as_view(), name="budget-change-request"),
    path("changes/<int:pk>/approve/", BudgetChangeApproveView.as_view(), name="budget-change-approve"),
    path("items/available/", AvailableItemsView.as_view(), name="available-items"),
    path("items/<int:pk>/balance/", CheckBalanceView.as_view(), name="item-balance"),
    path("departments/<int:pk>/summary/", DepartmentSummaryView.as_view(), name="department-summary"),
    path("executions/", ExecutionOverviewView.as_view(), name="execution-overview"),
]
