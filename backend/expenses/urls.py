from django.urls import path

from .views import (
    ExpenseApproveView,
    ExpenseDetailView,
    ExpenseListCreateView,
    ExpenseSubmitView,
    PendingApprovalsView,
    ValidateBudgetView,
    WorkflowStepView,
)

app_name = "expenses"

urlpatterns = [
    path("", ExpenseListCreateView.as_view(), name="expense-list"),
    path("validate-budget/", ValidateBudgetView.as_view(), name="validate-budget"),
    path("pending-approvals/", PendingApprovalsView.as_view(), name="pending-approvals"),
    path("<int:pk>/", ExpenseDetailView.as_view(), name="expense-detail"),
    path("<int:pk>/submit/", ExpenseSubmitView.as_view(), name="expense-submit"),
    path("<int:pk>/workflow-step/", WorkflowStepView.as_view(), name="workflow-step"),
    path("<int:pk>/approve/", ExpenseApproveView.as_view(), name="expense-approve"),
]
