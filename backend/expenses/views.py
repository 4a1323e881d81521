# expenses/views.py
"""
Thin views over the expense commands and queries.

Workflow commands get a NotificationQueue built here; tests call the
commands directly with their own notifier.
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor
from common.api import result_response
from notifications.service import NotificationQueue
from . import queries
from .commands import (
    approve_expense,
    approve_workflow_step,
    create_expense,
    delete_expense,
    submit_expense,
    update_expense,
)
from .serializers import (
    BudgetValidationSerializer,
    ExpenseCreateSerializer,
    ExpenseDecisionSerializer,
    ExpenseFilterSerializer,
    ExpenseReportSerializer,
    ExpenseUpdateSerializer,
    ValidateBudgetQuerySerializer,
    WorkflowStepSerializer,
)


def _query(serializer_class, request):
    serializer = serializer_class(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def _body(serializer_class, request, partial=False):
    serializer = serializer_class(data=request.data, partial=partial)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class ExpenseListCreateView(APIView):
    """
    GET /api/expenses/ -> reports of the active church (filterable)
    POST /api/expenses/ -> create a report with its approval steps
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        filters = queries.ExpenseFilter(**_query(ExpenseFilterSerializer, request))
        return Response(ExpenseReportSerializer(queries.list_expenses(actor, filters), many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        result = create_expense(actor, **_body(ExpenseCreateSerializer, request))
        return result_response(result, ExpenseReportSerializer, status.HTTP_201_CREATED)


class ExpenseDetailView(APIView):
    """
    GET /api/expenses/<id>/
    PATCH /api/expenses/<id>/
    DELETE /api/expenses/<id>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        return Response(ExpenseReportSerializer(queries.get_expense(actor, pk)).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)
        result = update_expense(actor, pk, **_body(ExpenseUpdateSerializer, request, partial=True))
        return result_response(result, ExpenseReportSerializer)

    def delete(self, request, pk):
        actor = resolve_actor(request)
        result = delete_expense(actor, pk)
        if result.success:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return result_response(result)


class ExpenseSubmitView(APIView):
    """POST /api/expenses/<id>/submit/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        result = submit_expense(actor, pk, notifier=NotificationQueue())
        return result_response(result, ExpenseReportSerializer)


class WorkflowStepView(APIView):
    """POST /api/expenses/<id>/workflow-step/ {"action": "APPROVE"|"REJECT", "comment"?, "step_order"?}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        data = _body(WorkflowStepSerializer, request)
        result = approve_workflow_step(
            actor,
            pk,
            data["action"],
            comment=data["comment"],
            step_order=data["step_order"],
            notifier=NotificationQueue(),
        )
        return result_response(result, ExpenseReportSerializer)


class ExpenseApproveView(APIView):
    """POST /api/expenses/<id>/approve/ {"decision": "APPROVED"|"REJECTED"|"PAID", "rejection_reason"?}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        data = _body(ExpenseDecisionSerializer, request)
        result = approve_expense(
            actor,
            pk,
            data["decision"],
            rejection_reason=data["rejection_reason"],
            notifier=NotificationQueue(),
        )
        return result_response(result, ExpenseReportSerializer)


class ValidateBudgetView(APIView):
    """GET /api/expenses/validate-budget/?budget_item_id=&amount="""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        result = queries.validate_budget_expense(actor, **_query(ValidateBudgetQuerySerializer, request))
        return Response(BudgetValidationSerializer(result).data)


class PendingApprovalsView(APIView):
    """GET /api/expenses/pending-approvals/"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        return Response(ExpenseReportSerializer(queries.pending_approvals(actor), many=True).data)
