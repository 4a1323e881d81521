# budgets/views.py
"""
Thin views over the budget commands and queries.

Mutations go through budgets.commands; reads through budgets.queries.
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor
from common.api import result_response
from . import queries
from .commands import (
    approve_budget,
    approve_budget_change,
    create_budget,
    request_budget_change,
    submit_budget,
    update_budget,
)
from .serializers import (
    AvailableItemSerializer,
    AvailableItemsQuerySerializer,
    BudgetChangeRequestSerializer,
    BudgetChangeSerializer,
    BudgetCreateSerializer,
    BudgetFilterSerializer,
    BudgetSerializer,
    BudgetUpdateSerializer,
    CheckBalanceQuerySerializer,
    CheckBalanceSerializer,
    DecisionSerializer,
    DepartmentSummaryQuerySerializer,
    DepartmentSummarySerializer,
    ExecutionQuerySerializer,
    ItemExecutionSerializer,
)


def _query(serializer_class, request):
    serializer = serializer_class(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def _body(serializer_class, request, partial=False):
    serializer = serializer_class(data=request.data, partial=partial)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class BudgetListCreateView(APIView):
    """
    GET /api/budgets/ -> budgets of the active church (filterable)
    POST /api/budgets/ -> create a DRAFT budget with items
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        filters = queries.BudgetFilter(**_query(BudgetFilterSerializer, request))
        return Response(BudgetSerializer(queries.list_budgets(actor, filters), many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        result = create_budget(actor, **_body(BudgetCreateSerializer, request))
        return result_response(result, BudgetSerializer, status.HTTP_201_CREATED)


class BudgetDetailView(APIView):
    """
    GET /api/budgets/<id>/
    PATCH /api/budgets/<id>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        return Response(BudgetSerializer(queries.get_budget(actor, pk)).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)
        result = update_budget(actor, pk, **_body(BudgetUpdateSerializer, request, partial=True))
        return result_response(result, BudgetSerializer)


class BudgetSubmitView(APIView):
    """POST /api/budgets/<id>/submit/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        return result_response(submit_budget(actor, pk), BudgetSerializer)


class BudgetApproveView(APIView):
    """POST /api/budgets/<id>/approve/ {"decision": "APPROVED"|"REJECTED", "reason"?}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        data = _body(DecisionSerializer, request)
        result = approve_budget(actor, pk, data["decision"], data["reason"])
        return result_response(result, BudgetSerializer)


class BudgetChangeRequestView(APIView):
    """POST /api/budgets/<id>/changes/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        result = request_budget_change(actor, pk, **_body(BudgetChangeRequestSerializer, request))
        return result_response(result, BudgetChangeSerializer, status.HTTP_201_CREATED)


class BudgetChangeApproveView(APIView):
    """POST /api/budgets/changes/<id>/approve/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        data = _body(DecisionSerializer, request)
        result = approve_budget_change(actor, pk, data["decision"], data["reason"])
        return result_response(result, BudgetChangeSerializer)


class CheckBalanceView(APIView):
    """GET /api/budgets/items/<id>/balance/?amount=500000"""
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        params = _query(CheckBalanceQuerySerializer, request)
        return Response(CheckBalanceSerializer(queries.check_balance(actor, pk, params["amount"])).data)


class AvailableItemsView(APIView):
    """GET /api/budgets/items/available/?department_id=&category=&min_amount="""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        items = queries.available_items(actor, **_query(AvailableItemsQuerySerializer, request))
        return Response(AvailableItemSerializer(items, many=True).data)


class DepartmentSummaryView(APIView):
    """GET /api/budgets/departments/<id>/summary/?year=2025&quarter="""
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        params = _query(DepartmentSummaryQuerySerializer, request)
        summary = queries.department_summary(actor, pk, params["year"], params.get("quarter"))
        return Response(DepartmentSummarySerializer(summary).data)


class ExecutionOverviewView(APIView):
    """GET /api/budgets/executions/?department_id=&year="""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        executions = queries.execution_overview(actor, **_query(ExecutionQuerySerializer, request))
        return Response(ItemExecutionSerializer(executions, many=True).data)
