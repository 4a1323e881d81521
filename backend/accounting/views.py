# accounting/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: roles, business rules, writes.
Read services (queries, journal) raise LedgerErrors, which the DRF
exception handler in common.api renders.
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor
from common.api import result_response
from . import journal, queries
from .commands import (
    create_account,
    update_account,
    deactivate_account,
    post_transaction,
    delete_transaction,
)
from .serializers import (
    AccountCodeSerializer,
    AccountCreateSerializer,
    AccountUpdateSerializer,
    AccountFilterSerializer,
    AccountLedgerSerializer,
    AccountTreeQuerySerializer,
    DateRangeSerializer,
    GeneralLedgerQuerySerializer,
    TransactionSerializer,
    TransactionCreateSerializer,
    TransactionFilterSerializer,
    TrialBalanceQuerySerializer,
    TrialBalanceSerializer,
    ValidateCodeQuerySerializer,
)


def _query(serializer_class, request):
    serializer = serializer_class(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


# =============================================================================
# Account Views
# =============================================================================

class AccountListCreateView(APIView):
    """
    GET /api/accounting/accounts/ -> accounts visible to the active church
    POST /api/accounting/accounts/ -> create a church account
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        filters = queries.AccountFilter(**_query(AccountFilterSerializer, request))
        accounts = queries.list_accounts(actor, filters).select_related("parent")
        return Response(AccountCodeSerializer(accounts, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = AccountCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = create_account(actor, **serializer.validated_data)
        return result_response(result, AccountCodeSerializer, status.HTTP_201_CREATED)


class AccountDetailView(APIView):
    """
    GET /api/accounting/accounts/<id>/
    PATCH /api/accounting/accounts/<id>/
    DELETE /api/accounting/accounts/<id>/ -> deactivate (soft delete)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        account = queries.get_visible_account(actor, pk)
        return Response(AccountCodeSerializer(account).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)
        serializer = AccountUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        result = update_account(actor, pk, **serializer.validated_data)
        return result_response(result, AccountCodeSerializer)

    def delete(self, request, pk):
        actor = resolve_actor(request)
        result = deactivate_account(actor, pk)
        return result_response(result, AccountCodeSerializer)


class ValidateCodeView(APIView):
    """GET /api/accounting/accounts/validate-code/?code=1-01&exclude_id=7"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        params = _query(ValidateCodeQuerySerializer, request)
        return Response(queries.validate_code(actor, params["code"], params.get("exclude_id")))


class AccountTreeView(APIView):
    """GET /api/accounting/accounts/tree/"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        return Response(queries.account_tree(actor, **_query(AccountTreeQuerySerializer, request)))


class TransactionAccountsView(APIView):
    """GET /api/accounting/accounts/postable/ -> leaf accounts for entry forms"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        accounts = queries.transaction_accounts(
            actor,
            account_type=request.query_params.get("account_type") or None,
            search=request.query_params.get("search") or None,
        )
        return Response(AccountCodeSerializer(accounts, many=True).data)


class AccountLedgerView(APIView):
    """GET /api/accounting/accounts/<id>/ledger/?start_date=&end_date="""
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        params = _query(DateRangeSerializer, request)
        ledger = journal.get_account_ledger(actor, pk, params.get("start_date"), params.get("end_date"))
        return Response(AccountLedgerSerializer(ledger).data)


# =============================================================================
# Transaction Views
# =============================================================================

class TransactionListCreateView(APIView):
    """
    GET /api/accounting/transactions/
    POST /api/accounting/transactions/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        filters = queries.TransactionFilter(**_query(TransactionFilterSerializer, request))
        txns = queries.list_transactions(actor, filters)
        return Response(TransactionSerializer(txns, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = TransactionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = post_transaction(actor, **serializer.validated_data)
        return result_response(result, TransactionSerializer, status.HTTP_201_CREATED)


class TransactionDetailView(APIView):
    """
    GET /api/accounting/transactions/<id>/
    DELETE /api/accounting/transactions/<id>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        return Response(TransactionSerializer(queries.get_transaction(actor, pk)).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)
        result = delete_transaction(actor, pk)
        if not result.success:
            return result_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Reports
# =============================================================================

class TrialBalanceView(APIView):
    """GET /api/accounting/trial-balance/?start_date=&end_date=&level="""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        params = _query(TrialBalanceQuerySerializer, request)
        report = journal.get_trial_balance(
            actor,
            params.get("start_date"),
            params.get("end_date"),
            params.get("level"),
        )
        return Response(TrialBalanceSerializer(report).data)


class GeneralLedgerView(APIView):
    """GET /api/accounting/general-ledger/?start_date=&end_date=&account_ids=1&account_ids=2"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        params = _query(GeneralLedgerQuerySerializer, request)
        ledgers = journal.get_general_ledger(
            actor,
            params.get("start_date"),
            params.get("end_date"),
            params.get("account_ids"),
        )
        return Response(AccountLedgerSerializer(ledgers, many=True).data)
