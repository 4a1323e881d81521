# common/api.py
"""DRF glue: render LedgerErrors and failed CommandResults consistently."""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from common.errors import LedgerError

logger = logging.getLogger(__name__)


def error_response(error: LedgerError) -> Response:
    if error.status_code >= 500:
        logger.error("Ledger error surfaced to client: %s", error.message, extra=error.context)
    return Response(error.to_dict(), status=error.status_code)


def result_response(result, serializer_class=None, status_code=status.HTTP_200_OK, many=False):
    """Turn a CommandResult into a Response."""
    if not result.success:
        return error_response(result.error)
    if serializer_class is None:
        return Response(result.data, status=status_code)
    return Response(serializer_class(result.data, many=many).data, status=status_code)


def exception_handler(exc, context):
    """REST_FRAMEWORK EXCEPTION_HANDLER: LedgerErrors first, then DRF defaults."""
    if isinstance(exc, LedgerError):
        return error_response(exc)
    return drf_exception_handler(exc, context)
