# common/errors.py
"""
Typed error taxonomy shared by every app.

Commands return these inside a failed CommandResult; read services raise
them directly. Each error knows its HTTP status so views never have to
guess, and carries a ``context`` dict with the computed numbers a caller
needs to explain the failure (remaining budget, exceed amount, ...).

    ValidationError        400  malformed input, out-of-range values
    BusinessRuleViolation  400  well-formed input the ledger rules reject
    ForbiddenError         403  actor may not act on this resource
    NotFoundError          404  missing or outside the caller's church
    ConflictError          409  duplicates, illegal state transitions
    LedgerIntegrityError   500  derived totals disagree (should never happen)
"""

from decimal import Decimal


class LedgerError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        payload = {"detail": self.message, "code": self.code}
        if self.context:
            payload["context"] = {
                key: str(value) if isinstance(value, Decimal) else value
                for key, value in self.context.items()
            }
        return payload

    def __str__(self):
        return self.message


class ValidationError(LedgerError):
    status_code = 400
    code = "validation_error"


class BusinessRuleViolation(LedgerError):
    status_code = 400
    code = "business_rule_violation"


class ForbiddenError(LedgerError):
    status_code = 403
    code = "forbidden"


class NotFoundError(LedgerError):
    status_code = 404
    code = "not_found"


class ConflictError(LedgerError):
    status_code = 409
    code = "conflict"


class LedgerIntegrityError(LedgerError):
    status_code = 500
    code = "integrity_error"
