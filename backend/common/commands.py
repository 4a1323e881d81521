# common/commands.py
"""
Result wrapper returned by every command.

Commands are the single point where state changes happen. Views call
commands; commands check roles, apply policies, write rows and return a
CommandResult. A failed result always carries one typed LedgerError.
"""

from common.errors import LedgerError


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = post_transaction(actor, debit_account_id=..., ...)
        if result.success:
            txn = result.data
        else:
            error = result.error   # LedgerError subclass
    """

    def __init__(self, success: bool, data=None, error: LedgerError = None):
        self.success = success
        self.data = data
        self.error = error

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: LedgerError):
        return cls(success=False, error=error)

    def __repr__(self):
        if self.success:
            return f"<CommandResult ok data={self.data!r}>"
        return f"<CommandResult fail {self.error.code}: {self.error.message}>"
