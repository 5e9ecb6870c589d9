"""
Ledger error taxonomy.

Validation errors mean the caller's input was wrong and must not be retried.
TransactionConflict means "try again later"; StorageUnavailable means the
store itself could not be reached.
"""
from typing import Any, Optional


class LedgerError(Exception):
    """Base class for every error raised by the ledger core."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class LedgerValidationError(LedgerError):
    """Caller input violates a precondition."""


class InvalidSettlement(LedgerValidationError):
    pass


class InvalidSplitMethod(LedgerValidationError):
    pass


class EmptyParticipantSet(LedgerValidationError):
    pass


class InvalidExpense(LedgerValidationError):
    pass


class ExpenseLocked(LedgerValidationError):
    """Expense has settled participants and can no longer change."""


class NotFound(LedgerError):
    pass


class TransactionConflict(LedgerError):
    """A unit of work kept conflicting with concurrent writers."""


class StorageUnavailable(LedgerError):
    """The database connection was lost mid-request."""
