"""Typed failures raised by the ledger services.

Business-rule errors are recoverable and leave the store untouched.
``StoreUnavailableError`` is the only one that signals the database itself
failed, so callers can decide whether to retry.
"""


class LedgerError(Exception):
    """Base class for every error raised by the ledger core."""


class NotFoundError(LedgerError):
    """Raised when a referenced record is absent or soft-deleted."""


class AccountNotFoundError(NotFoundError):
    """Raised when an account number is missing from the store."""


class UserNotFoundError(NotFoundError):
    """Raised when a user id is missing from the store."""


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction id is missing from the store."""


class ConflictError(LedgerError):
    """Raised when a uniqueness rule would be violated."""


class DuplicateAccountNumberError(ConflictError):
    """Raised when no free account number could be generated."""


class DuplicateUserError(ConflictError):
    """Raised when a username or email is already registered."""


class DuplicateIdempotencyKeyError(ConflictError):
    """Raised when the same idempotency key is reused with different input."""


class InvalidAmountError(LedgerError):
    """Raised when an amount is zero or negative."""


class InvalidTransferError(LedgerError):
    """Raised when a transfer names the same account on both sides."""


class AccountInactiveError(LedgerError):
    """Raised when an account (or its owner) may not take part in a movement."""


class InsufficientBalanceError(LedgerError):
    """Raised when a debit would push the balance below the minimum floor."""


class StoreUnavailableError(LedgerError):
    """Raised when the database could not run or commit the unit of work."""
