"""Eligibility checks shared by every money movement."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..core.errors import (
    AccountInactiveError,
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidTransferError,
)
from ..models import AccountModel, AccountStatus
from ..models.db import CENT


# Largest balance whose cent count still fits a signed 64-bit column.
MAX_BALANCE = Decimal("9999999999999999.99")


def require_positive_amount(amount: Decimal) -> Decimal:
    """Return the amount at cent scale; fractions of a cent are rejected."""
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {amount}")
    if amount > MAX_BALANCE:
        raise InvalidAmountError(f"Amount {amount} exceeds the maximum of {MAX_BALANCE}")
    if amount != amount.quantize(CENT):
        raise InvalidAmountError(f"Amount {amount} has more than two decimal places")
    return amount.quantize(CENT)


def require_existing(
    account: Optional[AccountModel], account_number: str, role: str = "Account"
) -> AccountModel:
    if account is None or account.deleted:
        raise AccountNotFoundError(f"{role} {account_number} not found")
    return account


def require_active(account: AccountModel) -> AccountModel:
    if account.status != AccountStatus.ACTIVE:
        raise AccountInactiveError(
            f"Account {account.account_number} is {account.status.value}"
        )
    return account


def require_eligible(
    account: Optional[AccountModel], account_number: str, role: str = "Account"
) -> AccountModel:
    """An account may move money when it exists, is not deleted and is active."""
    return require_active(require_existing(account, account_number, role))


def require_distinct(source_account_number: str, target_account_number: str) -> None:
    if source_account_number == target_account_number:
        raise InvalidTransferError("Cannot transfer to the same account")


def require_within_floor(account: AccountModel, amount: Decimal) -> Decimal:
    remaining = account.balance - amount
    floor = max(account.minimum_balance, Decimal("0"))
    if remaining < floor:
        raise InsufficientBalanceError(
            f"Insufficient balance in account {account.account_number}"
        )
    return remaining


def require_within_ceiling(account: AccountModel, amount: Decimal) -> Decimal:
    credited = account.balance + amount
    if credited > MAX_BALANCE:
        raise InvalidAmountError(
            f"Account {account.account_number} cannot hold more than {MAX_BALANCE}"
        )
    return credited
