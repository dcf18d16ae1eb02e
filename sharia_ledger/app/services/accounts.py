from __future__ import annotations

import logging
import secrets
import time
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..core.config import get_settings
from ..core.db import atomic, read_only
from ..core.errors import (
    AccountInactiveError,
    ConflictError,
    DuplicateAccountNumberError,
    UserNotFoundError,
)
from ..models import AccountModel, AccountResponse, AccountStatus, AccountType, UserModel
from ..models.db import utcnow
from .repository import LedgerRepository
from .users import can_operate
from .validation import require_existing


logger = logging.getLogger(__name__)


def generate_account_number(prefix: str = "BSA") -> str:
    """Millisecond timestamp plus a random suffix so same-instant creates differ."""
    return f"{prefix}{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"


def account_to_response(account: AccountModel) -> AccountResponse:
    return AccountResponse(
        account_number=account.account_number,
        account_name=account.account_name,
        account_type=account.account_type,
        balance=account.balance,
        minimum_balance=account.minimum_balance,
        status=account.status,
        user_id=account.user_id,
        created_at=account.created_at,
    )


class AccountService:
    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
        number_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)
        self.settings = get_settings()
        self.number_factory = number_factory or (
            lambda: generate_account_number(self.settings.account_number_prefix)
        )

    def _get_account(self, account_number: str) -> AccountModel:
        return require_existing(self.repository.get_account(account_number), account_number)

    def _get_owner(self, user_id: UUID) -> UserModel:
        owner = self.repository.get_user(user_id)
        if owner is None or owner.deleted:
            raise UserNotFoundError(f"User {user_id} not found")
        return owner

    def _insert_with_fresh_number(self, build: Callable[[str], AccountModel]) -> AccountModel:
        """Insert the account under the first candidate number nobody holds.

        Each insert runs in a savepoint, so a number taken by a concurrent
        create between the lookup and the flush costs one attempt instead of
        the whole unit of work.
        """
        attempts = self.settings.account_number_max_attempts
        for attempt in range(1, attempts + 1):
            candidate = self.number_factory()
            if not self.repository.account_number_exists(candidate):
                try:
                    with self.session.begin_nested():
                        return self.repository.add_account(build(candidate))
                except IntegrityError:
                    pass
            logger.warning(
                "account.number_collision",
                extra={"account_number": candidate, "attempt": attempt},
            )
        raise DuplicateAccountNumberError(
            f"Could not generate a unique account number after {attempts} attempts"
        )

    def create_account(
        self,
        user_id: UUID,
        account_type: AccountType,
        minimum_balance: Optional[Decimal] = None,
        account_name: Optional[str] = None,
    ) -> AccountResponse:
        if minimum_balance is None:
            minimum_balance = self.settings.default_minimum_balance
        if minimum_balance < 0:
            raise ValueError("Minimum balance cannot be negative")

        with atomic(self.session):
            owner = self._get_owner(user_id)
            if not can_operate(owner):
                raise AccountInactiveError(f"User {user_id} may not open accounts")

            account = self._insert_with_fresh_number(
                lambda number: AccountModel(
                    account_number=number,
                    account_name=account_name or owner.full_name,
                    account_type=account_type,
                    balance=Decimal("0"),
                    minimum_balance=minimum_balance,
                    status=AccountStatus.ACTIVE,
                    user_id=owner.id,
                )
            )
            response = account_to_response(account)
        logger.info(
            "account.created",
            extra={
                "account_number": response.account_number,
                "user_id": str(user_id),
                "account_type": account_type.value,
            },
        )
        return response

    def get_account(self, account_number: str) -> AccountResponse:
        with read_only(self.session):
            return account_to_response(self._get_account(account_number))

    def list_accounts(self, user_id: UUID) -> list[AccountResponse]:
        with read_only(self.session):
            self._get_owner(user_id)
            return [
                account_to_response(account)
                for account in self.repository.list_accounts(user_id)
            ]

    def change_status(self, account_number: str, status: AccountStatus) -> AccountResponse:
        with atomic(self.session):
            locked = self.repository.lock_accounts([account_number])
            account = require_existing(locked.get(account_number), account_number)
            if account.status == AccountStatus.CLOSED and status != AccountStatus.CLOSED:
                raise ConflictError(f"Account {account_number} is closed")
            if status == AccountStatus.CLOSED and account.balance != 0:
                raise ConflictError(f"Account {account_number} still holds a balance")
            previous = account.status
            account.status = status
            account.updated_at = utcnow()
            self.repository.save_account(account)
            response = account_to_response(account)
        logger.info(
            "account.status_changed",
            extra={
                "account_number": account_number,
                "from": previous.value,
                "to": status.value,
            },
        )
        return response

    def delete_account(self, account_number: str) -> None:
        """Soft-delete: the row stays so its transaction history keeps resolving."""
        with atomic(self.session):
            locked = self.repository.lock_accounts([account_number])
            account = require_existing(locked.get(account_number), account_number)
            if account.balance != 0:
                raise ConflictError(f"Account {account_number} still holds a balance")
            account.status = AccountStatus.CLOSED
            account.deleted = True
            account.updated_at = utcnow()
            self.repository.save_account(account)
        logger.info("account.deleted", extra={"account_number": account_number})
