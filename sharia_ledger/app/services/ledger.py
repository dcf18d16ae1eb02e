from __future__ import annotations

import json
import logging
import uuid
from decimal import Decimal
from typing import Any, Optional, Tuple

from sqlmodel import Session

from ..core.config import get_settings
from ..core.db import atomic, read_only
from ..core.errors import (
    DuplicateIdempotencyKeyError,
    LedgerError,
    StoreUnavailableError,
    TransactionNotFoundError,
)
from ..models import (
    AccountModel,
    StatementResponse,
    TransactionModel,
    TransactionResponse,
    TransactionStatus,
    TransactionType,
)
from .repository import LedgerRepository
from .validation import (
    require_distinct,
    require_eligible,
    require_existing,
    require_positive_amount,
    require_within_ceiling,
    require_within_floor,
)


logger = logging.getLogger(__name__)


def generate_transaction_id() -> str:
    return "TRX" + uuid.uuid4().hex[:10].upper()


class LedgerService:
    """Money movements over the account store.

    Every public mutation runs inside one database transaction: the balance
    change(s) and the transaction record are committed together or not at
    all. Accounts are row-locked before their balance is read for update.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)
        self.settings = get_settings()

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _encode_signature(self, signature: Tuple[Any, ...]) -> str:
        return json.dumps(signature, sort_keys=True)

    def _check_idempotency(
        self,
        route: str,
        idempotency_key: Optional[str],
        request_signature: Tuple[Any, ...],
    ) -> Optional[TransactionResponse]:
        if idempotency_key is None:
            return None
        record = self.repository.fetch_idempotency(route, idempotency_key)
        if record is None:
            return None

        if record.request_signature != self._encode_signature(request_signature):
            raise DuplicateIdempotencyKeyError(
                "Idempotency key was previously used with different parameters"
            )

        logger.info(
            "idempotent.hit",
            extra={"route": route, "idempotency_key": idempotency_key},
        )
        return TransactionResponse.model_validate_json(record.response_payload)

    def _record_idempotent(
        self,
        route: str,
        idempotency_key: Optional[str],
        request_signature: Tuple[Any, ...],
        response: TransactionResponse,
    ) -> None:
        if idempotency_key is None:
            return
        self.repository.save_idempotency(
            route=route,
            key=idempotency_key,
            signature=self._encode_signature(request_signature),
            payload=response.model_dump_json(),
        )

    def _transaction_to_response(
        self,
        record: TransactionModel,
        account_number: str,
        target_account_number: Optional[str] = None,
    ) -> TransactionResponse:
        return TransactionResponse(
            transaction_id=record.transaction_id,
            type=record.type,
            amount=record.amount,
            description=record.description,
            reference_number=record.reference_number,
            account_number=account_number,
            target_account_number=target_account_number,
            status=record.status,
            transaction_date=record.transaction_date,
            balance_after=record.balance_after,
            target_balance_after=record.target_balance_after,
        )

    def _account_number_for(self, account_id: Optional[Any]) -> Optional[str]:
        if account_id is None:
            return None
        account = self.repository.get_account_by_id(account_id)
        return account.account_number if account is not None else None

    def _lock_eligible(self, account_number: str) -> AccountModel:
        locked = self.repository.lock_accounts([account_number])
        return require_eligible(locked.get(account_number), account_number)

    def _post_single(
        self,
        account: AccountModel,
        transaction_type: TransactionType,
        amount: Decimal,
        new_balance: Decimal,
        description: Optional[str],
    ) -> TransactionModel:
        account.balance = new_balance
        self.repository.save_account(account)
        return self.repository.append_transaction(
            TransactionModel(
                transaction_id=generate_transaction_id(),
                type=transaction_type,
                amount=amount,
                description=description,
                account_id=account.id,
                status=TransactionStatus.SUCCESS,
                balance_after=new_balance,
            )
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def deposit(
        self,
        account_number: str,
        amount: Decimal,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResponse:
        try:
            amount = require_positive_amount(amount)
            request_signature = ("deposit", account_number, str(amount), description)
            with atomic(self.session):
                cached = self._check_idempotency("deposit", idempotency_key, request_signature)
                if cached is not None:
                    return cached

                account = self._lock_eligible(account_number)
                record = self._post_single(
                    account,
                    TransactionType.DEPOSIT,
                    amount,
                    require_within_ceiling(account, amount),
                    description,
                )
                response = self._transaction_to_response(record, account_number)
                self._record_idempotent("deposit", idempotency_key, request_signature, response)
        except StoreUnavailableError:
            logger.error(
                "account.deposit.failed",
                extra={"account_number": account_number},
                exc_info=True,
            )
            raise
        except LedgerError as exc:
            logger.warning(
                "account.deposit.rejected",
                extra={"account_number": account_number, "reason": type(exc).__name__},
            )
            raise

        logger.info(
            "account.deposit",
            extra={
                "account_number": account_number,
                "transaction_id": response.transaction_id,
                "amount": str(amount),
                "balance": str(response.balance_after),
            },
        )
        return response

    def withdraw(
        self,
        account_number: str,
        amount: Decimal,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResponse:
        try:
            amount = require_positive_amount(amount)
            request_signature = ("withdraw", account_number, str(amount), description)
            with atomic(self.session):
                cached = self._check_idempotency("withdraw", idempotency_key, request_signature)
                if cached is not None:
                    return cached

                account = self._lock_eligible(account_number)
                remaining = require_within_floor(account, amount)
                record = self._post_single(
                    account,
                    TransactionType.WITHDRAWAL,
                    amount,
                    remaining,
                    description,
                )
                response = self._transaction_to_response(record, account_number)
                self._record_idempotent("withdraw", idempotency_key, request_signature, response)
        except StoreUnavailableError:
            logger.error(
                "account.withdraw.failed",
                extra={"account_number": account_number},
                exc_info=True,
            )
            raise
        except LedgerError as exc:
            logger.warning(
                "account.withdraw.rejected",
                extra={"account_number": account_number, "reason": type(exc).__name__},
            )
            raise

        logger.info(
            "account.withdraw",
            extra={
                "account_number": account_number,
                "transaction_id": response.transaction_id,
                "amount": str(amount),
                "balance": str(response.balance_after),
            },
        )
        return response

    def transfer(
        self,
        source_account_number: str,
        target_account_number: str,
        amount: Decimal,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResponse:
        try:
            require_distinct(source_account_number, target_account_number)
            amount = require_positive_amount(amount)
            request_signature = (
                "transfer",
                source_account_number,
                target_account_number,
                str(amount),
                description,
            )
            with atomic(self.session):
                cached = self._check_idempotency("transfer", idempotency_key, request_signature)
                if cached is not None:
                    return cached

                # Both rows are locked in account-number order before either is read.
                locked = self.repository.lock_accounts(
                    [source_account_number, target_account_number]
                )
                source = require_eligible(
                    locked.get(source_account_number), source_account_number, "Source account"
                )
                target = require_eligible(
                    locked.get(target_account_number), target_account_number, "Target account"
                )
                debited = require_within_floor(source, amount)
                credited = require_within_ceiling(target, amount)

                source.balance = debited
                target.balance = credited
                self.repository.save_account(source)
                self.repository.save_account(target)

                record = self.repository.append_transaction(
                    TransactionModel(
                        transaction_id=generate_transaction_id(),
                        type=TransactionType.TRANSFER,
                        amount=amount,
                        description=description,
                        account_id=source.id,
                        target_account_id=target.id,
                        status=TransactionStatus.SUCCESS,
                        balance_after=source.balance,
                        target_balance_after=target.balance,
                    )
                )
                response = self._transaction_to_response(
                    record, source_account_number, target_account_number
                )
                self._record_idempotent("transfer", idempotency_key, request_signature, response)
        except StoreUnavailableError:
            logger.error(
                "account.transfer.failed",
                extra={
                    "source_account_number": source_account_number,
                    "target_account_number": target_account_number,
                },
                exc_info=True,
            )
            raise
        except LedgerError as exc:
            logger.warning(
                "account.transfer.rejected",
                extra={
                    "source_account_number": source_account_number,
                    "target_account_number": target_account_number,
                    "reason": type(exc).__name__,
                },
            )
            raise

        logger.info(
            "account.transfer",
            extra={
                "source_account_number": source_account_number,
                "target_account_number": target_account_number,
                "transaction_id": response.transaction_id,
                "amount": str(amount),
            },
        )
        return response

    def get_transaction(self, transaction_id: str) -> TransactionResponse:
        with read_only(self.session):
            record = self.repository.get_transaction(transaction_id)
            if record is None:
                raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
            return self._transaction_to_response(
                record,
                self._account_number_for(record.account_id),
                self._account_number_for(record.target_account_id),
            )

    def get_statement(
        self,
        account_number: str,
        limit: Optional[int] = None,
    ) -> StatementResponse:
        if limit is None:
            limit = self.settings.statement_limit
        if limit < 1:
            raise ValueError("Limit must be at least 1")

        with read_only(self.session):
            account = require_existing(self.repository.get_account(account_number), account_number)
            records = self.repository.list_transactions(account.id, limit)
            items = [
                self._transaction_to_response(
                    record,
                    self._account_number_for(record.account_id),
                    self._account_number_for(record.target_account_id),
                )
                for record in records
            ]
            return StatementResponse(
                account_number=account.account_number,
                balance=account.balance,
                items=items,
            )
