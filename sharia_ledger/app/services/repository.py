from __future__ import annotations

from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlmodel import Session, col, select

from ..models import AccountModel, IdempotencyRecordModel, TransactionModel, UserModel


class LedgerRepository:
    """Thin data access layer around the SQLModel session.

    Nothing here commits; the calling service owns the transaction boundary.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # User operations ----------------------------------------------------
    def add_user(self, user: UserModel) -> UserModel:
        self.session.add(user)
        self.session.flush()
        self.session.refresh(user)
        return user

    def get_user(self, user_id: UUID) -> Optional[UserModel]:
        return self.session.get(UserModel, user_id)

    def username_exists(self, username: str) -> bool:
        stmt = select(UserModel.id).where(UserModel.username == username)
        return self.session.exec(stmt).first() is not None

    def email_exists(self, email: str, exclude_id: Optional[UUID] = None) -> bool:
        stmt = select(UserModel.id).where(UserModel.email == email)
        if exclude_id is not None:
            stmt = stmt.where(UserModel.id != exclude_id)
        return self.session.exec(stmt).first() is not None

    def list_users(self) -> list[UserModel]:
        stmt = (
            select(UserModel)
            .where(UserModel.deleted == False)  # noqa: E712
            .order_by(UserModel.created_at)
        )
        return list(self.session.exec(stmt))

    # Account operations -------------------------------------------------
    def add_account(self, account: AccountModel) -> AccountModel:
        self.session.add(account)
        self.session.flush()
        self.session.refresh(account)
        return account

    def get_account(self, account_number: str) -> Optional[AccountModel]:
        stmt = select(AccountModel).where(AccountModel.account_number == account_number)
        return self.session.exec(stmt).first()

    def get_account_by_id(self, account_id: UUID) -> Optional[AccountModel]:
        return self.session.get(AccountModel, account_id)

    def account_number_exists(self, account_number: str) -> bool:
        stmt = select(AccountModel.id).where(AccountModel.account_number == account_number)
        return self.session.exec(stmt).first() is not None

    def lock_accounts(self, account_numbers: Iterable[str]) -> dict[str, AccountModel]:
        """Load and row-lock accounts in ascending account-number order.

        A fixed lock order keeps two transfers over the same pair of accounts
        from deadlocking when they run in opposite directions.
        """
        ordered = sorted(set(account_numbers))
        stmt = (
            select(AccountModel)
            .where(col(AccountModel.account_number).in_(ordered))
            .order_by(col(AccountModel.account_number))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {account.account_number: account for account in self.session.exec(stmt)}

    def save_account(self, account: AccountModel) -> AccountModel:
        self.session.add(account)
        self.session.flush()
        return account

    def list_accounts(self, user_id: UUID) -> list[AccountModel]:
        stmt = (
            select(AccountModel)
            .where(AccountModel.user_id == user_id)
            .where(AccountModel.deleted == False)  # noqa: E712
            .order_by(AccountModel.created_at)
        )
        return list(self.session.exec(stmt))

    # Transactions -------------------------------------------------------
    def append_transaction(self, record: TransactionModel) -> TransactionModel:
        self.session.add(record)
        self.session.flush()
        self.session.refresh(record)
        return record

    def get_transaction(self, transaction_id: str) -> Optional[TransactionModel]:
        stmt = select(TransactionModel).where(
            TransactionModel.transaction_id == transaction_id
        )
        return self.session.exec(stmt).first()

    def list_transactions(self, account_id: UUID, limit: int) -> list[TransactionModel]:
        stmt = (
            select(TransactionModel)
            .where(
                or_(
                    TransactionModel.account_id == account_id,
                    TransactionModel.target_account_id == account_id,
                )
            )
            .order_by(col(TransactionModel.transaction_date).desc())
            .limit(limit)
        )
        return list(self.session.exec(stmt))

    # Idempotency store --------------------------------------------------
    def fetch_idempotency(
        self, route: str, key: str
    ) -> Optional[IdempotencyRecordModel]:
        stmt = (
            select(IdempotencyRecordModel)
            .where(IdempotencyRecordModel.route == route)
            .where(IdempotencyRecordModel.key == key)
        )
        return self.session.exec(stmt).first()

    def save_idempotency(
        self,
        *,
        route: str,
        key: str,
        signature: str,
        payload: str,
    ) -> None:
        record = IdempotencyRecordModel(
            route=route,
            key=key,
            request_signature=signature,
            response_payload=payload,
        )
        self.session.add(record)
