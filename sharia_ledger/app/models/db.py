from __future__ import annotations
from datetime import datetime, UTC
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4
from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel


CENT = Decimal("0.01")


class MinorUnits(TypeDecorator):
    """Decimal money stored as an integer count of cents.

    Backends without a native decimal type (SQLite) would otherwise persist
    ``Numeric`` as a float and round balances past ~15 significant digits.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(Decimal(value).quantize(CENT).scaleb(2))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-2)


def utcnow() -> datetime:
    return datetime.now(UTC)


class UserRole(str, Enum):
    CUSTOMER = "customer"
    TELLER = "teller"
    ADMIN = "admin"


class AccountType(str, Enum):
    WADIAH = "wadiah"  # custodial deposit
    MUDHARABAH = "mudharabah"  # profit-sharing investment
    MUSYARAKAH = "musyarakah"  # capital partnership


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"
    CLOSED = "closed"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"
    ZAKAT = "zakat"
    INFAQ = "infaq"
    PROFIT_SHARING = "profit_sharing"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    username: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)
    full_name: str
    phone_number: Optional[str] = None
    address: Optional[str] = None
    password_hash: str
    password_salt: str
    role: UserRole = Field(default=UserRole.CUSTOMER)
    enabled: bool = True
    locked: bool = False
    deleted: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Account(SQLModel, table=True):
    __tablename__ = "accounts"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    account_number: str = Field(index=True, unique=True)
    account_name: str
    account_type: AccountType
    balance: Decimal = Field(default=Decimal("0"), sa_type=MinorUnits)
    minimum_balance: Decimal = Field(default=Decimal("0"), sa_type=MinorUnits)
    status: AccountStatus = Field(default=AccountStatus.ACTIVE)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    deleted: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    transaction_id: str = Field(index=True, unique=True)
    type: TransactionType
    amount: Decimal = Field(sa_type=MinorUnits)
    description: Optional[str] = None
    reference_number: Optional[str] = None
    account_id: UUID = Field(foreign_key="accounts.id", index=True)
    target_account_id: Optional[UUID] = Field(
        default=None, foreign_key="accounts.id", index=True
    )
    status: TransactionStatus = Field(default=TransactionStatus.PENDING)
    transaction_date: datetime = Field(default_factory=utcnow, index=True)
    balance_after: Optional[Decimal] = Field(default=None, sa_type=MinorUnits)
    target_balance_after: Optional[Decimal] = Field(default=None, sa_type=MinorUnits)


class IdempotencyRecord(SQLModel, table=True):
    __tablename__ = "idempotency_records"

    route: str = Field(primary_key=True)
    key: str = Field(primary_key=True)
    request_signature: str
    response_payload: str
