from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .db import AccountStatus, AccountType, TransactionStatus, TransactionType, UserRole


class UserCreate(BaseModel):
    username: str = Field(..., min_length=4, max_length=20)
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1)
    phone_number: Optional[str] = Field(
        default=None,
        pattern=r"^[+]?[(]?[0-9]{3}[)]?[-\s.]?[0-9]{3}[-\s.]?[0-9]{4,6}$",
    )
    address: Optional[str] = None


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(default=None, min_length=1)
    phone_number: Optional[str] = Field(
        default=None,
        pattern=r"^[+]?[(]?[0-9]{3}[)]?[-\s.]?[0-9]{3}[-\s.]?[0-9]{4,6}$",
    )
    address: Optional[str] = None
    role: Optional[UserRole] = None
    enabled: Optional[bool] = None
    locked: Optional[bool] = None


class UserResponse(BaseModel):
    id: UUID
    username: str
    email: str
    full_name: str
    phone_number: Optional[str] = None
    address: Optional[str] = None
    role: UserRole
    enabled: bool
    locked: bool
    created_at: datetime


class AccountCreate(BaseModel):
    user_id: UUID
    account_name: str = Field(..., min_length=1, description="Display name of the account")
    account_type: AccountType
    minimum_balance: Optional[Decimal] = Field(
        default=None,
        ge=0,
        max_digits=18,
        decimal_places=2,
        description="Floor the balance may not drop below",
    )


class AccountResponse(BaseModel):
    account_number: str
    account_name: str
    account_type: AccountType
    balance: Decimal = Field(..., ge=0)
    minimum_balance: Decimal
    status: AccountStatus
    user_id: UUID
    created_at: datetime


class AccountStatusUpdate(BaseModel):
    status: AccountStatus


class MoneyMovementRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2)
    description: Optional[str] = Field(
        default=None, description="Narrative to display on the statement"
    )


class TransferRequest(BaseModel):
    source_account_number: str
    target_account_number: str
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2)
    description: Optional[str] = None


class TransactionResponse(BaseModel):
    transaction_id: str
    type: TransactionType
    amount: Decimal
    description: Optional[str] = None
    reference_number: Optional[str] = None
    account_number: str
    target_account_number: Optional[str] = None
    status: TransactionStatus
    transaction_date: datetime
    balance_after: Optional[Decimal] = None
    target_balance_after: Optional[Decimal] = None


class StatementResponse(BaseModel):
    account_number: str
    balance: Decimal
    items: list[TransactionResponse]
