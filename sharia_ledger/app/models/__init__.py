from .db import Account as AccountModel
from .db import AccountStatus, AccountType, TransactionStatus, TransactionType, UserRole
from .db import IdempotencyRecord as IdempotencyRecordModel
from .db import Transaction as TransactionModel
from .db import User as UserModel
from .schemas import (
    AccountCreate,
    AccountResponse,
    AccountStatusUpdate,
    MoneyMovementRequest,
    StatementResponse,
    TransactionResponse,
    TransferRequest,
    UserCreate,
    UserResponse,
    UserUpdate,
)

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "AccountStatusUpdate",
    "MoneyMovementRequest",
    "StatementResponse",
    "TransactionResponse",
    "TransferRequest",
    "UserCreate",
    "UserResponse",
    "UserUpdate",
    "AccountStatus",
    "AccountType",
    "TransactionStatus",
    "TransactionType",
    "UserRole",
    "AccountModel",
    "TransactionModel",
    "UserModel",
    "IdempotencyRecordModel",
]
