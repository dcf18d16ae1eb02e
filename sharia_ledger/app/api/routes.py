from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Response, status

from ..core.dependencies import get_account_service, get_ledger_service, get_user_service
from ..models import (
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
from ..services import AccountService, LedgerService, UserService


user_router = APIRouter(prefix="/users", tags=["users"])

@user_router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return service.create_user(payload)

@user_router.get("", response_model=list[UserResponse])
def list_users(service: UserService = Depends(get_user_service)) -> list[UserResponse]:
    return service.list_users()

@user_router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: UUID,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return service.get_user(user_id)

@user_router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: UUID,
    payload: UserUpdate,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return service.update_user(user_id, payload)

@user_router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: UUID,
    service: UserService = Depends(get_user_service),
) -> Response:
    service.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@user_router.get("/{user_id}/accounts", response_model=list[AccountResponse])
def list_user_accounts(
    user_id: UUID,
    service: AccountService = Depends(get_account_service),
) -> list[AccountResponse]:
    return service.list_accounts(user_id)


router = APIRouter(prefix="/accounts", tags=["accounts"])

@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.create_account(
        payload.user_id,
        payload.account_type,
        minimum_balance=payload.minimum_balance,
        account_name=payload.account_name,
    )

@router.get("/{account_number}", response_model=AccountResponse)
def get_account(
    account_number: str,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.get_account(account_number)

@router.patch("/{account_number}/status", response_model=AccountResponse)
def change_account_status(
    account_number: str,
    payload: AccountStatusUpdate,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.change_status(account_number, payload.status)

@router.delete("/{account_number}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_number: str,
    service: AccountService = Depends(get_account_service),
) -> Response:
    service.delete_account(account_number)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/{account_number}/deposit", response_model=TransactionResponse)
def deposit(
    account_number: str,
    payload: MoneyMovementRequest,
    service: LedgerService = Depends(get_ledger_service),
    idempotency_key: Optional[str] = Header(
        default=None, convert_underscores=False, alias="Idempotency-Key"
    ),
) -> TransactionResponse:
    return service.deposit(
        account_number, payload.amount, payload.description, idempotency_key
    )

@router.post("/{account_number}/withdraw", response_model=TransactionResponse)
def withdraw(
    account_number: str,
    payload: MoneyMovementRequest,
    service: LedgerService = Depends(get_ledger_service),
    idempotency_key: Optional[str] = Header(
        default=None, convert_underscores=False, alias="Idempotency-Key"
    ),
) -> TransactionResponse:
    return service.withdraw(
        account_number, payload.amount, payload.description, idempotency_key
    )

@router.get("/{account_number}/transactions", response_model=StatementResponse)
def get_statement(
    account_number: str,
    limit: Optional[int] = None,
    service: LedgerService = Depends(get_ledger_service),
) -> StatementResponse:
    return service.get_statement(account_number, limit=limit)


transfer_router = APIRouter(prefix="/transfers", tags=["transfers"])

@transfer_router.post("", response_model=TransactionResponse)
def create_transfer(
    payload: TransferRequest,
    service: LedgerService = Depends(get_ledger_service),
    idempotency_key: Optional[str] = Header(
        default=None, convert_underscores=False, alias="Idempotency-Key"
    ),
) -> TransactionResponse:
    return service.transfer(
        payload.source_account_number,
        payload.target_account_number,
        payload.amount,
        payload.description,
        idempotency_key,
    )


transaction_router = APIRouter(prefix="/transactions", tags=["transactions"])

@transaction_router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> TransactionResponse:
    return service.get_transaction(transaction_id)

__all__ = ["router", "transaction_router", "transfer_router", "user_router"]
