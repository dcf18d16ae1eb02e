from fastapi import Depends
from sqlmodel import Session

from ..services import AccountService, LedgerRepository, LedgerService, UserService
from .db import get_session


def get_repository(session: Session = Depends(get_session)) -> LedgerRepository:
    return LedgerRepository(session)


def get_user_service(
    session: Session = Depends(get_session),
    repository: LedgerRepository = Depends(get_repository),
) -> UserService:
    return UserService(session, repository)


def get_account_service(
    session: Session = Depends(get_session),
    repository: LedgerRepository = Depends(get_repository),
) -> AccountService:
    return AccountService(session, repository)


def get_ledger_service(
    session: Session = Depends(get_session),
    repository: LedgerRepository = Depends(get_repository),
) -> LedgerService:
    return LedgerService(session, repository)
