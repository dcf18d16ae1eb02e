from decimal import Decimal
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from ..core.db import create_engine_for_url, get_engine, get_session, set_engine
from ..main import app
from ..models import AccountType, UserCreate
from ..services import AccountService, LedgerService, UserService


@pytest.fixture
def engine(tmp_path):
    test_db = tmp_path / "test.db"
    engine = create_engine_for_url(f"sqlite:///{test_db}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine) -> TestClient:
    original_engine = get_engine()
    set_engine(engine)

    def _get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(original_engine)


def register_user(session: Session, username: str = "aisyah") -> UUID:
    user = UserService(session).create_user(
        UserCreate(
            username=username,
            email=f"{username}@example.com",
            password="s3cret-pass",
            full_name=username.title(),
        )
    )
    return user.id


def open_account(
    session: Session,
    user_id: UUID,
    balance: Decimal = Decimal("0"),
    minimum_balance: Decimal = Decimal("0"),
    account_type: AccountType = AccountType.WADIAH,
) -> str:
    account = AccountService(session).create_account(
        user_id, account_type, minimum_balance=minimum_balance
    )
    if balance > 0:
        LedgerService(session).deposit(account.account_number, balance)
    return account.account_number


@pytest.fixture
def user_id(session) -> UUID:
    return register_user(session)
