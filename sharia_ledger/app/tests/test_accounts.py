from decimal import Decimal
from itertools import cycle
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from ..core.config import get_settings
from ..core.errors import (
    AccountInactiveError,
    AccountNotFoundError,
    ConflictError,
    DuplicateAccountNumberError,
    StoreUnavailableError,
    UserNotFoundError,
)
from ..models import AccountStatus, AccountType, UserUpdate
from ..services import AccountService, LedgerService, UserService
from ..services.accounts import generate_account_number
from .conftest import open_account


def test_create_account_starts_with_zero_balance(session, user_id) -> None:
    account = AccountService(session).create_account(
        user_id, AccountType.MUDHARABAH, minimum_balance=Decimal("50000")
    )

    assert account.account_number.startswith("BSA")
    assert account.balance == Decimal("0")
    assert account.minimum_balance == Decimal("50000")
    assert account.status == AccountStatus.ACTIVE
    assert account.account_type == AccountType.MUDHARABAH
    assert account.account_name == "Aisyah"
    assert account.user_id == user_id


def test_create_account_for_unknown_owner(session) -> None:
    with pytest.raises(UserNotFoundError):
        AccountService(session).create_account(uuid4(), AccountType.WADIAH)


def test_create_account_for_deleted_owner(session, user_id) -> None:
    UserService(session).delete_user(user_id)

    with pytest.raises(UserNotFoundError):
        AccountService(session).create_account(user_id, AccountType.WADIAH)


def test_locked_owner_cannot_open_account(session, user_id) -> None:
    UserService(session).update_user(user_id, UserUpdate(locked=True))

    with pytest.raises(AccountInactiveError):
        AccountService(session).create_account(user_id, AccountType.WADIAH)


def test_colliding_account_number_is_regenerated(session, user_id) -> None:
    numbers = iter(["BSA1", "BSA1", "BSA2"])
    service = AccountService(session, number_factory=lambda: next(numbers))

    first = service.create_account(user_id, AccountType.WADIAH)
    second = service.create_account(user_id, AccountType.WADIAH)

    assert first.account_number == "BSA1"
    assert second.account_number == "BSA2"


def test_exhausted_account_number_retries_raise_conflict(session, user_id) -> None:
    service = AccountService(session, number_factory=lambda: "BSA1")
    service.create_account(user_id, AccountType.WADIAH)

    with pytest.raises(DuplicateAccountNumberError):
        service.create_account(user_id, AccountType.WADIAH)

    assert len(service.list_accounts(user_id)) == 1


def test_number_taken_after_lookup_is_regenerated(session, user_id, monkeypatch) -> None:
    numbers = iter(["BSA1", "BSA1", "BSA2"])
    service = AccountService(session, number_factory=lambda: next(numbers))
    first = service.create_account(user_id, AccountType.WADIAH)
    # Another writer claimed the number between the existence check and the insert.
    monkeypatch.setattr(service.repository, "account_number_exists", lambda number: False)

    second = service.create_account(user_id, AccountType.WADIAH)

    assert first.account_number == "BSA1"
    assert second.account_number == "BSA2"
    assert [account.account_number for account in service.list_accounts(user_id)] == [
        "BSA1",
        "BSA2",
    ]


def test_number_race_exhausting_retries_raises_duplicate(session, user_id, monkeypatch) -> None:
    service = AccountService(session, number_factory=lambda: "BSA1")
    service.create_account(user_id, AccountType.WADIAH)
    monkeypatch.setattr(service.repository, "account_number_exists", lambda number: False)

    with pytest.raises(DuplicateAccountNumberError):
        service.create_account(user_id, AccountType.WADIAH)

    assert len(service.list_accounts(user_id)) == 1


def test_get_account_maps_store_failure(session, user_id, monkeypatch) -> None:
    number = open_account(session, user_id)

    def _exec_fails(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "exec", _exec_fails)

    with pytest.raises(StoreUnavailableError):
        AccountService(session).get_account(number)
    with pytest.raises(StoreUnavailableError):
        AccountService(session).list_accounts(user_id)


def test_retries_are_bounded(session, user_id) -> None:
    calls = []
    source = cycle(["BSA1"])

    def factory() -> str:
        calls.append(1)
        return next(source)

    service = AccountService(session, number_factory=factory)
    service.create_account(user_id, AccountType.WADIAH)
    calls.clear()

    with pytest.raises(ConflictError):
        service.create_account(user_id, AccountType.WADIAH)
    assert len(calls) == get_settings().account_number_max_attempts


def test_generated_account_numbers_are_prefixed_digits() -> None:
    number = generate_account_number("BSA")
    assert number.startswith("BSA")
    assert number[3:].isdigit()
    assert len(number) == 3 + 13 + 3


def test_get_account_unknown(session) -> None:
    with pytest.raises(AccountNotFoundError):
        AccountService(session).get_account("BSA404")


def test_delete_account_is_soft(session, user_id) -> None:
    number = open_account(session, user_id)
    service = AccountService(session)

    service.delete_account(number)

    with pytest.raises(AccountNotFoundError):
        service.get_account(number)
    row = service.repository.get_account(number)
    assert row is not None
    assert row.deleted
    assert row.status == AccountStatus.CLOSED


def test_delete_account_with_balance_is_refused(session, user_id) -> None:
    number = open_account(session, user_id, balance=Decimal("10"))

    with pytest.raises(ConflictError):
        AccountService(session).delete_account(number)

    assert AccountService(session).get_account(number).balance == Decimal("10")


def test_closing_requires_zero_balance(session, user_id) -> None:
    number = open_account(session, user_id, balance=Decimal("10"))
    service = AccountService(session)

    with pytest.raises(ConflictError):
        service.change_status(number, AccountStatus.CLOSED)

    LedgerService(session).withdraw(number, Decimal("10"))
    closed = service.change_status(number, AccountStatus.CLOSED)
    assert closed.status == AccountStatus.CLOSED

    with pytest.raises(ConflictError):
        service.change_status(number, AccountStatus.ACTIVE)


def test_blocked_account_can_be_reactivated(session, user_id) -> None:
    number = open_account(session, user_id)
    service = AccountService(session)

    service.change_status(number, AccountStatus.BLOCKED)
    reactivated = service.change_status(number, AccountStatus.ACTIVE)

    assert reactivated.status == AccountStatus.ACTIVE
    LedgerService(session).deposit(number, Decimal("1"))


def test_list_accounts_skips_deleted(session, user_id) -> None:
    kept = open_account(session, user_id)
    dropped = open_account(session, user_id)
    service = AccountService(session)
    service.delete_account(dropped)

    numbers = [account.account_number for account in service.list_accounts(user_id)]
    assert numbers == [kept]
