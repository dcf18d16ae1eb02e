from decimal import Decimal
from uuid import uuid4

import pytest

from ..core.errors import (
    AccountInactiveError,
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidTransferError,
)
from ..models import AccountModel, AccountStatus, AccountType
from ..services.validation import (
    MAX_BALANCE,
    require_distinct,
    require_eligible,
    require_positive_amount,
    require_within_ceiling,
    require_within_floor,
)


def _account(**overrides) -> AccountModel:
    data = dict(
        account_number="BSA1",
        account_name="Test",
        account_type=AccountType.WADIAH,
        balance=Decimal("100"),
        minimum_balance=Decimal("20"),
        user_id=uuid4(),
    )
    data.update(overrides)
    return AccountModel(**data)


def test_positive_amount_is_normalised_to_cents() -> None:
    assert require_positive_amount(Decimal("5")) == Decimal("5.00")
    assert str(require_positive_amount(Decimal("5"))) == "5.00"


@pytest.mark.parametrize("amount", ["0", "-0.01", "NaN", "1.005"])
def test_non_positive_or_fractional_cent_amounts_rejected(amount) -> None:
    with pytest.raises(InvalidAmountError):
        require_positive_amount(Decimal(amount))


def test_eligibility_checks() -> None:
    with pytest.raises(AccountNotFoundError):
        require_eligible(None, "BSA1")
    with pytest.raises(AccountNotFoundError):
        require_eligible(_account(deleted=True), "BSA1")
    with pytest.raises(AccountInactiveError):
        require_eligible(_account(status=AccountStatus.BLOCKED), "BSA1")
    assert require_eligible(_account(), "BSA1").account_number == "BSA1"


def test_distinct_accounts() -> None:
    require_distinct("BSA1", "BSA2")
    with pytest.raises(InvalidTransferError):
        require_distinct("BSA1", "BSA1")


def test_floor_check_allows_landing_on_the_floor() -> None:
    account = _account()
    assert require_within_floor(account, Decimal("80")) == Decimal("20")
    with pytest.raises(InsufficientBalanceError):
        require_within_floor(account, Decimal("80.01"))


def test_amounts_above_the_storable_maximum_are_rejected() -> None:
    assert require_positive_amount(MAX_BALANCE) == MAX_BALANCE
    with pytest.raises(InvalidAmountError):
        require_positive_amount(MAX_BALANCE + Decimal("0.01"))


def test_ceiling_check_refuses_credit_past_the_maximum() -> None:
    account = _account(balance=MAX_BALANCE - Decimal("1"))
    assert require_within_ceiling(account, Decimal("1")) == MAX_BALANCE
    with pytest.raises(InvalidAmountError):
        require_within_ceiling(account, Decimal("1.01"))
