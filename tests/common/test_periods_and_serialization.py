from datetime import date, datetime
from decimal import Decimal

import pytest

from club_manager.caisse.model import PendingCount
from club_manager.common.periods import Period, iter_periods
from club_manager.common.serialization import to_json
from club_manager.common.validators import clamp_limit, require_date, require_period, require_positive_amount
from club_manager.core.enums import Role
from club_manager.core.exceptions import ValidationError
from club_manager.members.model import Member


def test_period_shift_crosses_year_boundaries():
    assert Period(2024, 1).shift(-1) == Period(2023, 12)
    assert Period(2024, 11).shift(3) == Period(2025, 2)
    assert Period(2024, 12).next() == Period(2025, 1)


def test_iter_periods_is_inclusive():
    got = list(iter_periods(Period(2023, 11), Period(2024, 2)))
    assert got == [Period(2023, 11), Period(2023, 12), Period(2024, 1), Period(2024, 2)]


def test_period_label_is_french():
    assert Period(2024, 8).label == "août 2024"
    assert Period.of(datetime(2024, 3, 15, 9)).label == "mars 2024"


def test_to_json_camel_cases_and_hides_password_hash():
    member = Member(
        member_id=1,
        phone="0700",
        first_name="Ada",
        last_name="Admin",
        role=Role.ADMIN,
        password_hash="secret",
        created_at=datetime(2024, 1, 2, 3, 4, 5),
    )
    out = to_json(member)
    assert "passwordHash" not in out
    assert out["memberId"] == 1
    assert out["firstName"] == "Ada"
    assert out["role"] == "ADMIN"
    assert out["createdAt"] == "2024-01-02T03:04:05"


def test_to_json_decimals_and_nested_values():
    assert to_json(Decimal("10000.00")) == 10000
    assert to_json(Decimal("12.5")) == 12.5
    assert to_json({"pending_count": PendingCount(1, 2)}) == {
        "pendingCount": {"pendingTreasurer": 1, "pendingCommissioner": 2}
    }
    assert to_json([date(2024, 3, 1)]) == ["2024-03-01"]


def test_amount_validation():
    assert require_positive_amount("10000") == Decimal("10000")
    for bad in (0, -5, "abc", None, "NaN"):
        with pytest.raises(ValidationError) as exc:
            require_positive_amount(bad)
        assert exc.value.field == "amount"


def test_period_and_date_validation():
    assert require_period("2024", "3") == (2024, 3)
    with pytest.raises(ValidationError):
        require_period(2024, 13)
    assert require_date("2024-03-05T10:00:00", "Date") == date(2024, 3, 5)
    with pytest.raises(ValidationError):
        require_date("05/03/2024", "Date", field="expenseDate")


def test_clamp_limit():
    assert clamp_limit(None, 50, 500) == 50
    assert clamp_limit("0", 50, 500) == 50
    assert clamp_limit("10000", 50, 500) == 500
    assert clamp_limit(20, 50, 500) == 20
