from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from club_manager.core.exceptions import AuthorizationError


@pytest.fixture
def march_activity(container, club, default_box, monthly, clock):
    contributions = container.contribution_service
    caisse = container.caisse_service
    contributions.record_payment(
        club.as_treasurer, member_id=club.player.member_id, contribution_id=monthly.contribution_id, amount=5000
    )
    contributions.record_payment(
        club.as_treasurer, member_id=club.commissioner.member_id, contribution_id=monthly.contribution_id, amount=5000
    )
    expense = caisse.create_expense(club.as_treasurer, amount=3000, description="Eau", expense_date="2024-03-02")
    caisse.validate_expense_treasurer(club.as_treasurer, expense.expense_id)
    caisse.validate_expense_commissioner(club.as_commissioner, expense.expense_id)

    clock.now = datetime(2024, 5, 3, 10, 0)
    late = caisse.create_expense(club.as_treasurer, amount=1000, description="Arbitre", expense_date="2024-05-03")
    caisse.validate_expense_treasurer(club.as_treasurer, late.expense_id)
    caisse.validate_expense_commissioner(club.as_commissioner, late.expense_id)


def test_monthly_report(container, club, march_activity):
    report = container.report_service.monthly(club.as_commissioner, year=2024, month=3)

    assert report.period.label == "mars 2024"
    assert report.total_entries == Decimal("10000")
    assert report.total_exits == Decimal("3000")
    assert report.solde == Decimal("7000")
    assert len(report.payments) == 2
    assert [e.description for e in report.expenses] == ["Eau"]


def test_monthly_report_defaults_to_current_month(container, club, march_activity):
    report = container.report_service.monthly(club.as_admin)
    assert (report.period.year, report.period.month) == (2024, 5)
    assert report.solde == Decimal("-1000")


def test_annual_report_has_twelve_months(container, club, march_activity):
    report = container.report_service.annual(club.as_admin, year=2024)

    assert len(report.months) == 12
    assert report.months[2].solde == Decimal("7000")
    assert report.months[4].total_exits == Decimal("1000")
    assert report.months[0].solde == Decimal("0")
    assert report.solde == report.total_entries - report.total_exits == Decimal("6000")


def test_reports_are_for_the_bureau(container, club):
    with pytest.raises(AuthorizationError):
        container.report_service.monthly(club.as_player, year=2024, month=3)
