from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..common.periods import Period
from ..core.enums import ContributionType
from ..members.model import MemberRef


@dataclass(frozen=True)
class Contribution:
    """A dues definition: MONTHLY, EXCEPTIONAL campaign or PROJECT target."""

    contribution_id: int
    name: str
    type: ContributionType
    amount: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    target_amount: Optional[Decimal] = None
    received_amount: Optional[Decimal] = None
    frequency: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    payments_count: int = 0


@dataclass(frozen=True)
class Payment:
    payment_id: int
    member_id: int
    contribution_id: int
    amount: Decimal
    paid_at: datetime
    period_year: Optional[int] = None
    period_month: Optional[int] = None
    recorded_by: Optional[int] = None

    @property
    def period(self) -> Optional[Period]:
        if self.period_year is None or self.period_month is None:
            return None
        return Period(int(self.period_year), int(self.period_month))


@dataclass(frozen=True)
class ArrearsResult:
    period_year: int
    period_month: int
    members: list[MemberRef]
    total: int


@dataclass(frozen=True)
class UnpaidMonths:
    unpaid_months: list[Period]
    monthly_contribution_id: Optional[int]


@dataclass(frozen=True)
class MonthTotal:
    year: int
    month: int
    total_collected: Decimal
    payments_count: int


@dataclass(frozen=True)
class HistorySummary:
    total_collected: Decimal
    by_month: list[MonthTotal]
    monthly_contribution_id: Optional[int]


@dataclass(frozen=True)
class MemberMonth:
    year: int
    month: int
    amount: Decimal
    paid_at: datetime


@dataclass(frozen=True)
class MemberHistory:
    member: MemberRef
    payments: list[Payment] = field(default_factory=list)
    by_month: list[MemberMonth] = field(default_factory=list)
    total_paid: Decimal = Decimal("0")
