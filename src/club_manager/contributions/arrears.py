from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ..common.periods import Period, iter_periods
from ..core.constants import ARREARS_LOOKBACK_MONTHS
from ..core.enums import Role
from ..members.model import Member, MemberRef
from .model import ArrearsResult, Contribution, Payment


def member_ref(member: Member) -> MemberRef:
    return MemberRef(
        member_id=member.member_id,
        first_name=member.first_name,
        last_name=member.last_name,
        phone=member.phone,
        role=member.role,
        is_suspended=member.is_suspended,
    )


def paid_periods(payments: Iterable[Payment], *, member_id: int, contribution_id: int) -> set[Period]:
    """Periods with at least one payment by member against contribution.

    Amounts are not compared with the contribution minimum: any payment
    tagged with a period marks it paid.
    """
    out: set[Period] = set()
    for p in payments:
        if p.member_id != member_id or p.contribution_id != contribution_id:
            continue
        period = p.period
        if period is not None:
            out.add(period)
    return out


@dataclass(frozen=True)
class ArrearsCalculator:
    """Derives arrears and unpaid months from members and payments (no I/O)."""

    lookback_months: int = ARREARS_LOOKBACK_MONTHS

    @staticmethod
    def is_liable(member: Member, period: Period) -> bool:
        """Admin accounts and members who joined after the period owe nothing for it."""
        if member.role == Role.ADMIN:
            return False
        if member.created_at is not None and Period.of(member.created_at) > period:
            return False
        return True

    def arrears(
        self,
        members: Sequence[Member],
        payments: Iterable[Payment],
        *,
        monthly: Optional[Contribution],
        period: Period,
    ) -> ArrearsResult:
        if monthly is None:
            return ArrearsResult(period_year=period.year, period_month=period.month, members=[], total=0)

        payers = {
            p.member_id
            for p in payments
            if p.contribution_id == monthly.contribution_id and p.period == period
        }
        late = [
            member_ref(m)
            for m in members
            if self.is_liable(m, period) and m.member_id not in payers
        ]
        late.sort(key=lambda r: (r.last_name.lower(), r.first_name.lower(), r.member_id))
        return ArrearsResult(period_year=period.year, period_month=period.month, members=late, total=len(late))

    def start_period(self, member: Member, monthly: Contribution, current: Period) -> Period:
        start = current.shift(-(max(int(self.lookback_months), 1) - 1))
        if member.created_at is not None:
            start = max(start, Period.of(member.created_at))
        contribution_start = monthly.start_date or monthly.created_at
        if contribution_start is not None:
            start = max(start, Period.of(contribution_start))
        return start

    def unpaid_months(
        self,
        member: Member,
        payments: Iterable[Payment],
        *,
        monthly: Optional[Contribution],
        current: Period,
    ) -> list[Period]:
        """Every period from the member's effective start through current with no payment."""
        if monthly is None or member.role == Role.ADMIN:
            return []
        paid = paid_periods(payments, member_id=member.member_id, contribution_id=monthly.contribution_id)
        start = self.start_period(member, monthly, current)
        return [p for p in iter_periods(start, current) if p not in paid]

    def is_up_to_date(
        self,
        member: Member,
        payments: Iterable[Payment],
        *,
        monthly: Optional[Contribution],
        current: Period,
    ) -> bool:
        return not self.unpaid_months(member, payments, monthly=monthly, current=current)
