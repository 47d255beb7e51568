from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from ..auth.policy import Action, Principal, require
from ..caisse.model import LedgerEntry
from ..caisse.service import CaisseService
from ..common.datetime_utils import now_local
from ..common.periods import Period, iter_periods
from ..common.validators import require_period
from ..core.enums import LedgerDirection, LedgerKind
from .model import AnnualReport, MonthlyReport, MonthRow, ReportPeriod

ZERO = Decimal("0")


def _totals(entries: Iterable[LedgerEntry]) -> tuple[Decimal, Decimal]:
    total_in = ZERO
    total_out = ZERO
    for e in entries:
        if e.direction == LedgerDirection.ENTREE:
            total_in += e.amount
        else:
            total_out += e.amount
    return total_in, total_out


class ReportService:
    """Monthly and annual cash reports, bucketed by ledger date."""

    def __init__(self, caisse: CaisseService, *, clock=now_local):
        self._caisse = caisse
        self._clock = clock

    def _period(self, year: Optional[int], month: Optional[int]) -> Period:
        current = Period.of(self._clock())
        return Period(*require_period(year if year is not None else current.year, month if month is not None else current.month))

    def monthly(self, principal: Principal, *, year: Optional[int] = None, month: Optional[int] = None) -> MonthlyReport:
        require(principal, Action.VIEW_REPORTS)
        period = self._period(year, month)
        entries = [e for e in self._caisse.build_ledger() if Period.of(e.date) == period]
        total_in, total_out = _totals(entries)
        return MonthlyReport(
            period=ReportPeriod(year=period.year, month=period.month, label=period.label),
            total_entries=total_in,
            total_exits=total_out,
            solde=total_in - total_out,
            payments=[e for e in entries if e.kind == LedgerKind.PAYMENT],
            expenses=[e for e in entries if e.kind == LedgerKind.EXPENSE],
        )

    def annual(self, principal: Principal, *, year: Optional[int] = None) -> AnnualReport:
        require(principal, Action.VIEW_REPORTS)
        first = self._period(year, 1)
        buckets: dict[Period, list[LedgerEntry]] = {}
        for e in self._caisse.build_ledger():
            p = Period.of(e.date)
            if p.year == first.year:
                buckets.setdefault(p, []).append(e)

        months = []
        for p in iter_periods(first, Period(first.year, 12)):
            total_in, total_out = _totals(buckets.get(p, []))
            months.append(
                MonthRow(
                    year=p.year,
                    month=p.month,
                    label=p.label,
                    total_entries=total_in,
                    total_exits=total_out,
                    solde=total_in - total_out,
                )
            )
        total_in = sum((m.total_entries for m in months), ZERO)
        total_out = sum((m.total_exits for m in months), ZERO)
        return AnnualReport(
            year=first.year,
            months=months,
            total_entries=total_in,
            total_exits=total_out,
            solde=total_in - total_out,
        )
