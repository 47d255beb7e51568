from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ..caisse.model import LedgerEntry


@dataclass(frozen=True)
class ReportPeriod:
    year: int
    month: int
    label: str


@dataclass(frozen=True)
class MonthlyReport:
    period: ReportPeriod
    total_entries: Decimal
    total_exits: Decimal
    solde: Decimal
    payments: list[LedgerEntry] = field(default_factory=list)
    expenses: list[LedgerEntry] = field(default_factory=list)


@dataclass(frozen=True)
class MonthRow:
    year: int
    month: int
    label: str
    total_entries: Decimal
    total_exits: Decimal
    solde: Decimal


@dataclass(frozen=True)
class AnnualReport:
    year: int
    months: list[MonthRow]
    total_entries: Decimal
    total_exits: Decimal
    solde: Decimal
