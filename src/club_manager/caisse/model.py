from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import ApprovalStatus, LedgerDirection, LedgerKind, TransferType


@dataclass(frozen=True)
class CashBox:
    cash_box_id: int
    name: str
    description: Optional[str] = None
    order: int = 0
    is_default: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Expense:
    expense_id: int
    amount: Decimal
    description: str
    expense_date: date
    status: ApprovalStatus
    requested_by: int
    created_at: datetime
    cash_box_id: Optional[int] = None
    beneficiary: Optional[str] = None
    treasurer_approved_by: Optional[int] = None
    treasurer_approved_at: Optional[datetime] = None
    commissioner_approved_by: Optional[int] = None
    commissioner_approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    reject_reason: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class CashBoxTransfer:
    transfer_id: int
    type: TransferType
    amount: Decimal
    status: ApprovalStatus
    requested_by: int
    created_at: datetime
    description: Optional[str] = None
    from_cash_box_id: Optional[int] = None
    to_cash_box_id: Optional[int] = None
    treasurer_approved_by: Optional[int] = None
    treasurer_approved_at: Optional[datetime] = None
    commissioner_approved_by: Optional[int] = None
    commissioner_approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    reject_reason: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def cash_box_id(self) -> Optional[int]:
        """The named box the transfer moves money into or out of."""
        if self.type == TransferType.ALLOCATION:
            return self.to_cash_box_id
        return self.from_cash_box_id


@dataclass(frozen=True)
class LedgerEntry:
    """One line of the cash book. Derived, never persisted."""

    direction: LedgerDirection
    kind: LedgerKind
    entry_id: int
    date: datetime
    amount: Decimal
    cash_box_id: Optional[int]
    label: str
    member_id: Optional[int] = None
    contribution_id: Optional[int] = None
    period_year: Optional[int] = None
    period_month: Optional[int] = None
    description: Optional[str] = None
    beneficiary: Optional[str] = None
    requested_by: Optional[int] = None
    treasurer_approved_by: Optional[int] = None
    commissioner_approved_by: Optional[int] = None


@dataclass(frozen=True)
class Totals:
    balance: Decimal = Decimal("0")
    total_entries: Decimal = Decimal("0")
    total_exits: Decimal = Decimal("0")


@dataclass(frozen=True)
class CashBoxSummary:
    cash_box_id: int
    name: str
    description: Optional[str]
    order: int
    is_default: bool
    balance: Decimal
    total_entries: Decimal
    total_exits: Decimal


@dataclass(frozen=True)
class CaisseSummary:
    boxes: list[CashBoxSummary]
    default_cash_box_id: Optional[int]
    global_totals: Totals = field(default_factory=Totals)
    last_updated: Optional[datetime] = None


@dataclass(frozen=True)
class PendingCount:
    pending_treasurer: int
    pending_commissioner: int
